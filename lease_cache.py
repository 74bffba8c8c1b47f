# lease_cache.py
from dataclasses import dataclass

import numpy as np

from errors import ConfigurationError, InvariantViolation


@dataclass
class CacheLine:
    address: int
    tag: int
    set_index: int
    block_offset: int
    remaining_lease: int
    tenancy: int = 0

    def describe(self):
        return (
            f"address: {self.address:b}, tag: {self.tag:b}, set_index: {self.set_index:b}, "
            f"block_offset: {self.block_offset:b}, remaining_lease: {self.remaining_lease}, "
            f"tenancy: {self.tenancy}"
        )


class RandomEviction:
    """Pick the victim uniformly at random among the set's current lines."""

    def __init__(self, rng=None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def select(self, lines):
        return int(self.rng.integers(0, len(lines)))


class LeaseCacheSet:
    def __init__(self, capacity=None, eviction=None):
        # capacity None means unbounded (virtual cache)
        self.capacity = capacity
        self.eviction = eviction
        self.lines = []

    def __len__(self):
        return len(self.lines)

    def age(self):
        """Advance every line by one step; drop the ones whose lease ran out."""
        survivors = []
        for line in self.lines:
            line.remaining_lease -= 1
            line.tenancy += 1
            if line.remaining_lease > 1:
                survivors.append(line)
        expired = len(self.lines) - len(survivors)
        self.lines = survivors
        return expired

    def find(self, tag):
        for line in self.lines:
            if line.tag == tag:
                return line
        return None

    def is_full(self):
        return self.capacity is not None and len(self.lines) >= self.capacity

    def evict(self):
        idx = self.eviction.select(self.lines)
        return self.lines.pop(idx)

    def insert(self, line):
        self.lines.append(line)


class _LeaseCacheBase:
    kind = "lease"

    def __init__(self, num_sets):
        if num_sets < 1:
            raise ConfigurationError(f"number of sets must be >= 1, got {num_sets}")
        self.num_sets = num_sets
        self.sets = []
        self.steps = 0
        self.misses = 0
        self.expirations = 0

    @property
    def hits(self):
        return self.steps - self.misses

    def resident_lines(self):
        return sum(len(s) for s in self.sets)

    def _target_set(self, line):
        if not 0 <= line.set_index < self.num_sets:
            raise ConfigurationError(
                f"set index {line.set_index} out of range for {self.num_sets} sets"
            )
        return self.sets[line.set_index]

    def _on_miss(self, cache_set):
        pass

    def access(self, line):
        """
        Run one step for `line` (a freshly built CacheLine carrying its
        assigned lease). Returns True on a hit.
        """
        target = self._target_set(line)

        # aging always happens before the hit test
        for s in self.sets:
            self.expirations += s.age()

        resident = target.find(line.tag)
        if resident is not None:
            resident.remaining_lease = line.remaining_lease
            hit = True
        else:
            self.misses += 1
            self._on_miss(target)
            line.tenancy = 0
            target.insert(line)
            hit = False

        self.steps += 1
        return hit

    def miss_ratio(self):
        return self.misses / self.steps if self.steps else 0.0

    def check_invariants(self):
        if self.misses > self.steps:
            raise InvariantViolation(f"misses ({self.misses}) exceed steps ({self.steps})")

    def _status_header(self):
        raise NotImplementedError

    def write_status(self, path):
        """Append a human-readable dump of the cache to `path`."""
        with open(path, "a") as f:
            f.write(self._status_header() + "\n")
            for idx, s in enumerate(self.sets):
                if not s.lines:
                    continue
                f.write(f"*CacheSet index: {idx}\n")
                for line in s.lines:
                    f.write(line.describe() + "\n")


class LeaseCache(_LeaseCacheBase):
    """
    Physical lease cache: `num_sets` sets of `cache_size // num_sets` lines.
    A miss into a full set forces out a resident picked by `eviction`.
    """

    kind = "physical"

    def __init__(self, cache_size, num_sets, eviction=None, rng=None):
        super().__init__(num_sets)
        self.cache_size = cache_size
        self.capacity = cache_size // num_sets
        if self.capacity < 1:
            raise ConfigurationError(
                f"cache size {cache_size} is too small for {num_sets} sets"
            )
        self.eviction = eviction if eviction is not None else RandomEviction(rng)
        self.sets = [LeaseCacheSet(self.capacity, self.eviction) for _ in range(num_sets)]
        self.forced_evictions = 0

    def _on_miss(self, cache_set):
        if cache_set.is_full():
            cache_set.evict()
            self.forced_evictions += 1

    def forced_eviction_ratio(self):
        return self.forced_evictions / self.steps if self.steps else 0.0

    def check_invariants(self):
        super().check_invariants()
        if self.forced_evictions > self.misses:
            raise InvariantViolation(
                f"forced evictions ({self.forced_evictions}) exceed misses ({self.misses})"
            )
        for idx, s in enumerate(self.sets):
            if len(s) > self.capacity:
                raise InvariantViolation(
                    f"set {idx} holds {len(s)} lines, capacity is {self.capacity}"
                )

    def _status_header(self):
        return (
            f"----The cache status: step: {self.steps}, physical cache size: {self.resident_lines()}, "
            f"num of forced eviction: {self.forced_evictions}, num of misses: {self.misses}"
        )


class VirtualLeaseCache(_LeaseCacheBase):
    """Same lease state machine without a capacity bound; lines only leave by expiry."""

    kind = "virtual"

    def __init__(self, num_sets):
        super().__init__(num_sets)
        self.sets = [LeaseCacheSet() for _ in range(num_sets)]

    def _status_header(self):
        return (
            f"---The virtual cache status: step: {self.steps}, virtual cache size: {self.resident_lines()}, "
            f"num of misses: {self.misses}"
        )
