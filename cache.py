# cache.py
from errors import ConfigurationError, InvariantViolation


class LRUCache:
    """
    Set-associative LRU cache used as the baseline.
    Each set is a list of [tag, valid] entries, most recently used first.
    `index` maps (set_index, tag) -> (set_index, position) so lookups
    don't have to scan the set.
    """

    def __init__(self, cache_size, num_sets):
        if num_sets < 1:
            raise ConfigurationError(f"number of sets must be >= 1, got {num_sets}")
        self.cache_size = cache_size
        self.num_sets = num_sets
        self.ways = cache_size // num_sets
        if self.ways < 1:
            raise ConfigurationError(
                f"cache size {cache_size} is too small for {num_sets} sets"
            )
        self.sets = [[] for _ in range(num_sets)]
        self.index = {}
        self.accesses = 0
        self.misses = 0

    def _reindex(self, set_index):
        for pos, (tag, _) in enumerate(self.sets[set_index]):
            self.index[(set_index, tag)] = (set_index, pos)

    def access(self, tag, set_index):
        """
        Access `tag` in set `set_index`. Return True if hit, False if miss.
        Updates LRU state.
        """
        if not 0 <= set_index < self.num_sets:
            raise ConfigurationError(
                f"set index {set_index} out of range for {self.num_sets} sets"
            )
        s = self.sets[set_index]
        self.accesses += 1
        found = self.index.get((set_index, tag))
        if found is not None:
            # hit -> move to the front (most recently used)
            entry = s.pop(found[1])
            s.insert(0, entry)
            hit = True
        else:
            # miss -> evict the tail if the set is full, insert at the front
            self.misses += 1
            if len(s) >= self.ways:
                victim_tag, _ = s.pop()
                del self.index[(set_index, victim_tag)]
            s.insert(0, [tag, True])
            hit = False
        self._reindex(set_index)
        return hit

    def miss_ratio(self, total_accesses=None):
        if total_accesses is None:
            total_accesses = self.accesses
        if total_accesses == 0:
            return 0.0
        return self.misses / total_accesses

    def check_invariants(self):
        for si, s in enumerate(self.sets):
            if len(s) > self.ways:
                raise InvariantViolation(f"set {si} holds {len(s)} entries, ways is {self.ways}")
            for pos, (tag, _) in enumerate(s):
                if self.index.get((si, tag)) != (si, pos):
                    raise InvariantViolation(f"index for tag {tag:#x} in set {si} is stale")
        if len(self.index) != sum(len(s) for s in self.sets):
            raise InvariantViolation("index holds entries that are no longer cached")

    def stats(self):
        used_lines = sum(len(s) for s in self.sets)
        return {
            "cache_size": self.cache_size,
            "num_sets": self.num_sets,
            "ways": self.ways,
            "used_lines": used_lines,
            "accesses": self.accesses,
            "misses": self.misses,
        }

    def write_status(self, path):
        with open(path, "a") as f:
            f.write(f"LRU Cache status: num of misses: {self.misses}\n")
            for si, s in enumerate(self.sets):
                if not s:
                    continue
                f.write(f"*CacheSet index: {si}\n")
                for tag, valid in s:
                    f.write(f"tag: {tag:x}, set_index: {si:x}, valid: {valid}\n")
