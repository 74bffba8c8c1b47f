# oracle.py
import numpy as np

from errors import InvariantViolation
from lease_table import assign_lease


class OraclePredictor:
    """
    Predicts hit/miss straight from the trace, with no cache state:
    an access hits when its reuse interval is strictly shorter than the
    lease drawn for it.
    """

    def __init__(self, lease_table, rng=None):
        self.lease_table = lease_table
        self.rng = rng if rng is not None else np.random.default_rng()
        self.hits = 0
        self.misses = 0
        self.total = 0

    @property
    def steps(self):
        return self.total

    def predict(self, record):
        lease = assign_lease(self.lease_table.query(record.reference_id), self.rng)
        hit = record.reuse_interval < lease
        if hit:
            self.hits += 1
        else:
            self.misses += 1
        self.total += 1
        return hit

    def check_invariants(self):
        if self.hits + self.misses != self.total:
            raise InvariantViolation(
                f"hits ({self.hits}) + misses ({self.misses}) != total accesses ({self.total})"
            )

    def miss_ratio(self):
        self.check_invariants()
        return self.misses / self.total if self.total else 0.0

    def write_status(self, path):
        with open(path, "a") as f:
            f.write(f"Oracle status: accesses: {self.total}, hits: {self.hits}, misses: {self.misses}\n")
