# benchmark.py
import copy
import json
import os
import time

import numpy as np

from address import DEFAULT_ADDRESS_BITS, check_widths, decompose
from cache import LRUCache
from errors import ConfigurationError
from lease_cache import CacheLine, LeaseCache, RandomEviction, VirtualLeaseCache
from lease_table import load_lease_table
from oracle import OraclePredictor
from trace_source import Trace

MODES = ("physical", "virtual", "oracle", "lru")


def build_line(record, lease_table, rng, offset_bits, index_bits, address_bits=DEFAULT_ADDRESS_BITS):
    """Decompose the record's address and attach a freshly drawn lease."""
    block_offset, set_index, tag = decompose(record.address, offset_bits, index_bits, address_bits)
    lease = lease_table.assign(record.reference_id, rng)
    return CacheLine(
        address=record.address,
        tag=tag,
        set_index=set_index,
        block_offset=block_offset,
        remaining_lease=lease,
    )


def _int_option(section, key, default):
    value = section.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None


class BenchmarkRunner:
    def __init__(self, cfg, lease_table=None, trace=None):
        self.cfg = cfg
        sim_cfg = cfg.get("simulation", {})
        cache_cfg = cfg.get("cache", {})
        input_cfg = cfg.get("input", {})

        self.rng = np.random.default_rng(sim_cfg.get("random_seed", None))
        self.mode = sim_cfg.get("mode", "physical")
        if self.mode not in MODES:
            raise ConfigurationError(f"unknown mode {self.mode!r}, expected one of {', '.join(MODES)}")

        self.cache_size = _int_option(cache_cfg, "cache_size", 128)
        self.num_sets = _int_option(cache_cfg, "num_sets", 128)
        self.offset_bits = _int_option(cache_cfg, "offset_bits", 2)
        self.index_bits = _int_option(cache_cfg, "index_bits", 7)
        self.address_bits = _int_option(cache_cfg, "address_bits", DEFAULT_ADDRESS_BITS)
        check_widths(self.offset_bits, self.index_bits, self.address_bits)

        self.progress_every = _int_option(sim_cfg, "progress_every", 0)
        self.status_every = _int_option(sim_cfg, "status_every", 0)
        self.status_file = sim_cfg.get("status_file", None)

        # the LRU baseline never looks at leases
        self.lease_table = lease_table
        if self.lease_table is None and self.mode != "lru":
            path = input_cfg.get("lease_table")
            if not path:
                raise ConfigurationError("no lease table given")
            self.lease_table = load_lease_table(path, input_cfg.get("lease_table_format"))

        self.trace = trace
        if self.trace is None:
            path = input_cfg.get("trace")
            if not path:
                raise ConfigurationError("no trace given")
            self.trace = Trace(path)

        self.model = self._build_model()

    def _build_model(self):
        if self.mode == "physical":
            return LeaseCache(self.cache_size, self.num_sets, eviction=RandomEviction(self.rng))
        if self.mode == "virtual":
            return VirtualLeaseCache(self.num_sets)
        if self.mode == "lru":
            return LRUCache(self.cache_size, self.num_sets)
        return OraclePredictor(self.lease_table, rng=self.rng)

    def _step(self, record):
        if self.mode == "oracle":
            return self.model.predict(record)
        if self.mode == "lru":
            _, set_index, tag = decompose(record.address, self.offset_bits, self.index_bits, self.address_bits)
            return self.model.access(tag, set_index)
        line = build_line(record, self.lease_table, self.rng, self.offset_bits, self.index_bits, self.address_bits)
        return self.model.access(line)

    @property
    def steps(self):
        if self.mode == "lru":
            return self.model.accesses
        return self.model.steps

    def miss_ratio(self):
        return self.model.miss_ratio()

    def run(self):
        """
        Replay the whole trace through the selected model.
        Returns (summary, history) where history holds (step, miss_ratio) samples.
        """
        history = []
        start = time.time()
        try:
            for record in self.trace:
                self._step(record)
                n = self.steps
                if self.progress_every and n % self.progress_every == 0:
                    ratio = self.miss_ratio()
                    history.append((n, ratio))
                    print(f"[step {n}] misses={self.model.misses} miss_ratio={ratio:.6f}")
                if self.status_file and self.status_every and n % self.status_every == 0:
                    self.model.write_status(self.status_file)
        finally:
            # a Trace holds an open file; plain lists don't
            close = getattr(self.trace, "close", None)
            if close is not None:
                close()
        end = time.time()

        self.model.check_invariants()
        if not history or history[-1][0] != self.steps:
            history.append((self.steps, self.miss_ratio()))
        if self.status_file:
            self.model.write_status(self.status_file)
        return self.summary(end - start), history

    def summary(self, duration_s=0.0):
        summary = {
            "mode": self.mode,
            "cache_size": self.cache_size,
            "num_sets": self.num_sets,
            "offset_bits": self.offset_bits,
            "index_bits": self.index_bits,
            "steps": self.steps,
            "misses": self.model.misses,
            "hits": self.steps - self.model.misses,
            "miss_ratio": self.miss_ratio(),
            "duration_s": duration_s,
        }
        if self.mode == "physical":
            summary["forced_evictions"] = self.model.forced_evictions
            summary["forced_eviction_ratio"] = self.model.forced_eviction_ratio()
        if self.mode in ("physical", "virtual"):
            summary["resident_lines"] = self.model.resident_lines()
        return summary

    def save_results(self, summary, out_cfg):
        return save_results(summary, out_cfg)


def save_results(summary, out_cfg):
    path = out_cfg.get("results_path", os.path.join("results", "summary.json"))
    results_dir = os.path.dirname(path)
    if results_dir:
        os.makedirs(results_dir, exist_ok=True)
    with open(path, "w") as f:
        json.dump(summary, f, indent=2)
    return path


def format_summary(summary):
    lines = [f"Miss ratio: {summary['miss_ratio']}"]
    if "forced_evictions" in summary:
        lines.append(
            f"Force Eviction: {summary['forced_evictions']} / {summary['steps']} "
            f"({summary['forced_eviction_ratio']})"
        )
    lines.append(f"Time elapsed is: {summary['duration_s']:.3f}s")
    return lines


def compare_modes(cfg, lease_table=None, modes=MODES):
    """
    Run every mode over the same trace file and lease table, one fresh
    cache and trace pass per mode. Returns {mode: (summary, history)}.
    """
    input_cfg = cfg.get("input", {})
    if lease_table is None:
        path = input_cfg.get("lease_table")
        if not path:
            raise ConfigurationError("no lease table given")
        lease_table = load_lease_table(path, input_cfg.get("lease_table_format"))

    results = {}
    for mode in modes:
        mode_cfg = copy.deepcopy(cfg)
        mode_cfg.setdefault("simulation", {})["mode"] = mode
        runner = BenchmarkRunner(mode_cfg, lease_table=lease_table)
        print(f"Running mode: {mode}")
        results[mode] = runner.run()
    return results
