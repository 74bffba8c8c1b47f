# main.py
import argparse
import copy
import json
import sys

from benchmark import MODES, BenchmarkRunner, compare_modes, format_summary, save_results
from errors import ConfigurationError, InvariantViolation
from visualize import plot_hit_miss_rate, plot_miss_ratio_progress, plot_mode_comparison

DEFAULT_CONFIG = {
    "input": {
        "trace": "../testInput/trace.txt",
        "lease_table": "../testInput/testTable.txt",
        "lease_table_format": None,
    },
    "cache": {
        "cache_size": 128,
        "num_sets": 128,
        "offset_bits": 2,
        "index_bits": 7,
        "address_bits": 64,
    },
    "simulation": {
        "mode": "physical",
        "random_seed": None,
        "progress_every": 0,
        "status_every": 0,
        "status_file": None,
    },
    "output": {
        "results_path": "results/summary.json",
        "miss_plot": None,
        "progress_plot": None,
    },
}

# flag dest -> (section, key)
FLAG_KEYS = {
    "trace": ("input", "trace"),
    "lease_table": ("input", "lease_table"),
    "lease_table_format": ("input", "lease_table_format"),
    "cache_size": ("cache", "cache_size"),
    "num_sets": ("cache", "num_sets"),
    "offset_bits": ("cache", "offset_bits"),
    "index_bits": ("cache", "index_bits"),
    "mode": ("simulation", "mode"),
    "seed": ("simulation", "random_seed"),
    "progress_every": ("simulation", "progress_every"),
    "status_every": ("simulation", "status_every"),
    "status_file": ("simulation", "status_file"),
    "results": ("output", "results_path"),
    "plot": ("output", "miss_plot"),
    "progress_plot": ("output", "progress_plot"),
}


def load_config(path=None):
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    if path is None:
        return cfg
    with open(path, "r") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ConfigurationError(f"config {path} must hold a JSON object")
    for section, values in data.items():
        if not isinstance(values, dict):
            raise ConfigurationError(f"config section {section!r} must be an object")
        cfg.setdefault(section, {}).update(values)
    return cfg


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Lease cache simulator")
    parser.add_argument("--config", default=None, help="JSON config file (flags override it)")
    parser.add_argument("-t", "--trace", default=None, help="Path of the trace file")
    parser.add_argument("-l", "--lease-table", default=None, help="Path of the lease table file")
    parser.add_argument("--lease-table-format", choices=["txt", "csv"], default=None, help="Lease table format (default: by extension)")
    parser.add_argument("-m", "--mode", choices=list(MODES) + ["all"], default=None, help="Simulation mode")
    parser.add_argument("-a", "--num-sets", type=int, default=None, help="Number of cache sets")
    parser.add_argument("-o", "--offset-bits", type=int, default=None, help="Length of the block offset")
    parser.add_argument("-s", "--index-bits", type=int, default=None, help="Length of the set index")
    parser.add_argument("-c", "--cache-size", type=int, default=None, help="Cache size in lines")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--progress-every", type=int, default=None, help="Print the miss ratio every N accesses")
    parser.add_argument("--status-every", type=int, default=None, help="Dump cache status every N accesses")
    parser.add_argument("--status-file", default=None, help="File the cache status is appended to")
    parser.add_argument("--results", default=None, help="Where to write the JSON summary")
    parser.add_argument("--plot", default=None, help="Hit/miss (or mode comparison) plot path")
    parser.add_argument("--progress-plot", default=None, help="Miss ratio progression plot path")
    return parser.parse_args(argv)


def apply_args(cfg, args):
    for dest, (section, key) in FLAG_KEYS.items():
        value = getattr(args, dest, None)
        if value is not None:
            cfg.setdefault(section, {})[key] = value
    return cfg


def print_parameters(cfg):
    inp, cache, sim = cfg["input"], cfg["cache"], cfg["simulation"]
    print(
        "Current Parameters: "
        f"Trace Path: {inp.get('trace')}  "
        f"Lease Table Path: {inp.get('lease_table')}  "
        f"Sets: {cache.get('num_sets')}  "
        f"Cache Size: {cache.get('cache_size')}  "
        f"Offset: {cache.get('offset_bits')}  "
        f"Set: {cache.get('index_bits')}  "
        f"Running Mode: {sim.get('mode')}"
    )


def run(cfg):
    out_cfg = cfg.get("output", {})
    mode = cfg["simulation"].get("mode", "physical")

    if mode == "all":
        results = compare_modes(cfg)
        summaries = {m: summary for m, (summary, _) in results.items()}
        for m, summary in summaries.items():
            print(f"== {m}")
            for line in format_summary(summary):
                print(line)
        results_path = save_results(summaries, out_cfg)
        if out_cfg.get("miss_plot"):
            plot_mode_comparison(summaries, out_cfg["miss_plot"])
        print("Results saved to:", results_path)
        return summaries

    runner = BenchmarkRunner(cfg)
    summary, history = runner.run()
    for line in format_summary(summary):
        print(line)
    results_path = runner.save_results(summary, out_cfg)
    print("Results saved to:", results_path)

    # Plots
    if out_cfg.get("miss_plot"):
        plot_hit_miss_rate(summary["miss_ratio"], out_cfg["miss_plot"], title=f"{mode} hit/miss rate")
    if out_cfg.get("progress_plot"):
        plot_miss_ratio_progress(history, out_cfg["progress_plot"], title=f"{mode} miss ratio")
    return summary


def main(argv=None):
    args = parse_args(argv)
    try:
        cfg = apply_args(load_config(args.config), args)
        print_parameters(cfg)
        run(cfg)
    except InvariantViolation as exc:
        print(f"internal error: {exc}", file=sys.stderr)
        return 3
    except (ConfigurationError, OSError, json.JSONDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
