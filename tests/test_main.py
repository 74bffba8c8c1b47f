import json

from main import DEFAULT_CONFIG, apply_args, load_config, main, parse_args


def write_inputs(tmp_path, refs=(1, 2)):
    leases = tmp_path / "leases.txt"
    leases.write_text("h\nh\n0, 1, 4, 8, 0.5\n0, 2, 3, 3, 1.0\n")
    trace = tmp_path / "trace.csv"
    rows = ["reference,reuse_interval,address"]
    for i in range(30):
        rows.append(f"{refs[i % len(refs)]:#x},{i % 7:#x},{(i * 5) % 32:#x}")
    trace.write_text("\n".join(rows) + "\n")
    return leases, trace


def base_args(tmp_path, leases, trace):
    return [
        "-t", str(trace), "-l", str(leases),
        "-c", "8", "-a", "2", "-o", "2", "-s", "1",
        "--seed", "3",
        "--results", str(tmp_path / "results" / "summary.json"),
    ]


def test_physical_run_writes_summary_and_plots(tmp_path, capsys):
    leases, trace = write_inputs(tmp_path)
    argv = base_args(tmp_path, leases, trace) + [
        "-m", "physical",
        "--plot", str(tmp_path / "pie.png"),
        "--progress-plot", str(tmp_path / "progress.png"),
    ]
    assert main(argv) == 0
    summary = json.loads((tmp_path / "results" / "summary.json").read_text())
    assert summary["steps"] == 30
    assert summary["forced_evictions"] <= summary["misses"]
    assert (tmp_path / "pie.png").exists()
    assert (tmp_path / "progress.png").exists()
    out = capsys.readouterr().out
    assert "Current Parameters:" in out
    assert "Force Eviction:" in out


def test_all_modes(tmp_path):
    leases, trace = write_inputs(tmp_path)
    argv = base_args(tmp_path, leases, trace) + ["-m", "all", "--plot", str(tmp_path / "modes.png")]
    assert main(argv) == 0
    summaries = json.loads((tmp_path / "results" / "summary.json").read_text())
    assert sorted(summaries) == ["lru", "oracle", "physical", "virtual"]
    assert {s["steps"] for s in summaries.values()} == {30}
    assert (tmp_path / "modes.png").exists()


def test_unknown_reference_exits_with_error(tmp_path, capsys):
    leases, trace = write_inputs(tmp_path, refs=(1, 7))
    assert main(base_args(tmp_path, leases, trace) + ["-m", "virtual"]) == 2
    assert "error:" in capsys.readouterr().err


def test_missing_trace_exits_with_error(tmp_path):
    leases, _ = write_inputs(tmp_path)
    argv = base_args(tmp_path, leases, tmp_path / "nope.csv") + ["-m", "oracle"]
    assert main(argv) == 2


def test_config_file_is_overlaid_by_flags(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"cache": {"num_sets": 4}, "simulation": {"mode": "lru"}}))
    cfg = load_config(str(path))
    assert cfg["cache"]["num_sets"] == 4
    assert cfg["cache"]["cache_size"] == DEFAULT_CONFIG["cache"]["cache_size"]
    cfg = apply_args(cfg, parse_args(["-a", "8", "-m", "oracle"]))
    assert cfg["cache"]["num_sets"] == 8
    assert cfg["simulation"]["mode"] == "oracle"
    # defaults are not shared between loads
    assert DEFAULT_CONFIG["cache"]["num_sets"] == 128


def test_config_file_run(tmp_path):
    leases, trace = write_inputs(tmp_path)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "input": {"trace": str(trace), "lease_table": str(leases)},
        "cache": {"cache_size": 8, "num_sets": 2, "offset_bits": 2, "index_bits": 1},
        "simulation": {"mode": "virtual", "random_seed": 0},
        "output": {"results_path": str(tmp_path / "s.json")},
    }))
    assert main(["--config", str(path)]) == 0
    assert json.loads((tmp_path / "s.json").read_text())["mode"] == "virtual"


def test_bad_config_file_exits_with_error(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2]")
    assert main(["--config", str(path)]) == 2


def test_unreadable_trace_exits_with_error(tmp_path, capsys):
    leases, trace = write_inputs(tmp_path)
    trace.write_bytes(b"reference,reuse_interval,address\n0x1,0x1,\xff\xfe\n")
    assert main(base_args(tmp_path, leases, trace) + ["-m", "oracle"]) == 2
    assert "error:" in capsys.readouterr().err

    trace.write_text("reference,reuse_interval,address\n0x1,0x1," + "f" * 200_000 + "\n")
    assert main(base_args(tmp_path, leases, trace) + ["-m", "oracle"]) == 2


def test_string_config_value_exits_with_error(tmp_path):
    leases, trace = write_inputs(tmp_path)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "input": {"trace": str(trace), "lease_table": str(leases)},
        "cache": {"num_sets": "many"},
        "output": {"results_path": str(tmp_path / "s.json")},
    }))
    assert main(["--config", str(path), "-m", "physical"]) == 2
