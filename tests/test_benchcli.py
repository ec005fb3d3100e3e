import json
import subprocess
from unittest.mock import patch

from needle.benchcli import BENCH_COMMAND, export_json, main, run_benchmarks
from needle.report import BenchmarkResult, parse_results

SAMPLE = (
    "goos: linux\n"
    "BenchmarkInvoke_Singleton_Needle-8 \t 1000000\t 20.00 ns/op\t 0 B/op\t 0 allocs/op\n"
    "BenchmarkInvoke_Singleton_Do-8 \t 500000\t 40.00 ns/op\t 16 B/op\t 1 allocs/op\n"
    "PASS\n"
)


def _completed(stdout):
    return subprocess.CompletedProcess(list(BENCH_COMMAND), 0, stdout=stdout, stderr="")


@patch("needle.benchcli.subprocess.run")
def test_run_benchmarks_invokes_go_test(mock_run):
    mock_run.return_value = _completed(SAMPLE)
    assert run_benchmarks("bench") == SAMPLE
    args, kwargs = mock_run.call_args
    assert args[0][:2] == ["go", "test"]
    assert "-benchmem" in args[0]
    assert kwargs["cwd"] == "bench"


@patch("needle.benchcli.subprocess.run")
def test_main_markdown_report(mock_run, capsys):
    mock_run.return_value = _completed(SAMPLE)
    assert main(["-md", "somewhere"]) == 0
    out = capsys.readouterr().out
    assert "# Needle DI Framework Benchmark Results" in out
    assert "### Service Resolution (Singleton)" in out
    assert "## Summary" in out
    assert "Running benchmarks" not in out
    assert mock_run.call_args.kwargs["cwd"] == "somewhere"


@patch("needle.benchcli.subprocess.run")
def test_main_terminal_report_default_dir(mock_run, capsys):
    mock_run.return_value = _completed(SAMPLE)
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "Running benchmarks..." in out
    assert "vs Fastest" in out
    assert mock_run.call_args.kwargs["cwd"] == ".."


@patch("needle.benchcli.subprocess.run")
def test_main_reports_failure(mock_run, capsys):
    mock_run.side_effect = subprocess.CalledProcessError(
        1, list(BENCH_COMMAND), output="", stderr="build failed"
    )
    assert main(["-md"]) == 1
    err = capsys.readouterr().err
    assert "Benchmark failed: build failed" in err


@patch("needle.benchcli.subprocess.run")
def test_main_exports_json(mock_run, tmp_path, monkeypatch, capsys):
    mock_run.return_value = _completed(SAMPLE)
    monkeypatch.chdir(tmp_path)
    assert main(["-md", "-json"]) == 0
    data = json.loads((tmp_path / "benchmark_results.json").read_text(encoding="utf-8"))
    names = {entry["name"] for entry in data["benchmarks"]}
    assert names == {"Invoke_Singleton_Needle", "Invoke_Singleton_Do"}
    assert "benchmark_results.json" in capsys.readouterr().out


def test_export_json_round_trip(tmp_path):
    results = parse_results(SAMPLE)
    path = export_json(results, tmp_path / "out.json")
    data = json.loads(path.read_text(encoding="utf-8"))
    assert [BenchmarkResult(**entry) for entry in data["benchmarks"]] == results