"""Command that runs the Go benchmark suite and reports the results."""

from __future__ import annotations

import argparse
import subprocess
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path

from needle.render import render_category, render_header, render_summary, results_to_json
from needle.report import BenchmarkResult, group_by_category, parse_results

BENCH_COMMAND = ("go", "test", "-bench=.", "-benchmem", "-count=1", "-benchtime=50ms")
DEFAULT_JSON_PATH = "benchmark_results.json"


def run_benchmarks(bench_dir: str | Path = "..") -> str:
    """Run the benchmarks in ``bench_dir`` and return their standard output.

    Raises ``subprocess.CalledProcessError`` when the run fails.
    """
    completed = subprocess.run(
        list(BENCH_COMMAND),
        cwd=bench_dir,
        capture_output=True,
        text=True,
        check=True,
    )
    return completed.stdout


def export_json(
    results: Iterable[BenchmarkResult], path: str | Path = DEFAULT_JSON_PATH
) -> Path:
    """Write the results as JSON to ``path`` and return it."""
    target = Path(path)
    target.write_text(results_to_json(results), encoding="utf-8")
    return target


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="needle-bench", description="Run the benchmark suite and print a report."
    )
    parser.add_argument("-md", "--md", dest="markdown", action="store_true",
                        help="output in markdown format")
    parser.add_argument("-json", "--json", dest="json_out", action="store_true",
                        help="export results to a JSON file")
    parser.add_argument("bench_dir", nargs="?", default="..",
                        help="directory holding the benchmarks")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    out = sys.stdout

    out.write("\n")
    out.write(render_header(args.markdown))
    if not args.markdown:
        out.write("\033[2mRunning benchmarks...\033[0m\n\n")

    try:
        output = run_benchmarks(args.bench_dir)
    except subprocess.CalledProcessError as exc:
        sys.stderr.write(f"Benchmark failed: {exc.stderr or ''}\n")
        return 1
    except OSError as exc:
        sys.stderr.write(f"Benchmark failed: {exc}\n")
        return 1

    results = parse_results(output)
    groups = group_by_category(results)
    for group in groups:
        out.write(render_category(group, args.markdown))
    out.write(render_summary(groups, args.markdown))

    if args.json_out:
        path = export_json(results)
        out.write(f"\033[2mResults exported to {path}\033[0m\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())