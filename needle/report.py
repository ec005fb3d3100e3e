"""Parsing, grouping and ranking of `go test -bench` output."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

_BENCH_LINE = re.compile(
    r"^Benchmark(\w+)-\d+\s+(\d+)\s+([\d.]+) ns/op\s+(\d+) B/op\s+(\d+) allocs/op",
    re.ASCII,
)
_NAME = re.compile(r"([^_]+)_([^_]+)_(\w+)", re.ASCII)

CATEGORY_ORDER = (
    "Provide_Simple",
    "Provide_Chain",
    "Invoke_Singleton",
    "Invoke_Chain",
    "Named_10",
    "Lifecycle_10",
    "Lifecycle_50",
    "LifecycleWithWork_10",
    "LifecycleWithWork_50",
)

_TITLES = {
    "Provide_Simple": "Provider Registration (Simple)",
    "Provide_Chain": "Provider Registration (Dependency Chain)",
    "Invoke_Singleton": "Service Resolution (Singleton)",
    "Invoke_Chain": "Service Resolution (Dependency Chain)",
    "Named_10": "Named Services (10 services)",
    "Lifecycle_10": "Lifecycle Start/Stop (10 services)",
    "Lifecycle_50": "Lifecycle Start/Stop (50 services)",
    "LifecycleWithWork_10": "Lifecycle with Work (10 services, 1ms each)",
    "LifecycleWithWork_50": "Lifecycle with Work (50 services, 1ms each)",
}

_BASE_FRAMEWORKS = ("Needle", "Do", "Dig", "Fx")


@dataclass
class BenchmarkResult:
    """One benchmark measurement, split into category, scenario and framework."""

    name: str
    framework: str = ""
    category: str = ""
    scenario: str = ""
    iterations: int = 0
    ns_per_op: float = 0.0
    bytes_per_op: int = 0
    allocs_per_op: int = 0

    def to_dict(self) -> dict[str, Any]:
        """The result under the keys used in the exported JSON."""
        return {
            "name": self.name,
            "framework": self.framework,
            "category": self.category,
            "scenario": self.scenario,
            "iterations": self.iterations,
            "ns_per_op": self.ns_per_op,
            "bytes_per_op": self.bytes_per_op,
            "allocs_per_op": self.allocs_per_op,
        }


@dataclass
class CategoryResults:
    """Results of one category and scenario, fastest first."""

    category: str
    results: list[BenchmarkResult] = field(default_factory=list)


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def _to_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def _split_name(name: str) -> tuple[str, str, str]:
    """Return (category, scenario, framework) for a benchmark name."""
    match = _NAME.fullmatch(name)
    if match:
        return match.group(1), match.group(2), match.group(3)
    parts = name.split("_")
    if len(parts) >= 2:
        return parts[0], "_".join(parts[1:-1]), parts[-1]
    return "", "", ""


def parse_results(output: str | bytes) -> list[BenchmarkResult]:
    """Parse benchmark lines; repeated runs of one benchmark are averaged."""
    if isinstance(output, bytes):
        output = output.decode("utf-8", errors="replace")

    runs: dict[str, list[BenchmarkResult]] = {}
    for line in output.splitlines():
        match = _BENCH_LINE.match(line)
        if match is None:
            continue
        name = match.group(1)
        category, scenario, framework = _split_name(name)
        runs.setdefault(name, []).append(
            BenchmarkResult(
                name=name,
                framework=framework,
                category=category,
                scenario=scenario,
                iterations=_to_int(match.group(2)),
                ns_per_op=_to_float(match.group(3)),
                bytes_per_op=_to_int(match.group(4)),
                allocs_per_op=_to_int(match.group(5)),
            )
        )

    results: list[BenchmarkResult] = []
    for measured in runs.values():
        count = len(measured)
        first = measured[0]
        results.append(
            BenchmarkResult(
                name=first.name,
                framework=first.framework,
                category=first.category,
                scenario=first.scenario,
                iterations=first.iterations,
                ns_per_op=sum(r.ns_per_op for r in measured) / count,
                bytes_per_op=int(sum(r.bytes_per_op for r in measured) / count),
                allocs_per_op=int(sum(r.allocs_per_op for r in measured) / count),
            )
        )
    return results


def group_by_category(results: list[BenchmarkResult]) -> list[CategoryResults]:
    """Group by category and scenario: known groups first in fixed order, then the rest."""
    groups: dict[str, list[BenchmarkResult]] = {}
    for result in results:
        groups.setdefault(f"{result.category}_{result.scenario}", []).append(result)

    keys = [key for key in CATEGORY_ORDER if key in groups]
    keys += [key for key in groups if key not in CATEGORY_ORDER]
    return [
        CategoryResults(key, sorted(groups[key], key=lambda r: r.ns_per_op)) for key in keys
    ]


def format_category_title(category: str) -> str:
    """Human-readable title of a category key."""
    title = _TITLES.get(category)
    if title is not None:
        return title
    return " ".join(
        part[:1].upper() + part[1:].lower() if part else part for part in category.split("_")
    )


def format_ns(ns: float) -> str:
    """Format a duration in nanoseconds as ns, us or ms."""
    if ns >= 1_000_000:
        return f"{ns / 1_000_000:.2f} ms"
    if ns >= 1_000:
        return f"{ns / 1_000:.2f} us"
    return f"{ns:.0f} ns"


def rank_frameworks(groups: list[CategoryResults]) -> list[tuple[str, int]]:
    """Frameworks with the number of categories each won, most wins first."""
    wins = dict.fromkeys(_BASE_FRAMEWORKS, 0)
    for group in groups:
        if not group.results:
            continue
        winner = group.results[0].framework
        if winner == "NeedleParallel":
            winner = "Needle"
        wins[winner] = wins.get(winner, 0) + 1
    return sorted(wins.items(), key=lambda item: item[1], reverse=True)