"""Rendering of benchmark results as terminal tables, Markdown and JSON."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable

from tabulate import tabulate

from needle.report import (
    BenchmarkResult,
    CategoryResults,
    format_category_title,
    format_ns,
    rank_frameworks,
)

_RESET = "\033[0m"
_BOLD_CYAN = "\033[1m\033[36m"
_DIM = "\033[2m"

_FRAMEWORK_COLORS = {
    "Needle": "\033[32m",
    "NeedleParallel": "\033[36m",
    "Do": "\033[33m",
    "Dig": "\033[35m",
    "Fx": "\033[34m",
}

_MEDALS = ("🥇", "🥈", "🥉")
_ANSI = re.compile(r"\x1b\[[0-9;]*m")

_BANNER_TOP = "╔══════════════════════════════════════════════════════════════════╗"
_BANNER_BOTTOM = "╚══════════════════════════════════════════════════════════════════╝"


def _banner(text: str) -> str:
    return "".join(
        f"{_BOLD_CYAN}{line}{_RESET}\n" for line in (_BANNER_TOP, text, _BANNER_BOTTOM)
    )


def render_header(markdown: bool) -> str:
    """The report heading."""
    if markdown:
        return "# Needle DI Framework Benchmark Results\n\n"
    return _banner("║         🪡  Needle DI Framework Benchmark Suite                  ║") + "\n"


def _comparison(index: int, result: BenchmarkResult, fastest: float) -> str:
    if index == 0:
        return "fastest"
    if fastest > 0:
        return f"{result.ns_per_op / fastest:.1f}x slower"
    return ""


def render_category(category: CategoryResults, markdown: bool) -> str:
    """One category's results as a table; empty when it holds no results."""
    if not category.results:
        return ""

    title = format_category_title(category.category)
    fastest = category.results[0].ns_per_op
    rows = []
    for index, result in enumerate(category.results):
        name = result.framework
        color = _FRAMEWORK_COLORS.get(result.framework)
        if not markdown and color:
            name = f"{color}{name}{_RESET}"
        rows.append(
            [
                name,
                format_ns(result.ns_per_op),
                f"{result.bytes_per_op} B",
                str(result.allocs_per_op),
                _comparison(index, result, fastest),
            ]
        )

    last = "Comparison" if markdown else "vs Fastest"
    headers = ["Framework", "Time", "Memory", "Allocs", last]
    if markdown:
        table = tabulate(rows, headers=headers, tablefmt="github", disable_numparse=True)
        return f"### {title}\n\n{table}\n\n"

    table = tabulate(rows, headers=headers, tablefmt="rounded_outline", disable_numparse=True)
    width = max(len(_ANSI.sub("", line)) for line in table.splitlines())
    return f"{title.center(width).rstrip()}\n{table}\n\n"


def render_summary(groups: list[CategoryResults], markdown: bool) -> str:
    """Ranking of frameworks by the number of categories won."""
    ranking = rank_frameworks(groups)
    total = len(groups)

    def medal(index: int) -> str:
        return _MEDALS[index] if index < len(_MEDALS) else ""

    if markdown:
        lines = ["## Summary", "", "| Rank | Framework | Wins |", "|------|-----------|------|"]
        lines += [
            f"| {medal(i)} | {name} | {wins}/{total} |" for i, (name, wins) in enumerate(ranking)
        ]
        lines += [
            "",
            "**Frameworks compared:**",
            "- **Needle** - This library",
            "- **samber/do** - Generics-based DI",
            "- **uber/dig** - Reflection-based DI",
            "- **uber/fx** - Full application framework",
            "",
        ]
        return "".join(f"{line}\n" for line in lines)

    rows = [[medal(i), name, f"{wins}/{total}"] for i, (name, wins) in enumerate(ranking)]
    table = tabulate(
        rows, headers=["Rank", "Framework", "Wins"], tablefmt="rounded_outline", disable_numparse=True
    )
    parts = [
        _banner("║                           Summary                                ║"),
        "\n",
        f"{table}\n\n",
        f"{_DIM}\033[1mFrameworks compared:{_RESET}\n",
        f"  \033[32m• Needle{_RESET}       - This library\n",
        f"  \033[33m• samber/do{_RESET}    - Generics-based DI\n",
        f"  \033[35m• uber/dig{_RESET}     - Reflection-based DI\n",
        f"  \033[34m• uber/fx{_RESET}      - Full application framework\n",
        "\n",
    ]
    return "".join(parts)


def _json_number(value: float) -> float | int:
    return int(value) if float(value).is_integer() else value


def results_to_json(results: Iterable[BenchmarkResult]) -> str:
    """The results as an indented JSON document under the key ``benchmarks``."""
    entries = []
    for result in results:
        data = result.to_dict()
        data["ns_per_op"] = _json_number(data["ns_per_op"])
        entries.append(data)
    return json.dumps({"benchmarks": entries}, indent=2, ensure_ascii=False)