"""Inspection and printing of a container's dependency graph."""

from __future__ import annotations

import json
import sys
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TextIO

from needle.container import Container


@dataclass
class ServiceInfo:
    """One registered service and its place in the graph."""

    key: str
    dependencies: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)
    instantiated: bool = False
    scope: str = ""


@dataclass
class GraphInfo:
    """All services of a container, sorted by key."""

    services: list[ServiceInfo] = field(default_factory=list)


def graph(container: Container) -> GraphInfo:
    """Snapshot of the container's services and their dependency edges."""
    return GraphInfo(
        services=[
            ServiceInfo(
                key=key,
                dependencies=container.dependencies(key),
                dependents=container.dependents(key),
                instantiated=container.instance(key) is not None,
            )
            for key in sorted(container.keys())
        ]
    )


def _graph_lines(container: Container) -> Iterator[str]:
    info = graph(container)
    if not info.services:
        yield "(empty container)"
        return
    for svc in info.services:
        status = "●" if svc.instantiated else "○"
        if svc.dependencies:
            yield f"{status} {svc.key} ← {', '.join(svc.dependencies)}"
        else:
            yield f"{status} {svc.key}"


def format_graph(container: Container) -> str:
    """The graph as text, one service per line."""
    return "".join(f"{line}\n" for line in _graph_lines(container))


def print_graph(container: Container, file: TextIO | None = None) -> None:
    """Write the text graph to ``file`` (standard output by default)."""
    (file if file is not None else sys.stdout).write(format_graph(container))


def escape_label(key: str) -> str:
    """Short label for a key: no '*', and only what follows the last '/'."""
    key = key.replace("*", "")
    return key.rsplit("/", 1)[-1]


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _dot_lines(container: Container) -> Iterator[str]:
    info = graph(container)
    yield "digraph dependencies {"
    yield "  rankdir=LR;"
    yield "  node [shape=box];"
    for svc in info.services:
        style = ", style=filled, fillcolor=lightblue" if svc.instantiated else ""
        yield f"  {_quote(svc.key)} [label={_quote(escape_label(svc.key))}{style}];"
    yield ""
    for svc in info.services:
        for dep in svc.dependencies:
            yield f"  {_quote(svc.key)} -> {_quote(dep)};"
    yield "}"


def format_graph_dot(container: Container) -> str:
    """The graph in Graphviz DOT format."""
    return "".join(f"{line}\n" for line in _dot_lines(container))


def print_graph_dot(container: Container, file: TextIO | None = None) -> None:
    """Write the DOT graph to ``file`` (standard output by default)."""
    (file if file is not None else sys.stdout).write(format_graph_dot(container))