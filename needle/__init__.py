"""Dependency injection container with lifecycle hooks, binding, decorators, graph inspection and a benchmark report command."""

__version__ = "0.1.0"