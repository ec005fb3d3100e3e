# needle

A small dependency injection container for Python applications, plus a
command that runs a benchmark suite and reports its results.

The container registers services under a key, builds each one once on first
use, starts and stops them in dependency order, and lets you inspect the
dependency graph.

## Features

- `Container.provide` registers a factory for a type (optionally under a
  name); `Container.provide_value` registers an existing object;
  `Container.register` registers a factory under a raw key.
- Services are singletons: the factory runs once, on first `invoke` or
  `resolve`, and the instance is kept.
- `needle.bind.bind` / `bind_named` make an interface key resolve to an
  implementation's key.
- `needle.bind.decorate` / `decorate_named` wrap each newly built instance;
  decorators run in the order they were added.
- Lifecycle: `start()` builds the non-lazy services and runs their start hooks
  level by level in dependency order; `stop()` runs stop hooks in reverse.
  Lazy services are built on first use, and their start hooks run then if the
  container is running. `Container(parallel=True)` runs each level in threads;
  `Container(shutdown_timeout=...)` gives up between batches once the deadline
  has passed.
- `validate()` checks that every declared dependency is registered and that
  the declared dependencies form no cycle.
- Observers: `on_resolve`, `on_start` and `on_stop` callbacks receive
  `(key, seconds, error)`; `on_provide` receives the key.
- Errors are `needle.errors.NeedleError` with an `ErrorCode`; helpers such as
  `is_not_found`, `is_circular_dependency` and `is_startup_failed` test for a
  code, following the `__cause__` chain to the first container error.
- `needle.debug` prints the graph as text or as Graphviz DOT.

## Installation

```
pip install needle
```

## Usage

Factories receive the container and fetch what they need from it.
`dependencies` declares edges for validation, start-up order and the graph.

```python
from needle.container import Container, type_key


class Config:
    def __init__(self, url: str) -> None:
        self.url = url


class Database:
    def __init__(self, config: Config) -> None:
        self.url = config.url


container = Container()
container.provide_value(Config("postgres://localhost/mydb"))
container.provide(
    Database,
    lambda c: Database(c.invoke(Config)),
    dependencies=[type_key(Config)],
)

container.validate()
db = container.invoke(Database)
print(db.url)
```

Keys come from `type_key(cls, name)`: the module and qualified name of the
class, with `#name` appended for named services. `invoke(cls, name=...)`
resolves by type; `resolve(key)` resolves by key. A missing key raises a
`NeedleError` with `ErrorCode.SERVICE_NOT_FOUND`; an exception raised by a
factory is wrapped with `ErrorCode.PROVIDER_FAILED`.

### Binding and decorating

```python
from needle.bind import bind, decorate

container.provide(PostgresRepo, lambda c: PostgresRepo())
bind(container, Repository, PostgresRepo)
decorate(container, Repository, lambda c, repo: LoggingRepo(repo))

repo = container.invoke(Repository)
```

If the decorated class is a real type and the instance is not an instance of
it, resolution fails with `ErrorCode.DECORATOR_FAILED`.

### Lifecycle

```python
container.provide(Server, make_server, on_start=lambda: ..., on_stop=lambda: ...)
container.start()
...
container.stop()
```

`Container.run(stop_event)` starts the container, waits for the event or for
SIGINT/SIGTERM (signals are handled only on the main thread), then stops it.

### Inspecting the graph

```python
from needle.debug import format_graph, format_graph_dot, graph

print(format_graph(container))      # ● built, ○ not yet built
print(format_graph_dot(container))  # Graphviz DOT
info = graph(container)             # GraphInfo with ServiceInfo entries
```

`print_graph` and `print_graph_dot` write the same text to a file, standard
output by default.

## Command

`needle-bench` runs `go test -bench=. -benchmem -count=1 -benchtime=50ms` in a
directory (`..` by default), so a Go toolchain must be installed. It prints
the results grouped by category and scenario, fastest first, and a summary of
how many categories each framework won. `--md` prints Markdown tables
instead, and `--json` also writes the results to `benchmark_results.json`.
It exits with status 1 if the benchmark run fails.

```
needle-bench
needle-bench --md path/to/benchmarks
needle-bench --json
```

The parsing, grouping and rendering are available as functions in
`needle.report` (`parse_results`, `group_by_category`, `rank_frameworks`, …)
and `needle.render` (`render_category`, `render_summary`, `results_to_json`).

## What it does not do

- No auto-wiring: constructor parameters and class attributes are not
  resolved automatically; factories fetch their dependencies themselves.
- Only singleton services: there are no transient, per-request or pooled
  scopes, no modules, and no health checks.
- No bundled example command.

## Running the tests

```
pip install -e ".[test]"
pytest
```