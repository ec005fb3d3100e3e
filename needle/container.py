"""Dependency injection container with singleton services and a lifecycle."""

from __future__ import annotations

import logging
import signal
import threading
import time
from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from needle.errors import (
    ErrorCode,
    NeedleError,
    circular_dependency,
    duplicate_service,
    provider_failed,
    service_not_found,
    shutdown_failed,
    startup_failed,
    validation_failed,
)

Hook = Callable[[], Any]
Provider = Callable[["Container"], Any]
Decorator = Callable[["Container", Any], Any]


def type_key(cls: type | str, name: str | None = None) -> str:
    """Registry key of a type, optionally qualified by a name."""
    if isinstance(cls, str):
        key = cls
    else:
        module = getattr(cls, "__module__", "")
        qualname = getattr(cls, "__qualname__", None) or getattr(cls, "__name__", repr(cls))
        key = qualname if module in ("", "builtins") else f"{module}.{qualname}"
    return f"{key}#{name}" if name else key


def _as_hooks(hooks: Hook | Iterable[Hook] | None) -> list[Hook]:
    if hooks is None:
        return []
    if callable(hooks):
        return [hooks]
    return list(hooks)


@dataclass
class _Service:
    key: str
    provider: Provider
    dependencies: list[str] = field(default_factory=list)
    lazy: bool = False
    instance: Any = None
    instantiated: bool = False


class Container:
    """Holds providers, builds singletons on demand and runs lifecycle hooks."""

    def __init__(
        self,
        *,
        logger: logging.Logger | None = None,
        parallel: bool = False,
        shutdown_timeout: float | timedelta | None = None,
        on_resolve: Sequence[Callable[[str, float, BaseException | None], Any]] = (),
        on_provide: Sequence[Callable[[str], Any]] = (),
        on_start: Sequence[Callable[[str, float, BaseException | None], Any]] = (),
        on_stop: Sequence[Callable[[str, float, BaseException | None], Any]] = (),
    ) -> None:
        if isinstance(shutdown_timeout, timedelta):
            shutdown_timeout = shutdown_timeout.total_seconds()
        self.logger = logger or logging.getLogger("needle")
        self.parallel = parallel
        self.shutdown_timeout = shutdown_timeout
        self._resolve_observers = list(on_resolve)
        self._provide_observers = list(on_provide)
        self._start_observers = list(on_start)
        self._stop_observers = list(on_stop)
        self._services: dict[str, _Service] = {}
        self._decorators: dict[str, list[Decorator]] = defaultdict(list)
        self._start_hooks: dict[str, list[Hook]] = defaultdict(list)
        self._stop_hooks: dict[str, list[Hook]] = defaultdict(list)
        self._lock = threading.RLock()
        self._local = threading.local()
        self._running = False
        self._started: list[str] = []

    # registration

    def register(self, key: str, provider: Provider, dependencies: Iterable[str] | None = None) -> None:
        """Register a provider under a raw key."""
        self._register(key, provider, dependencies, lazy=False)

    def _register(self, key, provider, dependencies, *, lazy):
        with self._lock:
            if key in self._services:
                raise duplicate_service(key)
            self._services[key] = _Service(key, provider, list(dependencies or ()), lazy)
        self.logger.debug("registered %s", key)
        for observer in self._provide_observers:
            observer(key)

    def provide(
        self,
        cls: type | str,
        provider: Provider,
        *,
        name: str | None = None,
        dependencies: Iterable[str] | None = None,
        on_start: Hook | Iterable[Hook] | None = None,
        on_stop: Hook | Iterable[Hook] | None = None,
        lazy: bool = False,
    ) -> str:
        """Register a provider for a type and return its key."""
        key = type_key(cls, name)
        self._register(key, provider, dependencies, lazy=lazy)
        for hook in _as_hooks(on_start):
            self.add_on_start(key, hook)
        for hook in _as_hooks(on_stop):
            self.add_on_stop(key, hook)
        return key

    def provide_value(self, value: Any, *, cls: type | str | None = None, name: str | None = None) -> str:
        """Register an existing value; its type is used unless ``cls`` is given."""
        return self.provide(cls if cls is not None else type(value), lambda _c: value, name=name)

    def add_decorator(self, key: str, decorator: Decorator) -> None:
        with self._lock:
            self._decorators[key].append(decorator)

    def add_on_start(self, key: str, hook: Hook) -> None:
        with self._lock:
            self._start_hooks[key].append(hook)

    def add_on_stop(self, key: str, hook: Hook) -> None:
        with self._lock:
            self._stop_hooks[key].append(hook)

    # queries

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._services

    def dependencies(self, key: str) -> list[str]:
        with self._lock:
            service = self._services.get(key)
            return list(service.dependencies) if service else []

    def dependents(self, key: str) -> list[str]:
        with self._lock:
            return [k for k, s in self._services.items() if key in s.dependencies]

    def instance(self, key: str) -> Any:
        """The built instance for ``key``, or None when it has not been built."""
        with self._lock:
            service = self._services.get(key)
            return service.instance if service and service.instantiated else None

    def size(self) -> int:
        with self._lock:
            return len(self._services)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._services)

    # resolution

    def invoke(self, cls: type | str, *, name: str | None = None) -> Any:
        return self.resolve(type_key(cls, name))

    def resolve(self, key: str) -> Any:
        """Return the singleton for ``key``, building it on first use."""
        began = time.perf_counter()
        error: BaseException | None = None
        try:
            return self._resolve(key)
        except BaseException as exc:
            error = exc
            raise
        finally:
            elapsed = time.perf_counter() - began
            for observer in self._resolve_observers:
                observer(key, elapsed, error)

    def _stack(self) -> list[str]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = self._local.stack = []
        return stack

    def _resolve(self, key: str) -> Any:
        with self._lock:
            service = self._services.get(key)
            if service is None:
                raise service_not_found(key)
            if service.instantiated:
                return service.instance
            stack = self._stack()
            if key in stack:
                raise circular_dependency([*stack[stack.index(key):], key])
            stack.append(key)
            try:
                instance = self._create(service)
            finally:
                stack.pop()
            service.instance = instance
            service.instantiated = True
            needs_start = service.lazy and self._running and key not in self._started
        if needs_start:
            self._run_start_hooks(key)
        return instance

    def _create(self, service: _Service) -> Any:
        try:
            instance = service.provider(self)
        except NeedleError:
            raise
        except Exception as exc:
            raise provider_failed(service.key, exc) from exc
        for decorator in list(self._decorators.get(service.key, ())):
            try:
                instance = decorator(self, instance)
            except NeedleError:
                raise
            except Exception as exc:
                raise NeedleError(
                    ErrorCode.DECORATOR_FAILED, f"decorator for {service.key} failed", exc
                ).with_service(service.key) from exc
        return instance

    # validation

    def validate(self) -> None:
        """Check that every declared dependency exists and none form a cycle."""
        try:
            with self._lock:
                for service in self._services.values():
                    for dep in service.dependencies:
                        if dep not in self._services:
                            raise service_not_found(dep)
                self._levels()
        except NeedleError as exc:
            raise validation_failed(exc) from exc

    def _levels(self) -> list[list[str]]:
        depth: dict[str, int] = {}
        visiting: list[str] = []

        def visit(key: str) -> int:
            if key in depth:
                return depth[key]
            if key in visiting:
                raise circular_dependency([*visiting[visiting.index(key):], key])
            visiting.append(key)
            deps = [d for d in self._services[key].dependencies if d in self._services]
            level = 1 + max((visit(d) for d in deps), default=-1)
            visiting.pop()
            depth[key] = level
            return level

        for key in self._services:
            visit(key)
        grouped: dict[int, list[str]] = defaultdict(list)
        for key, level in depth.items():
            grouped[level].append(key)
        return [grouped[level] for level in sorted(grouped)]

    # lifecycle

    def start(self) -> None:
        """Build eager services and run their start hooks in dependency order."""
        try:
            self._start_all()
        except NeedleError as exc:
            raise startup_failed("container", exc) from exc

    def stop(self) -> None:
        """Run stop hooks of started services in reverse order."""
        deadline = None
        if self.shutdown_timeout and self.shutdown_timeout > 0:
            deadline = time.monotonic() + self.shutdown_timeout
        try:
            self._stop_all(deadline)
        except NeedleError as exc:
            raise shutdown_failed("container", exc) from exc

    def run(self, stop_event: threading.Event | None = None) -> None:
        """Start, wait for SIGINT, SIGTERM or ``stop_event``, then stop."""
        self.start()
        event = stop_event if stop_event is not None else threading.Event()
        previous: dict[int, Any] = {}
        if threading.current_thread() is threading.main_thread():
            for sig in (signal.SIGINT, signal.SIGTERM):
                previous[sig] = signal.signal(sig, lambda *_: event.set())
        try:
            while not event.wait(0.1):
                pass
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler if handler is not None else signal.SIG_DFL)
        self.stop()

    def _start_all(self) -> None:
        with self._lock:
            if self._running:
                raise NeedleError(ErrorCode.CONTAINER_ALREADY_STARTED, "container already started")
            levels = self._levels()
            self._running = True
            self._started.clear()
        self.logger.debug("starting %d services", sum(map(len, levels)))
        try:
            for level in levels:
                eager = [k for k in level if not self._services[k].lazy]
                errors = self._run_batch(self._bring_up, eager, stop_on_error=True)
                if errors:
                    raise errors[0]
        except Exception:
            self._rollback()
            raise

    def _bring_up(self, key: str) -> None:
        try:
            self.resolve(key)
        except NeedleError as exc:
            raise startup_failed(key, exc) from exc
        with self._lock:
            already = key in self._started
        if not already:
            self._run_start_hooks(key)

    def _run_start_hooks(self, key: str) -> None:
        with self._lock:
            hooks = list(self._start_hooks.get(key, ()))
        began = time.perf_counter()
        error: NeedleError | None = None
        try:
            for hook in hooks:
                hook()
        except Exception as exc:
            error = startup_failed(key, exc)
        else:
            with self._lock:
                self._started.append(key)
        elapsed = time.perf_counter() - began
        for observer in self._start_observers:
            observer(key, elapsed, error)
        if error is not None:
            raise error

    def _run_stop_hooks(self, key: str) -> None:
        with self._lock:
            hooks = list(self._stop_hooks.get(key, ()))
        began = time.perf_counter()
        error: NeedleError | None = None
        try:
            for hook in hooks:
                hook()
        except Exception as exc:
            error = shutdown_failed(key, exc)
        elapsed = time.perf_counter() - began
        for observer in self._stop_observers:
            observer(key, elapsed, error)
        if error is not None:
            raise error

    def _run_batch(self, action: Callable[[str], None], keys: list[str], *, stop_on_error: bool) -> list[BaseException]:
        errors: list[BaseException] = []
        if self.parallel and len(keys) > 1:
            with ThreadPoolExecutor(max_workers=len(keys)) as pool:
                futures = [pool.submit(action, key) for key in keys]
            errors = [f.exception() for f in futures if f.exception() is not None]
            return errors
        for key in keys:
            try:
                action(key)
            except NeedleError as exc:
                errors.append(exc)
                if stop_on_error:
                    break
        return errors

    def _rollback(self) -> None:
        with self._lock:
            started = list(self._started)
            self._started.clear()
            self._running = False
        for key in reversed(started):
            try:
                self._run_stop_hooks(key)
            except NeedleError as exc:
                self.logger.warning("rollback of %s failed: %s", key, exc)

    def _stop_batches(self, started: list[str]) -> list[list[str]]:
        if self.parallel:
            with self._lock:
                levels = self._levels()
            running = set(started)
            batches = [[k for k in level if k in running] for level in reversed(levels)]
            return [batch for batch in batches if batch]
        return [[key] for key in reversed(started)]

    def _stop_all(self, deadline: float | None) -> None:
        with self._lock:
            if not self._running:
                raise NeedleError(ErrorCode.CONTAINER_NOT_STARTED, "container not started")
            started = list(self._started)
            self._started.clear()
            self._running = False
        self.logger.debug("stopping %d services", len(started))
        errors: list[BaseException] = []
        for batch in self._stop_batches(started):
            if deadline is not None and time.monotonic() >= deadline:
                raise NeedleError(
                    ErrorCode.TIMEOUT, "shutdown deadline exceeded", errors[0] if errors else None
                )
            errors.extend(self._run_batch(self._run_stop_hooks, batch, stop_on_error=False))
        if errors:
            raise errors[0]