"""Binding interfaces to implementations and decorating resolved services."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from needle.container import Container, type_key
from needle.errors import decorator_type_mismatch

Hooks = Callable[[], Any] | Iterable[Callable[[], Any]] | None


def _hooks(hooks: Hooks) -> list[Callable[[], Any]]:
    if hooks is None:
        return []
    if callable(hooks):
        return [hooks]
    return list(hooks)


def bind(
    container: Container,
    interface: type | str,
    implementation: type | str,
    *,
    name: str | None = None,
    on_start: Hooks = None,
    on_stop: Hooks = None,
) -> str:
    """Make ``interface`` resolve to whatever ``implementation`` resolves to."""
    interface_key = type_key(interface, name)
    impl_key = type_key(implementation)
    container.register(interface_key, lambda c: c.resolve(impl_key), [impl_key])
    for hook in _hooks(on_start):
        container.add_on_start(interface_key, hook)
    for hook in _hooks(on_stop):
        container.add_on_stop(interface_key, hook)
    return interface_key


def bind_named(
    container: Container, interface: type | str, implementation: type | str, name: str
) -> str:
    """Bind ``interface`` under ``name`` to ``implementation``."""
    return bind(container, interface, implementation, name=name)


def _matches(instance: Any, cls: type | str) -> bool:
    if not isinstance(cls, type):
        return True
    try:
        return isinstance(instance, cls)
    except TypeError:
        # protocols that are not runtime checkable cannot be tested
        return True


def _wrap(cls: type | str, decorator: Callable[[Container, Any], Any]):
    def apply(container: Container, instance: Any) -> Any:
        if not _matches(instance, cls):
            raise decorator_type_mismatch(type_key(cls))
        return decorator(container, instance)

    return apply


def decorate(
    container: Container, cls: type | str, decorator: Callable[[Container, Any], Any]
) -> None:
    """Wrap every new instance of ``cls``; decorators apply in registration order."""
    container.add_decorator(type_key(cls), _wrap(cls, decorator))


def decorate_named(
    container: Container,
    cls: type | str,
    name: str,
    decorator: Callable[[Container, Any], Any],
) -> None:
    """Wrap every new instance of ``cls`` registered under ``name``."""
    container.add_decorator(type_key(cls, name), _wrap(cls, decorator))