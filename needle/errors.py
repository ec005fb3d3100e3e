"""Error type and error codes raised by the container."""

from __future__ import annotations

import enum
import json
from collections.abc import Iterable


class ErrorCode(enum.IntEnum):
    """Category of a container failure."""

    UNKNOWN = 0
    SERVICE_NOT_FOUND = 1
    CIRCULAR_DEPENDENCY = 2
    DUPLICATE_SERVICE = 3
    RESOLUTION_FAILED = 4
    PROVIDER_FAILED = 5
    STARTUP_FAILED = 6
    SHUTDOWN_FAILED = 7
    HEALTH_CHECK_FAILED = 8
    SCOPE_NOT_FOUND = 9
    VALIDATION_FAILED = 10
    TIMEOUT = 11
    CONTAINER_NOT_STARTED = 12
    CONTAINER_ALREADY_STARTED = 13
    MODULE_APPLY_FAILED = 14
    MODULE_INVALID_PROVIDER = 15
    DECORATOR_FAILED = 16

    def __str__(self) -> str:
        return self.name


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


class NeedleError(Exception):
    """A container failure carrying a code, an optional service key and a cause."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        cause: BaseException | None = None,
        *,
        service: str = "",
        stack: Iterable[str] = (),
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause
        self.service = service
        self.stack = list(stack)
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        text = f"[{self.code}]"
        if self.service:
            text += f" service={_quote(self.service)}:"
        text += f" {self.message}"
        if self.cause is not None:
            text += f": {self.cause}"
        return text

    def with_service(self, service: str) -> NeedleError:
        """Attach the service key and return the same error."""
        self.service = service
        return self

    def with_stack(self, stack: Iterable[str]) -> NeedleError:
        """Attach a resolution chain and return the same error."""
        self.stack = list(stack)
        return self

    def matches(self, other: object) -> bool:
        """True when ``other`` is a container error with the same code."""
        return isinstance(other, NeedleError) and other.code == self.code


def service_not_found(service_type: str) -> NeedleError:
    return NeedleError(
        ErrorCode.SERVICE_NOT_FOUND,
        f"no provider registered for type {service_type}",
    ).with_service(service_type)


def circular_dependency(chain: Iterable[str]) -> NeedleError:
    chain = list(chain)
    return NeedleError(
        ErrorCode.CIRCULAR_DEPENDENCY,
        f"circular dependency detected: {' -> '.join(chain)}",
    ).with_stack(chain)


def duplicate_service(service_type: str) -> NeedleError:
    return NeedleError(
        ErrorCode.DUPLICATE_SERVICE,
        f"provider already registered for type {service_type}",
    ).with_service(service_type)


def resolution_failed(service_type: str, cause: BaseException | None) -> NeedleError:
    return NeedleError(
        ErrorCode.RESOLUTION_FAILED, f"failed to resolve {service_type}", cause
    ).with_service(service_type)


def provider_failed(service_type: str, cause: BaseException | None) -> NeedleError:
    return NeedleError(
        ErrorCode.PROVIDER_FAILED, f"provider for {service_type} returned error", cause
    ).with_service(service_type)


def startup_failed(service_type: str, cause: BaseException | None) -> NeedleError:
    return NeedleError(
        ErrorCode.STARTUP_FAILED, f"failed to start {service_type}", cause
    ).with_service(service_type)


def shutdown_failed(service_type: str, cause: BaseException | None) -> NeedleError:
    return NeedleError(
        ErrorCode.SHUTDOWN_FAILED, f"failed to stop {service_type}", cause
    ).with_service(service_type)


def health_check_failed(service_type: str, cause: BaseException | None) -> NeedleError:
    return NeedleError(
        ErrorCode.HEALTH_CHECK_FAILED, f"health check failed for {service_type}", cause
    ).with_service(service_type)


def validation_failed(cause: BaseException | None) -> NeedleError:
    return NeedleError(ErrorCode.VALIDATION_FAILED, "container validation failed", cause)


def decorator_type_mismatch(type_name: str) -> NeedleError:
    return NeedleError(ErrorCode.DECORATOR_FAILED, f"decorator type mismatch for {type_name}")


def _first_needle_error(err: BaseException | None) -> NeedleError | None:
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, NeedleError):
            return err
        seen.add(id(err))
        err = err.__cause__
    return None


def _has_code(err: BaseException | None, code: ErrorCode) -> bool:
    found = _first_needle_error(err)
    return found is not None and found.code == code


def is_not_found(err: BaseException | None) -> bool:
    return _has_code(err, ErrorCode.SERVICE_NOT_FOUND)


def is_circular_dependency(err: BaseException | None) -> bool:
    return _has_code(err, ErrorCode.CIRCULAR_DEPENDENCY)


def is_duplicate_service(err: BaseException | None) -> bool:
    return _has_code(err, ErrorCode.DUPLICATE_SERVICE)


def is_resolution_failed(err: BaseException | None) -> bool:
    return _has_code(err, ErrorCode.RESOLUTION_FAILED)


def is_provider_failed(err: BaseException | None) -> bool:
    return _has_code(err, ErrorCode.PROVIDER_FAILED)


def is_startup_failed(err: BaseException | None) -> bool:
    return _has_code(err, ErrorCode.STARTUP_FAILED)


def is_shutdown_failed(err: BaseException | None) -> bool:
    return _has_code(err, ErrorCode.SHUTDOWN_FAILED)


def is_health_check_failed(err: BaseException | None) -> bool:
    return _has_code(err, ErrorCode.HEALTH_CHECK_FAILED)