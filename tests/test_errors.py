import pytest

from needle.errors import (
    ErrorCode,
    NeedleError,
    circular_dependency,
    decorator_type_mismatch,
    duplicate_service,
    health_check_failed,
    is_circular_dependency,
    is_duplicate_service,
    is_health_check_failed,
    is_not_found,
    is_provider_failed,
    is_resolution_failed,
    is_shutdown_failed,
    is_startup_failed,
    provider_failed,
    resolution_failed,
    service_not_found,
    shutdown_failed,
    startup_failed,
    validation_failed,
)


def test_error_code_names_appear_in_messages():
    assert str(NeedleError(ErrorCode.SERVICE_NOT_FOUND, "m")) == "[SERVICE_NOT_FOUND] m"
    assert str(NeedleError(ErrorCode.DECORATOR_FAILED, "m")) == "[DECORATOR_FAILED] m"
    assert NeedleError(ErrorCode.UNKNOWN, "m").code == 0


def test_not_found_message_format():
    err = service_not_found("Foo")
    text = str(err)
    assert text.startswith("[SERVICE_NOT_FOUND]")
    assert 'service="Foo":' in text
    assert text.endswith("no provider registered for type Foo")
    assert err.service == "Foo"


def test_cause_is_appended():
    cause = ValueError("boom")
    err = provider_failed("Svc", cause)
    assert str(err).endswith(": boom")
    assert err.cause is cause
    assert err.__cause__ is cause


def test_message_without_service():
    err = validation_failed(None)
    assert str(err) == "[VALIDATION_FAILED] container validation failed"


def test_circular_dependency_records_chain():
    err = circular_dependency(["a", "b", "a"])
    assert err.stack == ["a", "b", "a"]
    assert "a -> b -> a" in str(err)
    assert is_circular_dependency(err)


def test_with_service_and_stack_return_same_error():
    err = NeedleError(ErrorCode.UNKNOWN, "x")
    assert err.with_service("svc") is err
    assert err.service == "svc"
    assert err.with_stack(["k"]) is err
    assert err.stack == ["k"]


def test_matches_compares_codes():
    first = service_not_found("a")
    second = service_not_found("b")
    assert first.matches(second)
    assert not first.matches(duplicate_service("a"))
    assert not first.matches(ValueError("a"))


@pytest.mark.parametrize(
    "err, check",
    [
        (service_not_found("x"), is_not_found),
        (duplicate_service("x"), is_duplicate_service),
        (resolution_failed("x", None), is_resolution_failed),
        (provider_failed("x", None), is_provider_failed),
        (startup_failed("x", None), is_startup_failed),
        (shutdown_failed("x", None), is_shutdown_failed),
        (health_check_failed("x", None), is_health_check_failed),
    ],
)
def test_predicates_match_own_code(err, check):
    assert check(err)
    assert check(err) != check(NeedleError(ErrorCode.UNKNOWN, "other"))


def test_predicates_reject_plain_exceptions():
    assert is_not_found(ValueError("x")) is False
    assert is_startup_failed(None) is False


def test_predicate_looks_at_outermost_container_error():
    err = validation_failed(service_not_found("x"))
    assert not is_not_found(err)
    assert is_not_found(err.cause)


def test_predicate_walks_through_foreign_wrappers():
    inner = service_not_found("x")
    try:
        try:
            raise inner
        except NeedleError as exc:
            raise RuntimeError("wrapped") from exc
    except RuntimeError as outer:
        assert is_not_found(outer)


def test_decorator_type_mismatch():
    err = decorator_type_mismatch("Repo")
    assert err.code is ErrorCode.DECORATOR_FAILED
    assert "decorator type mismatch for Repo" in str(err)