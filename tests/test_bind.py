import abc
from dataclasses import dataclass, field

import pytest

from needle.bind import bind, bind_named, decorate, decorate_named
from needle.container import Container, type_key
from needle.errors import ErrorCode, NeedleError


class UserRepository(abc.ABC):
    @abc.abstractmethod
    def find_by_id(self, user_id: int) -> str: ...


class PostgresUserRepository(UserRepository):
    def find_by_id(self, user_id: int) -> str:
        return f"user {user_id}"


@dataclass
class LoggingRepository(UserRepository):
    inner: UserRepository
    calls: list = field(default_factory=list)

    def find_by_id(self, user_id: int) -> str:
        self.calls.append(user_id)
        return self.inner.find_by_id(user_id)


@dataclass
class MetricsRepository(UserRepository):
    inner: UserRepository

    def find_by_id(self, user_id: int) -> str:
        return self.inner.find_by_id(user_id)


def make_container() -> Container:
    c = Container()
    c.provide(PostgresUserRepository, lambda _c: PostgresUserRepository())
    return c


def test_bind_resolves_to_implementation_instance():
    c = make_container()
    key = bind(c, UserRepository, PostgresUserRepository)

    assert key == type_key(UserRepository)
    repo = c.invoke(UserRepository)
    assert repo is c.invoke(PostgresUserRepository)


def test_bind_declares_implementation_dependency():
    c = make_container()
    key = bind(c, UserRepository, PostgresUserRepository)
    assert c.dependencies(key) == [type_key(PostgresUserRepository)]
    c.validate()


def test_bind_twice_is_duplicate():
    c = make_container()
    bind(c, UserRepository, PostgresUserRepository)
    with pytest.raises(NeedleError) as info:
        bind(c, UserRepository, PostgresUserRepository)
    assert info.value.code == ErrorCode.DUPLICATE_SERVICE


def test_bind_without_implementation_fails_validation():
    c = Container()
    bind(c, UserRepository, PostgresUserRepository)
    with pytest.raises(NeedleError) as info:
        c.validate()
    assert info.value.code == ErrorCode.VALIDATION_FAILED


def test_bind_named_uses_named_key():
    c = make_container()
    key = bind_named(c, UserRepository, PostgresUserRepository, "session")

    assert key == type_key(UserRepository, "session")
    assert not c.has(type_key(UserRepository))
    assert c.invoke(UserRepository, name="session") is c.invoke(PostgresUserRepository)


def test_bind_hooks_run_with_lifecycle():
    events = []
    c = make_container()
    bind(
        c,
        UserRepository,
        PostgresUserRepository,
        on_start=lambda: events.append("start"),
        on_stop=lambda: events.append("stop"),
    )
    c.start()
    assert events == ["start"]
    c.stop()
    assert events == ["start", "stop"]


def test_decorators_apply_in_order():
    c = make_container()
    bind(c, UserRepository, PostgresUserRepository)
    decorate(c, UserRepository, lambda _c, repo: LoggingRepository(inner=repo))
    decorate(c, UserRepository, lambda _c, repo: MetricsRepository(inner=repo))

    repo = c.invoke(UserRepository)

    assert isinstance(repo, MetricsRepository)
    assert isinstance(repo.inner, LoggingRepository)
    assert repo.inner.inner is c.invoke(PostgresUserRepository)
    assert repo.find_by_id(42) == PostgresUserRepository().find_by_id(42)
    assert repo.inner.calls == [42]


def test_decorated_singleton_is_cached():
    built = []

    def wrap(_c, repo):
        wrapped = LoggingRepository(inner=repo)
        built.append(wrapped)
        return wrapped

    c = make_container()
    bind(c, UserRepository, PostgresUserRepository)
    decorate(c, UserRepository, wrap)

    first = c.invoke(UserRepository)
    second = c.invoke(UserRepository)

    assert len(built) == 1
    assert first is built[0]
    assert second is built[0]


def test_decorator_type_mismatch():
    c = Container()
    c.provide_value("not a repository", cls=UserRepository)
    decorate(c, UserRepository, lambda _c, repo: repo)

    with pytest.raises(NeedleError) as info:
        c.invoke(UserRepository)
    assert info.value.code == ErrorCode.DECORATOR_FAILED


def test_decorate_named_only_touches_named_service():
    c = make_container()
    bind(c, UserRepository, PostgresUserRepository)
    bind_named(c, UserRepository, PostgresUserRepository, "primary")
    decorate_named(c, UserRepository, "primary", lambda _c, repo: LoggingRepository(inner=repo))

    assert isinstance(c.invoke(UserRepository, name="primary"), LoggingRepository)
    assert c.invoke(UserRepository) is c.invoke(PostgresUserRepository)


def test_decorator_receives_container():
    seen = []
    c = make_container()
    bind(c, UserRepository, PostgresUserRepository)
    decorate(c, UserRepository, lambda container, repo: seen.append(container) or repo)
    c.invoke(UserRepository)
    assert seen == [c]