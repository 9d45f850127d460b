import threading

import pytest

from grafter.config import ContainerSettings
from grafter.injection.container import Container
from grafter.injection.errors import CircularDependencyError


def _tracking_factory(name, built):
    def factory(*deps):
        built.append(name)
        return name

    return factory


def test_cycle_detected_on_freeze(container):
    built = []
    container.register_transient("a", _tracking_factory("a", built), dependencies=["b"])
    container.register_transient("b", _tracking_factory("b", built), dependencies=["c"])
    container.register_transient("c", _tracking_factory("c", built), dependencies=["a"])

    with pytest.raises(CircularDependencyError) as exc:
        container.freeze()
    assert exc.value.path == ("a", "b", "c", "a")
    assert not container.is_frozen
    assert built == []


def test_cycle_detected_on_resolve_without_running_factories():
    container = Container(ContainerSettings(validate_on_freeze=False))
    built = []
    container.register_transient("a", _tracking_factory("a", built), dependencies=["b"])
    container.register_transient("b", _tracking_factory("b", built), dependencies=["c"])
    container.register_transient("c", _tracking_factory("c", built), dependencies=["a"])

    with pytest.raises(CircularDependencyError) as exc:
        container.resolve("a")
    error = exc.value
    assert error.path == ("a", "b", "c", "a")
    assert "a -> b -> c -> a" in error.message
    assert error.context["dependency_chain"] == ["a", "b", "c", "a"]
    assert error.context["circular_dependency"] is True
    assert built == []


def test_cycle_reported_from_entry_point():
    container = Container(ContainerSettings(validate_on_freeze=False))
    container.register_transient("entry", lambda b: b, dependencies=["b"])
    container.register_transient("b", lambda c: c, dependencies=["c"])
    container.register_transient("c", lambda b: b, dependencies=["b"])

    with pytest.raises(CircularDependencyError) as exc:
        container.resolve("entry")
    assert exc.value.path == ("b", "c", "b")


def test_self_dependency(container):
    container.register_singleton("loop", lambda x: x, dependencies=["loop"])
    with pytest.raises(CircularDependencyError) as exc:
        container.resolve("loop")
    assert exc.value.path == ("loop", "loop")


def test_cycle_through_singletons_does_not_deadlock():
    container = Container(ContainerSettings(validate_on_freeze=False))
    container.register_singleton("a", lambda b: b, dependencies=["b"])
    container.register_singleton("b", lambda a: a, dependencies=["a"])

    errors = []

    def worker():
        try:
            container.resolve("a")
        except CircularDependencyError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert not any(thread.is_alive() for thread in threads)
    assert len(errors) == 10


def test_cycle_introduced_by_scope_override(container):
    container.register_singleton("config", dict)
    container.register_scoped("db", lambda config: config, dependencies=["config"])
    scope = container.create_scope()
    scope.register("config", lambda db: db, lifecycle="scoped", dependencies=["db"])

    with pytest.raises(CircularDependencyError) as exc:
        scope.resolve("db")
    assert exc.value.path == ("db", "config", "db")
    assert container.create_scope().resolve("db") == {}


@pytest.mark.asyncio
async def test_cycle_detected_on_async_path():
    container = Container(ContainerSettings(validate_on_freeze=False))

    async def build(dep):
        return dep

    container.register_singleton("a", build, dependencies=["b"])
    container.register_singleton("b", build, dependencies=["a"])

    with pytest.raises(CircularDependencyError) as exc:
        await container.resolve_async("a")
    assert exc.value.path == ("a", "b", "a")
