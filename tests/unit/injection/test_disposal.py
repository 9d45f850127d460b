import pytest

from grafter.config import ContainerSettings
from grafter.injection.container import Container
from grafter.injection.disposal import DisposalCoordinator, find_teardown
from grafter.injection.errors import DisposalError


class Resource:
    def __init__(self, name, log):
        self.name = name
        self._log = log
        self.dispose_count = 0

    def dispose(self):
        self.dispose_count += 1
        self._log.append(self.name)


class Closeable:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class AsyncResource:
    def __init__(self, name, log):
        self.name = name
        self._log = log

    async def aclose(self):
        self._log.append(self.name)


class Broken:
    def dispose(self):
        raise RuntimeError("teardown failed")


def test_find_teardown_prefers_explicit_callable():
    seen = []
    resource = Closeable()
    callback = find_teardown(resource, seen.append)
    callback()
    assert seen == [resource]
    assert not resource.closed


def test_find_teardown_method_order():
    class Both:
        def dispose(self):
            return "dispose"

        def close(self):
            return "close"

    assert find_teardown(Both())() == "dispose"
    assert find_teardown(Closeable()) is not None
    assert find_teardown(object()) is None
    assert find_teardown(None) is None
    assert find_teardown(Closeable) is None


def test_disposal_in_reverse_creation_order(container):
    log = []
    container.register_singleton("config", lambda: Resource("config", log))
    container.register_scoped(
        "db", lambda config: Resource("db", log), dependencies=["config"]
    )
    container.register_scoped("repo", lambda db: Resource("repo", log), dependencies=["db"])

    scope = container.create_scope()
    scope.resolve("repo")
    scope.dispose()
    assert log == ["repo", "db"]

    container.dispose()
    assert log == ["repo", "db", "config"]


def test_instances_disposed_exactly_once(container):
    log = []
    container.register_singleton("shared", lambda: Resource("shared", log))
    container.register_scoped("alias", lambda shared: shared, dependencies=["shared"])
    scope = container.create_scope()
    shared = scope.resolve("alias")

    scope.dispose()
    container.dispose()
    container.dispose()
    assert shared.dispose_count == 1


def test_same_instance_tracked_once(settings):
    log = []
    resource = Resource("shared", log)
    coordinator = DisposalCoordinator()
    container = Container(settings)
    scope = container.create_scope()
    assert coordinator.track(scope, resource)
    assert not coordinator.track(scope, resource)
    assert not coordinator.track(scope, object())
    coordinator.dispose_all(scope)
    assert log == ["shared"]


def test_failures_are_aggregated(container):
    log = []
    container.register_scoped("first", lambda: Resource("first", log))
    container.register_scoped("broken_one", Broken)
    container.register_scoped("middle", lambda: Resource("middle", log))
    container.register_scoped("broken_two", Broken)

    scope = container.create_scope()
    for token in ("first", "broken_one", "middle", "broken_two"):
        scope.resolve(token)

    with pytest.raises(DisposalError) as exc:
        scope.dispose()
    error = exc.value
    assert len(error.failures) == 2
    assert all(isinstance(instance, Broken) for instance, _ in error.failures)
    assert all(isinstance(e, RuntimeError) for e in error.exceptions)
    assert error.context["failure_count"] == 2
    assert error.scope_id == scope.id
    assert log == ["middle", "first"]
    assert scope.disposed

    scope.dispose()


def test_child_failures_reported_by_parent(container):
    container.register_scoped("broken", Broken)
    parent = container.create_scope()
    child = parent.create_scope()
    child.resolve("broken")

    with pytest.raises(DisposalError) as exc:
        parent.dispose()
    assert len(exc.value.failures) == 1
    assert exc.value.scope_id == parent.id
    assert child.disposed


def test_explicit_teardown(container):
    released = []
    container.register_scoped("conn", object, teardown=released.append)
    with container.create_scope() as scope:
        conn = scope.resolve("conn")
    assert released == [conn]


def test_transients_untracked_by_default(container):
    log = []
    container.register_transient("tmp", lambda: Resource("tmp", log))
    with container.create_scope() as scope:
        scope.resolve("tmp")
    assert log == []


def test_transients_tracked_when_enabled():
    log = []
    container = Container(ContainerSettings(track_transients=True))
    container.register_transient("tmp", lambda: Resource("tmp", log))
    with container.create_scope() as scope:
        scope.resolve("tmp")
        scope.resolve("tmp")
    assert log == ["tmp", "tmp"]


def test_registered_instances_are_not_disposed(container):
    resource = Closeable()
    container.register_instance("external", resource)
    scope = container.create_scope()
    scope.register_instance("local", Closeable())
    assert container.resolve("external") is resource
    local = scope.resolve("local")

    scope.dispose()
    container.dispose()
    assert not resource.closed
    assert not local.closed


def test_sync_dispose_reports_async_teardown(container):
    log = []
    container.register_scoped("async_res", lambda: AsyncResource("async", log))
    scope = container.create_scope()
    scope.resolve("async_res")

    with pytest.raises(DisposalError) as exc:
        scope.dispose()
    assert isinstance(exc.value.exceptions[0], TypeError)
    assert "dispose_async" in str(exc.value.exceptions[0])
    assert log == []


@pytest.mark.asyncio
async def test_async_dispose_awaits_teardowns(container):
    log = []
    container.register_singleton("sync_res", lambda: Resource("sync", log))
    container.register_scoped(
        "async_res", lambda s: AsyncResource("async", log), dependencies=["sync_res"]
    )
    scope = container.create_scope()
    await scope.resolve_async("async_res")

    await container.dispose_scope_async(scope)
    assert log == ["async"]

    await container.dispose_async()
    assert log == ["async", "sync"]


@pytest.mark.asyncio
async def test_async_dispose_aggregates_failures(container):
    async def fail(resource):
        raise ConnectionError("already closed")

    log = []
    container.register_scoped("bad", object, teardown=fail)
    container.register_scoped("good", lambda: AsyncResource("good", log))
    scope = container.create_scope()
    await scope.resolve_async("good")
    await scope.resolve_async("bad")

    with pytest.raises(DisposalError) as exc:
        await scope.dispose_async()
    assert isinstance(exc.value.exceptions[0], ConnectionError)
    assert log == ["good"]


def test_container_context_manager():
    log = []
    with Container(ContainerSettings()) as container:
        container.register_singleton("res", lambda: Resource("res", log))
        container.resolve("res")
        scope = container.create_scope()
    assert log == ["res"]
    assert container.disposed
    assert scope.disposed


def test_instance_owned_by_first_tracking_scope(settings):
    log = []
    resource = Resource("shared", log)
    coordinator = DisposalCoordinator()
    container = Container(settings)
    first = container.create_scope()
    second = container.create_scope()
    assert coordinator.track(first, resource)
    assert not coordinator.track(second, resource)
    coordinator.dispose_all(second)
    assert log == []
    coordinator.dispose_all(first)
    assert log == ["shared"]
