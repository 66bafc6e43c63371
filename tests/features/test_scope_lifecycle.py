import pytest

from wirescope import ProviderKey, Scope, build_graph
from wirescope.errors import ScopeClosedError


class Client:
    def __init__(self):
        self.closed = False

    def close(self) -> None:
        self.closed = True


class Session:
    def __init__(self, client: Client):
        self.client = client


@pytest.fixture
def root_graph():
    root = Scope("application")
    root.register(Client, Client, cached=True)
    root.expose(Client)
    return build_graph(root)


def test_close_releases_cache_and_runs_callbacks(root_graph):
    order: list[str] = []
    scope = root_graph.scope
    client = root_graph.resolve(Client)
    scope.register_exit_callback(order.append, "first")
    scope.register_exit_callback(order.append, "second")
    scope.register_exit_callback(client.close)

    root_graph.close()

    assert client.closed
    assert order == ["second", "first"]
    assert len(scope.cache) == 0
    assert scope.is_closed


def test_resolve_after_close(root_graph):
    root_graph.close()

    with pytest.raises(ScopeClosedError):
        root_graph.resolve(Client)


def test_close_is_idempotent(root_graph):
    calls: list[int] = []
    root_graph.scope.register_exit_callback(calls.append, 1)

    root_graph.close()
    root_graph.close()

    assert calls == [1]


def test_child_scope_lifetime_is_shorter(root_graph):
    user = Scope("user")
    user.register(Session, Session, cached=True)

    with root_graph.child(user) as user_graph:
        session = user_graph.resolve(Session)
        assert session.client is root_graph.resolve(Client)

    assert user.is_closed
    assert not root_graph.is_closed
    # the parent keeps its cached client after the child is gone
    assert root_graph.resolve(Client) is session.client

    user_again = Scope("user")
    user_again.register(Session, Session, cached=True)
    new_session = root_graph.child(user_again).resolve(Session)
    assert new_session is not session
    assert new_session.client is session.client


def test_child_of_closed_parent(root_graph):
    user = Scope("user")
    user.register(Session, Session)
    user_graph = root_graph.child(user)

    root_graph.close()

    with pytest.raises(ScopeClosedError):
        user_graph.resolve(Session)

    with pytest.raises(ScopeClosedError):
        root_graph.child(Scope("late"))


def test_build_over_closed_scope():
    scope = Scope()
    scope.close()

    with pytest.raises(ScopeClosedError):
        build_graph(scope)

    with pytest.raises(ScopeClosedError):
        scope.register(Client, Client)


def test_scope_context_manager():
    with Scope("request") as scope:
        scope.register(Client, Client, cached=True)
        graph = build_graph(scope)
        client = graph.resolve(Client)
        scope.enter_context(_closing(client))

    assert client.closed
    assert ProviderKey(Client) not in scope.cache


class _closing:
    def __init__(self, client: Client):
        self.client = client

    def __enter__(self) -> Client:
        return self.client

    def __exit__(self, *exc_info: object) -> None:
        self.client.close()
