from typing import Annotated

import pytest

from wirescope import Injected, Injector, Named, ProviderKey, Scope, build_graph, injected
from wirescope.errors import UnknownKeyError, UnresolvedAnnotationError, UnsatisfiedSlotError

BASE_URL = ProviderKey(str, "base_url")


class Client:
    def __init__(self, base_url: Annotated[str, Named("base_url")]):
        self.base_url = base_url


class ApiInterface:
    def __init__(self, client: Client):
        self.client = client


class Preferences:
    pass


class MainScreen:
    api: Injected[ApiInterface]
    title: str = "repositories"


class SettingsScreen:
    preferences: Injected[Preferences]
    client: Annotated[Client, injected()]
    base_url: Annotated[str, injected("base_url")]


class DetailScreen(MainScreen):
    client: Injected[Client]


@pytest.fixture
def root_graph():
    root = Scope("application")
    root.register_value(BASE_URL, "https://api.example.com")
    root.register(Client, Client, cached=True)
    root.register(Preferences, Preferences, cached=True)
    root.expose(Client, Preferences)
    return build_graph(root)


@pytest.fixture
def user_graph(root_graph):
    user = Scope("user")
    user.register(ApiInterface, ApiInterface, cached=True)
    user.expose(ApiInterface)
    return root_graph.child(user)


def test_inject_shares_cached_instance_across_targets(user_graph):
    injector = Injector(user_graph)

    first = injector.inject(MainScreen())
    second = injector.inject(MainScreen())

    assert isinstance(first.api, ApiInterface)
    assert first.api is second.api
    assert first.api.client.base_url == "https://api.example.com"


def test_inject_returns_target_and_keeps_other_attributes(user_graph):
    screen = MainScreen()
    assert Injector(user_graph).inject(screen) is screen
    assert screen.title == "repositories"


def test_inject_is_idempotent(user_graph):
    injector = Injector(user_graph)
    screen = injector.inject(MainScreen())
    api = screen.api

    injector.inject(screen)
    assert screen.api is api


def test_inherited_slots(user_graph):
    screen = Injector(user_graph).inject(DetailScreen())

    assert isinstance(screen.api, ApiInterface)
    assert screen.client is screen.api.client


def test_slots_from_ancestor_graph(user_graph):
    screen = Injector(user_graph).inject(MainScreen())
    settings = SettingsScreen()

    with pytest.raises(UnsatisfiedSlotError) as exc_info:
        Injector(user_graph).inject(settings)

    # base_url is internal to the application scope
    assert exc_info.value.slot_name == "base_url"
    assert exc_info.value.key == BASE_URL
    assert not hasattr(settings, "preferences")
    assert screen.api is not None


def test_own_graph_provides_internal_keys(root_graph):
    settings = Injector(root_graph).inject(SettingsScreen())

    assert settings.base_url == "https://api.example.com"
    assert settings.client is root_graph.resolve(Client)
    assert isinstance(settings.preferences, Preferences)


def test_unsatisfied_slot(root_graph):
    with pytest.raises(UnsatisfiedSlotError) as exc_info:
        Injector(root_graph).inject(MainScreen())

    assert exc_info.value.slot_name == "api"
    assert exc_info.value.key == ProviderKey(ApiInterface)


def test_explicit_slots(user_graph):
    class Plain:
        pass

    target = Injector(user_graph).inject(Plain(), {"api": ApiInterface, "prefs": Preferences})

    assert isinstance(target.api, ApiInterface)
    assert isinstance(target.prefs, Preferences)


def test_grandparent_exposed_keys_reachable(user_graph):
    request_graph = user_graph.child(Scope("request"))
    injector = Injector(request_graph)

    screen = injector.inject(DetailScreen())
    assert screen.client is screen.api.client
    assert injector.can_provide(Client)
    assert not injector.can_provide(BASE_URL)


def test_get(user_graph):
    injector = Injector(user_graph)

    assert injector.get(ApiInterface) is user_graph.resolve(ApiInterface)
    with pytest.raises(UnknownKeyError):
        injector.get(str, "base_url")


def test_call_resolves_parameters(user_graph):
    def handler(api: ApiInterface, prefs: Preferences, limit: int = 10) -> tuple:
        return api, prefs, limit

    api, prefs, limit = Injector(user_graph).call(handler)

    assert api is user_graph.resolve(ApiInterface)
    assert isinstance(prefs, Preferences)
    assert limit == 10


def test_call_overrides(user_graph):
    def handler(api: ApiInterface, limit: int) -> tuple:
        return api, limit

    injector = Injector(user_graph)
    marker = ApiInterface(Client("other"))

    assert injector.call(handler, api=marker, limit=3) == (marker, 3)

    with pytest.raises(UnsatisfiedSlotError):
        injector.call(handler)


def test_unresolvable_annotation_fails_injection(root_graph):
    class BrokenScreen:
        other: "Undefined"  # type: ignore # noqa: F821
        client: Injected[Client]

    screen = BrokenScreen()
    with pytest.raises(UnresolvedAnnotationError) as exc_info:
        Injector(root_graph).inject(screen)

    assert exc_info.value.target_type is BrokenScreen
    assert "Undefined" in exc_info.value.message
    assert not hasattr(screen, "client")
