from typing import Annotated

import pytest

from wirescope import Module, Named, ProviderKey, Scope, build_graph
from wirescope.errors import DuplicateKeyError, MissingAnnotationError

BASE_URL = ProviderKey(str, "base_url")


class Client:
    def __init__(self, base_url: Annotated[str, Named("base_url")]):
        self.base_url = base_url


class ApiInterface:
    def __init__(self, client: Client):
        self.client = client


def network_module() -> Module:
    network = Module("network")
    network.make(str).named("base_url").value("https://api.example.com")

    @network.provides(cached=True, expose=True)
    def client(base_url: Annotated[str, Named("base_url")]) -> Client:
        return Client(base_url)

    return network


def test_module_collects_specs():
    network = network_module()

    assert len(network) == 2
    assert network.exposed == (ProviderKey(Client),)
    assert [spec.key for spec in network.specs] == [BASE_URL, ProviderKey(Client)]


def test_install_module():
    scope = Scope()
    scope.install(network_module())
    graph = build_graph(scope)

    assert graph.exposes(Client)
    assert not graph.exposes(BASE_URL)
    assert graph.resolve(Client) is graph.resolve(Client)
    assert graph.resolve(Client).base_url == "https://api.example.com"
    assert all(r.scope_name == "application" for r in scope.recipes.values())


def test_binding_builder():
    user = Module("user")
    user.make(ApiInterface).cached().exposed().type(ApiInterface)
    user.make(ProviderKey(ApiInterface, "manual")).depends_on(Client).func(
        lambda client: ApiInterface(client)
    )

    root = Scope()
    root.install(network_module())
    root_graph = build_graph(root)

    scope = Scope("user")
    scope.install(user)
    graph = root_graph.child(scope)

    assert graph.resolve(ApiInterface) is graph.resolve(ApiInterface)
    manual = graph.resolve(ApiInterface, "manual")
    assert manual is not graph.resolve(ApiInterface, "manual")
    assert manual.client is root_graph.resolve(Client)


def test_value_recipe_is_not_cached():
    network = network_module()
    scope = Scope()
    scope.install(network)

    assert scope.registry.lookup(BASE_URL).cached is False


def test_installing_twice_fails():
    scope = Scope()
    scope.install(network_module())

    with pytest.raises(DuplicateKeyError):
        scope.install(network_module())


def test_failed_install_adds_nothing():
    scope = Scope()
    scope.register(Client, lambda: Client("https://mirror.example.com"), depends_on=[])

    with pytest.raises(DuplicateKeyError) as exc_info:
        scope.install(network_module())

    assert exc_info.value.key == ProviderKey(Client)
    assert BASE_URL not in scope
    assert len(scope.recipes) == 1
    assert not scope.exposed


def test_duplicate_keys_across_installed_modules():
    scope = Scope()

    with pytest.raises(DuplicateKeyError):
        scope.install(network_module(), network_module())

    assert len(scope.recipes) == 0


def test_provides_requires_return_annotation():
    network = Module("network")

    with pytest.raises(MissingAnnotationError):

        @network.provides
        def client(base_url: Annotated[str, Named("base_url")]):
            return Client(base_url)


def test_provides_with_explicit_key():
    network = Module()

    @network.provides(key=ProviderKey(Client, "mirror"), depends_on=[])
    def mirror() -> Client:
        return Client("https://mirror.example.com")

    scope = Scope()
    scope.install(network)
    graph = build_graph(scope)

    assert graph.resolve(Client, "mirror").base_url == "https://mirror.example.com"
