from pathlib import Path
from typing import Annotated

import pytest

pytest.importorskip("graphviz")

from wirescope import Named, ProviderKey, Scope, build_graph
from wirescope.errors import UnknownKeyError
from wirescope.visual import Visualizer


class Client:
    def __init__(self, base_url: Annotated[str, Named("base_url")]):
        self.base_url = base_url


class ApiInterface:
    def __init__(self, client: Client):
        self.client = client


@pytest.fixture
def graphs():
    root = Scope("application")
    root.register_value(ProviderKey(str, "base_url"), "https://api.example.com")
    root.register(Client, Client, cached=True)
    root.expose(Client)
    root_graph = build_graph(root)

    user = Scope("user")
    user.register(ApiInterface, ApiInterface, cached=True)
    return root_graph, root_graph.child(user)


def test_visualizer(graphs):
    root_graph, _ = graphs
    vis = Visualizer(root_graph)
    assert vis.dot is None

    made = vis.make_graph()
    source = made.dot.source
    assert 'Client -> "str@base_url"' in source
    assert "shape=box" in source


def test_parent_keys_are_dashed(graphs):
    _, user_graph = graphs
    source = Visualizer(user_graph).make_graph().dot.source

    assert "ApiInterface -> Client" in source
    assert "style=dashed" in source


def test_make_node(graphs):
    root_graph, _ = graphs
    vis = Visualizer(root_graph).make_node(Client, {}, {})
    assert "Client" in vis.dot.source

    with pytest.raises(UnknownKeyError):
        Visualizer(root_graph).make_node(ApiInterface, {}, {})


def test_view(graphs):
    root_graph, _ = graphs
    assert Visualizer(root_graph).view is not None


def test_save(graphs, tmp_path: Path, monkeypatch):
    rendered: list[tuple] = []

    def fake_render(self, output_path, format, cleanup):
        rendered.append((output_path, format, cleanup))

    monkeypatch.setattr("graphviz.Digraph.render", fake_render)
    root_graph, _ = graphs
    Visualizer(root_graph).save(str(tmp_path / "graph"), format="svg")

    assert rendered == [(str(tmp_path / "graph"), "svg", True)]
