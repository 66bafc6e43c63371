from typing import Union

from graphviz import Digraph

from ._node import KeyLike, ProviderKey, as_key
from .graph import ComponentGraph


class Visualizer:
    def __init__(
        self,
        graph: ComponentGraph,
        dot: "Digraph | None" = None,
        graph_attrs: Union[dict[str, str], None] = None,
    ):
        self._dg = graph
        self._dot = dot
        self._graph_attrs = graph_attrs

    @property
    def dot(self) -> Union["Digraph", None]:
        return self._dot

    @property
    def view(self) -> Union[Digraph, None]:
        return self.make_graph().dot

    def _add_edges(
        self,
        dot: Digraph,
        key: ProviderKey,
        node_attr: dict[str, str],
        edge_attr: dict[str, str],
    ) -> None:
        recipes = self._dg.recipes
        node_repr = str(key)
        shape = "box" if recipes[key].cached else "ellipse"
        dot.node(node_repr, node_repr, shape=shape, **node_attr)
        for dependency in recipes[key].dependencies:
            dependency_repr = str(dependency)
            if dependency not in recipes:
                # provided by the parent graph
                dot.node(dependency_repr, dependency_repr, style="dashed", **node_attr)
            dot.edge(node_repr, dependency_repr, **edge_attr)

    def make_graph(
        self,
        node_attr: dict[str, str] = {"color": "black"},
        edge_attr: dict[str, str] = {"color": "black"},
    ) -> "Visualizer":
        """Converting ComponentGraph to Graphviz visualization

        Cached recipes are drawn as boxes, keys provided by the parent graph are dashed.

        Args:
            node_attr (dict[str, str], optional): Node attributes. Defaults to {"color": "black"}.
            edge_attr (dict[str, str], optional): Edge attributes. Defaults to {"color": "black"}.

        Returns:
            Visualizer: Visualizer instance
        """
        dot = self._dot or Digraph(
            comment=f"Component Graph {self._dg.name}", graph_attr=self._graph_attrs
        )

        for key in self._dg.topological_order():
            self._add_edges(dot, key, node_attr, edge_attr)

        return self.__class__(self._dg, dot, self._graph_attrs)

    def make_node(
        self, dep: KeyLike, node_attr: dict[str, str], edge_attr: dict[str, str]
    ) -> "Visualizer":
        """
        Create a graphviz graph for a single key and its direct dependencies
        """
        key = as_key(dep)
        self._dg.scope.registry.lookup(key)
        dot = self._dot or Digraph(
            comment=f"Component Graph {key}", graph_attr=self._graph_attrs
        )
        self._add_edges(dot, key, node_attr, edge_attr)
        return self.__class__(self._dg, dot, self._graph_attrs)

    def save(self, output_path: str, format: str = "png") -> None:
        # Render the graph
        if not self._dot:
            self.make_graph().save(output_path=output_path, format=format)
            return

        self._dot.render(output_path, format=format, cleanup=True)
