"""
WIRESCOPE
~~~~~~~~~~~~~~~~~~~~~

Scope aware dependency injection: register recipes in scopes, build validated
component graphs, and inject declared slots from the nearest graph that provides them.

>>> from wirescope import ProviderKey, Scope, build_graph
>>> app = Scope("application")
>>> _ = app.register_value(ProviderKey(str, "base_url"), "https://api.example.com")
>>> graph = build_graph(app)
>>> graph.resolve(str, "base_url")
'https://api.example.com'
"""

from ._node import Injected as Injected
from ._node import Named as Named
from ._node import ProviderKey as ProviderKey
from ._node import Recipe as Recipe
from ._node import injected as injected
from .config import GraphConfig as GraphConfig
from .graph import ComponentGraph as ComponentGraph
from .graph import Scope as Scope
from .graph import build_graph as build_graph
from .injector import Injector as Injector
from .module import Module as Module
from .utils.param_utils import MISSING as MISSING
from .utils.param_utils import is_provided as is_provided

VERSION = "0.1.0"

try:
    import graphviz as graphviz  # type: ignore
except ImportError:
    pass
else:
    from .visual import Visualizer as Visualizer
