import logging
from inspect import Parameter, signature
from typing import Any, Callable, Iterator, Mapping, Optional

from ._node import KeyLike, ProviderKey, as_key, build_dependencies, collect_slots
from .errors import UnknownKeyError, UnsatisfiedSlotError
from .graph import ComponentGraph
from .utils.param_utils import MISSING, Maybe
from .utils.typing_utils import T

logger = logging.getLogger(__name__)


class Injector:
    """
    Fills the dependency slots of injection targets from a graph chain.

    The injector's own graph may provide any key registered in its scope;
    each ancestor graph may only provide the keys it exposes.

    ```python
    class MainScreen:
        api: Injected[GithubService]

    screen = Injector(user_graph).inject(MainScreen())
    ```
    """

    def __init__(self, graph: ComponentGraph):
        self._graph = graph

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(graph={self._graph.name!r})"

    @property
    def graph(self) -> ComponentGraph:
        return self._graph

    def _chain(self) -> Iterator[tuple[ComponentGraph, bool]]:
        yield self._graph, True
        for ancestor in self._graph.ancestors():
            yield ancestor, False

    def _lookup(self, key: ProviderKey) -> Maybe[Any]:
        for graph, is_own in self._chain():
            if is_own:
                if graph.provides_locally(key):
                    return graph.resolve(key)
            elif graph.exposes(key):
                return graph.resolve_exposed(key)
        return MISSING

    def can_provide(self, dep: KeyLike, qualifier: Optional[str] = None) -> bool:
        key = as_key(dep, qualifier)
        for graph, is_own in self._chain():
            if graph.exposes(key) or (is_own and graph.provides_locally(key)):
                return True
        return False

    def get(self, dep: KeyLike, qualifier: Optional[str] = None) -> Any:
        key = as_key(dep, qualifier)
        if (value := self._lookup(key)) is MISSING:
            raise UnknownKeyError(key, self._graph.name)
        return value

    def inject(self, target: T, slots: Optional[Mapping[str, KeyLike]] = None) -> T:
        """
        Resolve every slot of `target` and assign it; nothing is assigned if any slot fails.

        Slots default to the attributes declared with `Injected[...]` / `injected()`
        on the target's class.

        Raises:
            UnsatisfiedSlotError: no graph in the chain can provide a slot's key.
            UnresolvedAnnotationError: the target class has an annotation that can't be evaluated.
        """
        if slots is None:
            declared = collect_slots(type(target))
        else:
            declared = {name: as_key(dep) for name, dep in slots.items()}

        resolved: dict[str, Any] = {}
        for slot_name, key in declared.items():
            if (value := self._lookup(key)) is MISSING:
                raise UnsatisfiedSlotError(target, slot_name, key)
            resolved[slot_name] = value

        for slot_name, value in resolved.items():
            setattr(target, slot_name, value)

        logger.debug("injected %d slots into %r from %r", len(resolved), target, self._graph)
        return target

    def call(self, func: Callable[..., T], /, **overrides: Any) -> T:
        """
        Call `func` with its annotated parameters resolved from the graph chain.

        Keyword overrides take precedence; parameters with a default are left to
        it when no graph provides their key.
        """
        params, _ = build_dependencies(func)
        defaults = {
            name: p.default
            for name, p in signature(func).parameters.items()
            if p.default is not Parameter.empty
        }

        kwargs: dict[str, Any] = {}
        for name, key in params:
            if name in overrides:
                kwargs[name] = overrides[name]
                continue
            if (value := self._lookup(key)) is not MISSING:
                kwargs[name] = value
            elif name not in defaults:
                raise UnsatisfiedSlotError(func, name, key)

        kwargs.update({k: v for k, v in overrides.items() if k not in kwargs})
        return func(**kwargs)
