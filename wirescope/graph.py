import logging
from contextlib import ExitStack
from functools import partial
from types import MappingProxyType, TracebackType
from typing import (
    Any,
    Callable,
    ContextManager,
    Hashable,
    Iterable,
    Optional,
    Sequence,
    Union,
    overload,
)

from typing_extensions import Self

from ._ds import InstanceCache, ProviderRegistry, RecipesView, Visitor
from ._node import KeyLike, ProviderKey, Recipe, as_key
from .config import DEFAULT_CACHED, DefaultConfig, GraphConfig, RootScopeName
from .errors import (
    DuplicateKeyError,
    MissingDependencyError,
    OutOfScopeError,
    ScopeClosedError,
    ScopeSealedError,
    UnknownKeyError,
)
from .module import Module
from .utils.param_utils import MISSING, Maybe, is_provided
from .utils.typing_utils import P, T

logger = logging.getLogger(__name__)


class Scope:
    """
    A lifetime boundary: the recipes registered for it and the values
    its cached recipes produced.

    ```python
    app = Scope("application")
    app.register(ProviderKey(str, "base_url"), lambda: "https://api.github.com")

    @app.provide(cached=True)
    def client(base_url: Annotated[str, Named("base_url")]) -> HttpClient:
        return HttpClient(base_url)

    app.expose(HttpClient)
    ```

    Closing a scope releases its cache and runs its exit callbacks, last registered first.
    """

    def __init__(
        self,
        name: Hashable = RootScopeName,
        *,
        config: GraphConfig = DefaultConfig,
    ):
        self._name = name
        self._config = config
        self._registry = ProviderRegistry(name)
        self._cache = InstanceCache(thread_safe=config.thread_safe)
        self._exposed: set[ProviderKey] = set()
        self._stack = ExitStack()
        self._sealed = False
        self._closed = False

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"name={self._name!r}, "
            f"recipes={len(self._registry)}, "
            f"cached={len(self._cache)})"
        )

    def __contains__(self, dep: KeyLike) -> bool:
        return as_key(dep) in self._registry

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Union[type[BaseException], None],
        exc_value: Union[BaseException, None],
        traceback: Union[TracebackType, None],
    ) -> None:
        self.close()

    @property
    def name(self) -> Hashable:
        return self._name

    @property
    def config(self) -> GraphConfig:
        return self._config

    @property
    def recipes(self) -> RecipesView:
        return MappingProxyType(self._registry)

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def cache(self) -> InstanceCache:
        return self._cache

    @property
    def exposed(self) -> frozenset[ProviderKey]:
        return frozenset(self._exposed)

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ScopeClosedError(self._name)

    def _check_writable(self) -> None:
        self._check_open()
        if self._sealed:
            raise ScopeSealedError(self._name)

    # =================  Registration =================

    def add_recipe(self, recipe: Recipe) -> Recipe:
        self._check_writable()
        if recipe.scope_name != self._name:
            recipe = Recipe(
                key=recipe.key,
                factory=recipe.factory,
                dependencies=recipe.dependencies,
                kw_names=recipe.kw_names,
                cached=recipe.cached,
                scope_name=self._name,
            )
        self._registry.register(recipe.key, recipe)
        return recipe

    def register(
        self,
        key: KeyLike,
        factory: Callable[..., Any],
        *,
        depends_on: Maybe[Sequence[KeyLike]] = MISSING,
        cached: bool = DEFAULT_CACHED,
    ) -> Recipe:
        """
        Register `factory` as the recipe for `key`.
        Dependencies are inferred from the factory's annotations unless `depends_on` is given.
        """
        recipe = Recipe.create(
            key, factory, depends_on=depends_on, cached=cached, scope_name=self._name
        )
        return self.add_recipe(recipe)

    def register_value(self, key: KeyLike, value: Any) -> Recipe:
        return self.add_recipe(Recipe.from_value(key, value, scope_name=self._name))

    @overload
    def provide(
        self,
        factory: Callable[P, T],
        *,
        key: Maybe[KeyLike] = MISSING,
        depends_on: Maybe[Sequence[KeyLike]] = MISSING,
        cached: bool = DEFAULT_CACHED,
    ) -> Callable[P, T]: ...

    @overload
    def provide(
        self,
        *,
        key: Maybe[KeyLike] = MISSING,
        depends_on: Maybe[Sequence[KeyLike]] = MISSING,
        cached: bool = DEFAULT_CACHED,
    ) -> Callable[[Callable[P, T]], Callable[P, T]]: ...

    def provide(
        self,
        factory: Optional[Callable[P, T]] = None,
        *,
        key: Maybe[KeyLike] = MISSING,
        depends_on: Maybe[Sequence[KeyLike]] = MISSING,
        cached: bool = DEFAULT_CACHED,
    ) -> Union[Callable[P, T], Callable[[Callable[P, T]], Callable[P, T]]]:
        """
        Decorator form of `register`, the key defaults to the factory's return annotation
        (or the class itself).
        """
        if factory is None:
            configured = partial(self.provide, key=key, depends_on=depends_on, cached=cached)
            return configured  # type: ignore

        provided_key = key if is_provided(key) else Module.infer_key(factory)
        self.register(provided_key, factory, depends_on=depends_on, cached=cached)
        return factory

    def install(self, *modules: Module) -> None:
        """
        Add every recipe of each module to this scope and expose what the module exposes.

        Either every recipe is added or, on a duplicate key, none is.
        """
        self._check_writable()
        recipes = [r for module in modules for r in module.recipes(scope_name=self._name)]

        seen = set(self._registry)
        for recipe in recipes:
            if recipe.key in seen:
                raise DuplicateKeyError(recipe.key, self._name)
            seen.add(recipe.key)

        for recipe in recipes:
            self.add_recipe(recipe)
        for module in modules:
            self.expose(*module.exposed)

    def expose(self, *keys: KeyLike) -> None:
        """
        Put keys on the allow-list visible to child graphs and injection sites outside this scope.
        """
        self._check_writable()
        self._exposed.update(as_key(k) for k in keys)

    # =================  Lifecycle =================

    def enter_context(self, context: ContextManager[T]) -> T:
        self._check_open()
        return self._stack.enter_context(context)

    def register_exit_callback(
        self, cb: Callable[P, Any], *args: P.args, **kwargs: P.kwargs
    ) -> None:
        self._check_open()
        self._stack.callback(cb, *args, **kwargs)

    def seal(self) -> None:
        self._sealed = True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.debug("closing scope %r, releasing %d cached values", self._name, len(self._cache))
        try:
            self._stack.close()
        finally:
            self._cache.clear()


class ComponentGraph:
    """
    A validated view over a scope and its ancestor graphs.

    Values are constructed lazily on first `resolve`; everything that can be
    checked without constructing (missing dependencies, cycles) was checked by `build_graph`.
    """

    def __init__(self, scope: Scope, parent: Maybe["ComponentGraph"] = MISSING):
        self._scope = scope
        self._parent = parent

    def __repr__(self) -> str:
        parent = f"parent={self._parent.name!r}, " if is_provided(self._parent) else ""
        return (
            f"{self.__class__.__name__}("
            f"name={self.name!r}, "
            f"{parent}"
            f"recipes={len(self._scope.recipes)}, "
            f"exposed={len(self._scope.exposed)})"
        )

    def __contains__(self, dep: KeyLike) -> bool:
        return self.can_resolve(dep)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Union[type[BaseException], None],
        exc_value: Union[BaseException, None],
        traceback: Union[TracebackType, None],
    ) -> None:
        self.close()

    @property
    def name(self) -> Hashable:
        return self._scope.name

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def parent(self) -> Maybe["ComponentGraph"]:
        return self._parent

    @property
    def exposed(self) -> frozenset[ProviderKey]:
        return self._scope.exposed

    @property
    def recipes(self) -> RecipesView:
        return self._scope.recipes

    @property
    def visitor(self) -> Visitor:
        return Visitor(self._scope.recipes)

    @property
    def is_closed(self) -> bool:
        return self._scope.is_closed

    def ancestors(self) -> Iterable["ComponentGraph"]:
        ptr = self._parent
        while is_provided(ptr):
            yield ptr
            ptr = ptr._parent

    def get_graph(self, name: Hashable) -> "ComponentGraph":
        if name == self.name:
            return self
        for graph in self.ancestors():
            if graph.name == name:
                return graph
        raise OutOfScopeError(name)

    def exposes(self, dep: KeyLike) -> bool:
        return as_key(dep) in self._scope.exposed

    def provides_locally(self, dep: KeyLike) -> bool:
        return as_key(dep) in self._scope.recipes

    def exposing_graph(self, dep: KeyLike) -> Maybe["ComponentGraph"]:
        """
        The nearest graph, this one first then its ancestors, that exposes `dep`.
        """
        key = as_key(dep)
        if key in self._scope.exposed:
            return self
        for graph in self.ancestors():
            if key in graph.exposed:
                return graph
        return MISSING

    def shares(self, dep: KeyLike) -> bool:
        "Whether a child of this graph may depend on `dep`"
        return is_provided(self.exposing_graph(dep))

    def can_resolve(self, dep: KeyLike) -> bool:
        key = as_key(dep)
        if key in self._scope.recipes:
            return True
        return is_provided(self._parent) and self._parent.shares(key)

    def dependencies_of(self, dep: KeyLike, recursive: bool = False) -> list[ProviderKey]:
        key = as_key(dep)
        self._scope.registry.lookup(key)
        return self.visitor.get_dependencies(key, recursive=recursive)

    def dependents_of(self, dep: KeyLike) -> list[ProviderKey]:
        return self.visitor.get_dependents(as_key(dep))

    def topological_order(self) -> list[ProviderKey]:
        return self.visitor.top_sorted_dependencies()

    # =================  Resolution =================

    def _construct(self, recipe: Recipe) -> Any:
        args = [self._resolve_key(dep) for dep in recipe.dependencies]
        logger.debug("constructing %s in scope %r", recipe.key, self.name)
        return recipe.construct(args)

    def _resolve_key(self, key: ProviderKey) -> Any:
        scope = self._scope
        if scope.is_closed:
            raise ScopeClosedError(scope.name)

        recipe = scope.registry.get(key)
        if recipe is None:
            if is_provided(self._parent):
                owner = self._parent.exposing_graph(key)
                if is_provided(owner):
                    return owner.resolve_exposed(key)
            raise UnknownKeyError(key, scope.name)

        if not recipe.cached:
            return self._construct(recipe)

        if (cached := scope.cache.get(key)) is not MISSING:
            return cached
        return scope.cache.get_or_create(key, partial(self._construct, recipe))

    @overload
    def resolve(self, dep: type[T], qualifier: Optional[str] = None) -> T: ...

    @overload
    def resolve(self, dep: KeyLike, qualifier: Optional[str] = None) -> Any: ...

    def resolve(self, dep: KeyLike, qualifier: Optional[str] = None) -> Any:
        """
        Resolve any key registered in this graph's scope, or exposed by one of its ancestors.
        """
        return self._resolve_key(as_key(dep, qualifier))

    def resolve_exposed(self, dep: KeyLike, qualifier: Optional[str] = None) -> Any:
        """
        What child graphs and outside callers see: only keys on the scope's allow-list.
        """
        key = as_key(dep, qualifier)
        if key not in self._scope.exposed:
            raise UnknownKeyError(key, self.name)
        return self._resolve_key(key)

    # =================  Lifecycle =================

    def child(self, scope: Scope) -> "ComponentGraph":
        return build_graph(scope, self)

    def close(self) -> None:
        self._scope.close()


def _validate(scope: Scope, parent: Maybe[ComponentGraph]) -> None:
    recipes = scope.recipes

    for key in scope.exposed:
        if key not in recipes:
            raise UnknownKeyError(key, scope.name)

    for key, recipe in recipes.items():
        for dep in recipe.dependencies:
            if dep in recipes:
                continue
            if is_provided(parent) and parent.shares(dep):
                continue
            raise MissingDependencyError(dep, key, scope.name)

    Visitor(recipes).check_cycles()


def build_graph(scope: Scope, parent: Optional[ComponentGraph] = None) -> ComponentGraph:
    """
    Validate `scope` against `parent` and produce its ComponentGraph.

    Raises:
        MissingDependencyError: a recipe depends on a key that is neither
            registered in `scope` nor exposed by `parent` or one of its ancestors.
        CyclicDependencyError: the recipes of `scope` depend on each other in a cycle.
        UnknownKeyError: `scope` exposes a key it has no recipe for.
        ScopeClosedError: `scope` or `parent` is already closed.
    """
    pre: Maybe[ComponentGraph] = MISSING if parent is None else parent

    if scope.is_closed:
        raise ScopeClosedError(scope.name)
    if is_provided(pre) and pre.is_closed:
        raise ScopeClosedError(pre.name)

    _validate(scope, pre)
    scope.seal()

    graph = ComponentGraph(scope, pre)
    logger.debug("built %r", graph)
    return graph
