from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Hashable, Optional, Sequence, Union, overload

from ._node import KeyLike, ProviderKey, Recipe, _hints_of, as_key
from .config import DEFAULT_CACHED
from .errors import MissingAnnotationError
from .utils.param_utils import MISSING, Maybe, is_provided
from .utils.typing_utils import P, T


@dataclass(frozen=True)
class RecipeSpec:
    """A recipe described as data, turned into a `Recipe` when the module is installed."""

    key: ProviderKey
    factory: Callable[..., Any]
    depends_on: Maybe[tuple[ProviderKey, ...]] = MISSING
    cached: bool = DEFAULT_CACHED
    is_value: bool = field(default=False)


class Module:
    """
    A reusable bundle of recipes, installed into a scope with `Scope.install`.

    ```python
    network = Module("network")
    network.make(str).named("base_url").value("https://api.github.com")

    @network.provides(cached=True, expose=True)
    def http_client(cache: HttpCache) -> HttpClient: ...
    ```
    """

    def __init__(self, name: str = ""):
        self._name = name
        self._specs: list[RecipeSpec] = []
        self._exposed: list[ProviderKey] = []

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self._name!r}, recipes={len(self._specs)})"

    def __len__(self) -> int:
        return len(self._specs)

    @property
    def name(self) -> str:
        return self._name

    @property
    def specs(self) -> tuple[RecipeSpec, ...]:
        return tuple(self._specs)

    @property
    def exposed(self) -> tuple[ProviderKey, ...]:
        return tuple(self._exposed)

    @staticmethod
    def infer_key(factory: Callable[..., Any]) -> ProviderKey:
        "A class provides itself, a function provides its return annotation"
        if isinstance(factory, type):
            return ProviderKey(factory)
        hints = _hints_of(factory)
        if hints.get("return") in (None, type(None)):
            raise MissingAnnotationError(factory, "return")
        return as_key(hints["return"])

    def add(self, spec: RecipeSpec, *, expose: bool = False) -> None:
        self._specs.append(spec)
        if expose:
            self._exposed.append(spec.key)

    def make(self, target: KeyLike) -> "BindingBuilder":
        return BindingBuilder(self, target)

    def expose(self, *keys: KeyLike) -> None:
        self._exposed.extend(as_key(k) for k in keys)

    @overload
    def provides(
        self,
        factory: Callable[P, T],
        *,
        key: Maybe[KeyLike] = MISSING,
        depends_on: Maybe[Sequence[KeyLike]] = MISSING,
        cached: bool = DEFAULT_CACHED,
        expose: bool = False,
    ) -> Callable[P, T]: ...

    @overload
    def provides(
        self,
        *,
        key: Maybe[KeyLike] = MISSING,
        depends_on: Maybe[Sequence[KeyLike]] = MISSING,
        cached: bool = DEFAULT_CACHED,
        expose: bool = False,
    ) -> Callable[[Callable[P, T]], Callable[P, T]]: ...

    def provides(
        self,
        factory: Optional[Callable[P, T]] = None,
        *,
        key: Maybe[KeyLike] = MISSING,
        depends_on: Maybe[Sequence[KeyLike]] = MISSING,
        cached: bool = DEFAULT_CACHED,
        expose: bool = False,
    ) -> Union[Callable[P, T], Callable[[Callable[P, T]], Callable[P, T]]]:
        if factory is None:
            configured = partial(
                self.provides, key=key, depends_on=depends_on, cached=cached, expose=expose
            )
            return configured  # type: ignore

        provided_key = as_key(key) if is_provided(key) else self.infer_key(factory)
        deps = tuple(as_key(d) for d in depends_on) if is_provided(depends_on) else MISSING
        self.add(RecipeSpec(provided_key, factory, deps, cached), expose=expose)
        return factory

    def recipes(self, *, scope_name: Hashable) -> list[Recipe]:
        built: list[Recipe] = []
        for spec in self._specs:
            if spec.is_value:
                built.append(Recipe(key=spec.key, factory=spec.factory, scope_name=scope_name))
                continue
            built.append(
                Recipe.create(
                    spec.key,
                    spec.factory,
                    depends_on=spec.depends_on,
                    cached=spec.cached,
                    scope_name=scope_name,
                )
            )
        return built


class BindingBuilder:
    """Fluent builder returned by `Module.make`."""

    def __init__(self, module: Module, target: KeyLike):
        self._module = module
        self._key = as_key(target)
        self._cached = DEFAULT_CACHED
        self._expose = False
        self._depends_on: Maybe[tuple[ProviderKey, ...]] = MISSING

    def named(self, qualifier: str) -> "BindingBuilder":
        self._key = ProviderKey(self._key.target, qualifier)
        return self

    def cached(self, cached: bool = True) -> "BindingBuilder":
        self._cached = cached
        return self

    def exposed(self) -> "BindingBuilder":
        self._expose = True
        return self

    def depends_on(self, *keys: KeyLike) -> "BindingBuilder":
        self._depends_on = tuple(as_key(k) for k in keys)
        return self

    def value(self, instance: Any) -> None:
        recipe = Recipe.from_value(self._key, instance)
        self._module.add(RecipeSpec(self._key, recipe.factory, is_value=True), expose=self._expose)

    def type(self, cls: type) -> None:
        self.func(cls)

    def func(self, factory: Callable[..., Any]) -> None:
        spec = RecipeSpec(self._key, factory, self._depends_on, self._cached)
        self._module.add(spec, expose=self._expose)
