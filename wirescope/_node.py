from dataclasses import dataclass
from functools import lru_cache
from inspect import Parameter, Signature, signature
from typing import (
    Annotated,
    Any,
    Callable,
    Hashable,
    Iterable,
    Optional,
    Sequence,
    Union,
    get_args,
    get_type_hints,
)

from .config import DEFAULT_CACHED, FrozenSlot
from .errors import MissingAnnotationError, NotSupportedError, UnresolvedAnnotationError
from .utils.param_utils import MISSING, Maybe, is_provided
from .utils.typing_utils import T, flatten_annotated, is_annotated, type_repr

INSPECT_EMPTY = Signature.empty

# ============== wirescope marks ===========


@dataclass(frozen=True)
class Named:
    """
    Qualifies a dependency so several values of one type can live in a scope.

    ```
    def make_client(base_url: Annotated[str, Named("base_url")]) -> Client: ...
    ```
    """

    qualifier: str


@dataclass(frozen=True)
class SlotMeta:
    qualifier: Optional[str] = None


def injected(qualifier: Optional[str] = None) -> SlotMeta:
    """
    Marks a class attribute as a dependency slot for `Injector.inject`.

    These two are equivalent
    ```
    class Screen:
        api: Annotated[GithubService, injected()]
        api: Injected[GithubService]
    ```
    """
    return SlotMeta(qualifier)


Injected = Annotated[T, SlotMeta()]


# ============== wirescope marks ===========


class ProviderKey(FrozenSlot):
    """
    Identifies a requested value: the type it is provided as, plus an optional qualifier.
    """

    __slots__ = ("target", "qualifier")

    target: Hashable
    qualifier: Optional[str]

    def __init__(self, target: Hashable, qualifier: Optional[str] = None):
        if isinstance(target, ProviderKey):
            raise NotSupportedError(f"Nesting {target!r} in a ProviderKey is not supported")
        object.__setattr__(self, "target", target)
        object.__setattr__(self, "qualifier", qualifier)

    def __str__(self) -> str:
        name = type_repr(self.target)
        if self.qualifier is None:
            return name
        return f"{name}@{self.qualifier}"

    def __repr__(self) -> str:
        return f"ProviderKey({self})"


KeyLike = Union[ProviderKey, type, Any]


def _qualifier_from_meta(metas: Iterable[Any]) -> Optional[str]:
    qualifier: Optional[str] = None
    for meta in metas:
        if isinstance(meta, Named):
            qualifier = meta.qualifier
        elif isinstance(meta, SlotMeta) and meta.qualifier is not None:
            qualifier = meta.qualifier
    return qualifier


def as_key(dep: KeyLike, qualifier: Optional[str] = None) -> ProviderKey:
    """
    Accepts a ProviderKey, a bare type, or `Annotated[T, Named(...)]`
    """
    if isinstance(dep, ProviderKey):
        if qualifier is not None and qualifier != dep.qualifier:
            return ProviderKey(dep.target, qualifier)
        return dep

    if is_annotated(dep):
        target = get_args(dep)[0]
        found = _qualifier_from_meta(flatten_annotated(dep))
        return ProviderKey(target, qualifier if qualifier is not None else found)

    return ProviderKey(dep, qualifier)


# ======================= Signature =====================================


@lru_cache(1024)
def _hints_of(target: Callable[..., Any]) -> dict[str, Any]:
    try:
        return get_type_hints(target, include_extras=True)
    except (NameError, TypeError):
        return {}


def _signature_target(factory: Callable[..., Any]) -> Callable[..., Any]:
    if isinstance(factory, type):
        return factory.__init__
    if not hasattr(factory, "__code__") and hasattr(factory, "__call__"):
        return factory.__call__  # type: ignore
    return factory


def build_dependencies(
    factory: Callable[..., Any],
) -> tuple[list[tuple[str, ProviderKey]], tuple[str, ...]]:
    """
    Infer dependency keys from an annotated callable.

    Returns the `(param name, key)` pairs in declaration order and the names of
    the keyword-only params, which are passed by name at construction.
    """
    if isinstance(factory, type) and factory.__init__ is object.__init__:
        return [], ()

    try:
        sig = signature(factory)
    except (ValueError, TypeError) as exc:
        raise NotSupportedError(
            f"Unable to inspect the signature of {factory!r}, pass `depends_on` explicitly"
        ) from exc
    hints = _hints_of(_signature_target(factory))

    dependencies: list[tuple[str, ProviderKey]] = []
    kw_names: list[str] = []

    for param in sig.parameters.values():
        if param.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
            continue

        annotation = hints.get(param.name, param.annotation)
        if annotation is INSPECT_EMPTY or isinstance(annotation, str):
            raise MissingAnnotationError(factory, param.name)

        dependencies.append((param.name, as_key(annotation)))
        if param.kind is Parameter.KEYWORD_ONLY:
            kw_names.append(param.name)

    return dependencies, tuple(kw_names)


@lru_cache(1024)
def _class_hints(target_type: type) -> dict[str, Any]:
    try:
        return get_type_hints(target_type, include_extras=True)
    except (NameError, TypeError) as exc:
        raise UnresolvedAnnotationError(target_type, str(exc)) from exc


def collect_slots(target_type: type) -> dict[str, ProviderKey]:
    """
    Gather attributes declared as `Annotated[T, injected()]` on a class and its bases.

    Raises:
        UnresolvedAnnotationError: an annotation of the class can't be evaluated.
    """
    slots: dict[str, ProviderKey] = {}
    for name, hint in _class_hints(target_type).items():
        if not is_annotated(hint):
            continue
        metas = flatten_annotated(hint)
        if not any(isinstance(m, SlotMeta) for m in metas):
            continue
        slots[name] = as_key(hint)
    return slots


# ======================= Recipe =====================================


class Recipe(FrozenSlot):
    """
    A construction rule registered in a scope.

    - key: the ProviderKey this recipe produces
    - factory: called with the resolved dependencies, in `dependencies` order
    - dependencies: keys resolved before `factory` is invoked
    - cached: whether the result is kept for the lifetime of the owning scope
    - scope_name: name of the scope the recipe is registered in
    """

    __slots__ = ("key", "factory", "dependencies", "kw_names", "cached", "scope_name")

    key: ProviderKey
    factory: Callable[..., Any]
    dependencies: tuple[ProviderKey, ...]
    kw_names: tuple[str, ...]
    cached: bool
    scope_name: Hashable

    def __init__(
        self,
        *,
        key: ProviderKey,
        factory: Callable[..., Any],
        dependencies: Sequence[ProviderKey] = (),
        kw_names: Sequence[str] = (),
        cached: bool = DEFAULT_CACHED,
        scope_name: Hashable = "",
    ):
        object.__setattr__(self, "key", key)
        object.__setattr__(self, "factory", factory)
        object.__setattr__(self, "dependencies", tuple(dependencies))
        object.__setattr__(self, "kw_names", tuple(kw_names))
        object.__setattr__(self, "cached", cached)
        object.__setattr__(self, "scope_name", scope_name)

    def __str__(self) -> str:
        deps = ", ".join(str(d) for d in self.dependencies)
        factory_repr = getattr(self.factory, "__qualname__", repr(self.factory))
        cached = " (cached)" if self.cached else ""
        return f"{self.key} <- {factory_repr}({deps}){cached}"

    @classmethod
    def create(
        cls,
        key: KeyLike,
        factory: Callable[..., Any],
        *,
        depends_on: Maybe[Sequence[KeyLike]] = MISSING,
        cached: bool = DEFAULT_CACHED,
        scope_name: Hashable = "",
    ) -> "Recipe":
        if is_provided(depends_on):
            dependencies = [as_key(d) for d in depends_on]
            kw_names: tuple[str, ...] = ()
        else:
            params, kw_names = build_dependencies(factory)
            dependencies = [k for _, k in params]

        return cls(
            key=as_key(key),
            factory=factory,
            dependencies=dependencies,
            kw_names=kw_names,
            cached=cached,
            scope_name=scope_name,
        )

    @classmethod
    def from_value(cls, key: KeyLike, value: T, *, scope_name: Hashable = "") -> "Recipe":
        def provide_value() -> T:
            return value

        provide_value.__qualname__ = f"value[{type_repr(type(value))}]"
        return cls(key=as_key(key), factory=provide_value, scope_name=scope_name)

    def construct(self, args: Sequence[Any]) -> Any:
        if not self.kw_names:
            return self.factory(*args)

        n_positional = len(args) - len(self.kw_names)
        kwargs = dict(zip(self.kw_names, args[n_positional:]))
        return self.factory(*args[:n_positional], **kwargs)
