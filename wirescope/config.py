from dataclasses import FrozenInstanceError
from typing import Any, Final


class FrozenSlot:
    """
    A Mixin class provides a hashable, frozen class with slots defined.
    This is mainly due to the fact that dataclass does not support slots before python 3.10
    """

    __slots__: tuple[str, ...] = ()

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, self.__class__):
            return False

        return all(
            getattr(self, attr) == getattr(other, attr) for attr in self.__slots__
        )

    def __repr__(self):
        attr_repr = "".join(
            f"{attr}={getattr(self, attr)!r}, " for attr in self.__slots__
        ).rstrip(", ")
        return f"{self.__class__.__name__}({attr_repr})"

    def __setattr__(self, name: str, value: Any) -> None:
        raise FrozenInstanceError("can't set attribute")

    def __hash__(self) -> int:
        attrs = tuple(getattr(self, attr) for attr in self.__slots__)
        return hash(attrs)


class GraphConfig(FrozenSlot):
    """
    thread_safe: bool
    ---
    whether first construction of a cached recipe is guarded by a per-key lock,
    so concurrent first access still invokes the recipe once.
    """

    __slots__ = ("thread_safe",)

    thread_safe: bool

    def __init__(self, *, thread_safe: bool = True):
        object.__setattr__(self, "thread_safe", thread_safe)


DefaultConfig: Final[GraphConfig] = GraphConfig()
RootScopeName: Final[str] = "application"
DEFAULT_CACHED: Final[bool] = False
"""
Recipes are constructed once per resolve unless registered with `cached=True`
"""
