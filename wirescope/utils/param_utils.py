from typing import Literal, Union

from typing_extensions import TypeGuard

from .typing_utils import T


class _Missed:
    """
    Sentinel object to represent a value that was not provided.
    bool(MISSING) is False.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> Literal[False]:
        return False


MISSING = _Missed()


Maybe = Union[T, _Missed]
"""
Maybe[int] == int | MISSING
"""


def is_provided(value: Maybe[T]) -> TypeGuard[T]:
    """
    Check if the value is not MISSING.
    """
    return value is not MISSING
