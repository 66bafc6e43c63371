from typing import Annotated, Any, TypeVar
from typing import cast, get_args, get_origin

from typing_extensions import ParamSpec, TypeGuard

T = TypeVar("T")
P = ParamSpec("P")


def is_annotated(t: Any) -> TypeGuard[Annotated[Any, Any]]:
    return get_origin(t) is Annotated


def type_repr(t: Any) -> str:
    "`Client`, `list[str]` or the repr for anything without a __name__"
    if get_origin(t) is not None:
        return repr(t).replace("typing.", "")
    return cast(str, getattr(t, "__name__", repr(t)))


def flatten_annotated(typ: Annotated[Any, Any]) -> list[Any]:
    "Annotated[Annotated[T, Ann1, Ann2], Ann3] -> [Ann1, Ann2, Ann3]"
    flattened_metadata: list[Any] = []
    _, *metadata = get_args(typ)

    for item in metadata:
        if get_origin(item) is Annotated:
            flattened_metadata.extend(flatten_annotated(item))
        else:
            flattened_metadata.append(item)
    return flattened_metadata
