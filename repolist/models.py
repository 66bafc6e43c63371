from dataclasses import dataclass
from typing import Any, Generic, Mapping, Optional, Union

from wirescope.utils.typing_utils import T


class HttpError(Exception):
    """
    Failure of a call made through the HTTP client, delivered as `Err(HttpError)`.
    Kept apart from wirescope's errors, which only ever describe wiring problems.
    """

    def __init__(self, message: str, /, *, status: Optional[int] = None, url: str = ""):
        self.message = message
        self.status = status
        self.url = url
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, status={self.status}, url={self.url!r})"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: HttpError


Result = Union[Ok[T], Err]


@dataclass(frozen=True)
class Repository:
    id: int
    name: str
    html_url: str

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "Repository":
        return cls(
            id=int(payload["id"]),
            name=str(payload["name"]),
            html_url=str(payload["html_url"]),
        )
