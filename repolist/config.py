from pathlib import Path
from typing import Any, Final, Iterator, MutableMapping, Optional, Union

from wirescope.config import FrozenSlot

DEFAULT_BASE_URL: Final[str] = "https://api.github.com"
DEFAULT_CACHE_SIZE: Final[int] = 10 * 1024 * 1024
DEFAULT_TIMEOUT: Final[float] = 10.0


class PreferenceStore(MutableMapping[str, Any]):
    """
    Small key-value handle for user preferences, e.g. the last username looked up.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = dict(initial or {})

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._data!r})"

    # MutableMapping sets __hash__ to None, the store is identified by identity
    __hash__ = object.__hash__


class AppConfig(FrozenSlot):
    """
    Inputs supplied when the application scope is created, immutable afterwards.

    base_url: root of the REST api
    cache_size: upper bound in bytes of the http response cache
    cache_dir: directory the http cache is associated with
    preferences: the preference store handed to screens
    """

    __slots__ = ("base_url", "cache_size", "cache_dir", "preferences", "timeout")

    base_url: str
    cache_size: int
    cache_dir: Path
    preferences: PreferenceStore
    timeout: float

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        cache_size: int = DEFAULT_CACHE_SIZE,
        cache_dir: Union[str, Path] = ".cache/http",
        preferences: Optional[PreferenceStore] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if cache_size < 0:
            raise ValueError(f"cache_size must not be negative, got {cache_size}")

        object.__setattr__(self, "base_url", base_url.rstrip("/"))
        object.__setattr__(self, "cache_size", cache_size)
        object.__setattr__(self, "cache_dir", Path(cache_dir))
        object.__setattr__(
            self, "preferences", preferences if preferences is not None else PreferenceStore()
        )
        object.__setattr__(self, "timeout", timeout)
