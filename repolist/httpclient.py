import json
import logging
from asyncio import get_running_loop
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from threading import Lock
from typing import Any, Optional, Union
from urllib.error import HTTPError as URLLibHTTPError
from urllib.error import URLError
from urllib.request import Request, urlopen

from typing_extensions import Protocol

from .config import DEFAULT_TIMEOUT
from .models import Err, HttpError, Ok, Result

logger = logging.getLogger(__name__)


class Transport(Protocol):
    "Blocking GET returning the response body, raising HttpError on failure"

    def __call__(self, url: str, timeout: float) -> bytes: ...


def urllib_transport(url: str, timeout: float) -> bytes:
    request = Request(url, headers={"Accept": "application/json"})
    try:
        with urlopen(request, timeout=timeout) as response:
            return response.read()
    except URLLibHTTPError as he:
        raise HttpError(str(he.reason), status=he.code, url=url) from he
    except URLError as ue:
        raise HttpError(str(ue.reason), url=url) from ue


class HttpCache:
    """
    Response bodies by url, least recently used evicted first once
    the total size would exceed `max_size` bytes.
    """

    def __init__(self, directory: Union[str, Path], max_size: int):
        self._directory = Path(directory)
        self._max_size = max_size
        self._entries: "OrderedDict[str, bytes]" = OrderedDict()
        self._size = 0
        self._lock = Lock()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"directory={str(self._directory)!r}, "
            f"size={self._size}, "
            f"max_size={self._max_size})"
        )

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def size(self) -> int:
        return self._size

    def get(self, url: str) -> Optional[bytes]:
        with self._lock:
            body = self._entries.get(url)
            if body is not None:
                self._entries.move_to_end(url)
            return body

    def put(self, url: str, body: bytes) -> None:
        if len(body) > self._max_size:
            return
        with self._lock:
            if (old := self._entries.pop(url, None)) is not None:
                self._size -= len(old)
            self._entries[url] = body
            self._size += len(body)
            while self._size > self._max_size:
                _, evicted = self._entries.popitem(last=False)
                self._size -= len(evicted)

    def evict(self, url: str) -> None:
        with self._lock:
            if (old := self._entries.pop(url, None)) is not None:
                self._size -= len(old)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._size = 0


class HttpClient:
    """
    Runs the blocking transport in a worker thread, so awaiting a request never blocks the loop.
    """

    def __init__(
        self,
        cache: HttpCache,
        transport: Transport = urllib_transport,
        *,
        workers: Optional[ThreadPoolExecutor] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._cache = cache
        self._transport = transport
        self._owns_workers = workers is None
        self._workers = workers or ThreadPoolExecutor(thread_name_prefix="repolist-http")
        self._timeout = timeout
        self._closed = False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(cache={self._cache!r}, timeout={self._timeout})"

    @property
    def cache(self) -> HttpCache:
        return self._cache

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def get_json(self, url: str, *, use_cache: bool = True) -> Result[Any]:
        if self._closed:
            return Err(HttpError("http client is closed", url=url))

        body = self._cache.get(url) if use_cache else None
        if body is None:
            loop = get_running_loop()
            try:
                body = await loop.run_in_executor(
                    self._workers, self._transport, url, self._timeout
                )
            except HttpError as he:
                logger.debug("GET %s failed: %r", url, he)
                return Err(he)

        try:
            payload = json.loads(body)
        except ValueError as ve:
            self._cache.evict(url)
            return Err(HttpError(f"malformed json: {ve}", url=url))

        if use_cache:
            self._cache.put(url, body)
        return Ok(payload)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_workers:
            self._workers.shutdown(wait=False)
