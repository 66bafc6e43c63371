import logging
from asyncio import Task, get_running_loop
from typing import Annotated, Any, Callable
from urllib.parse import quote

from wirescope import Named

from .httpclient import HttpClient
from .models import Err, HttpError, Ok, Repository, Result

logger = logging.getLogger(__name__)

OnSuccess = Callable[[list[Repository]], Any]
OnFailure = Callable[[HttpError], Any]


class GithubService:
    """
    The REST interface handed out by the user scope.
    """

    def __init__(self, client: HttpClient, base_url: Annotated[str, Named("base_url")]):
        self._client = client
        self._base_url = base_url

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_url={self._base_url!r})"

    @property
    def client(self) -> HttpClient:
        return self._client

    @property
    def base_url(self) -> str:
        return self._base_url

    def repositories_url(self, username: str) -> str:
        return f"{self._base_url}/users/{quote(username, safe='')}/repos"

    async def get_repositories(self, username: str) -> Result[list[Repository]]:
        url = self.repositories_url(username)
        result = await self._client.get_json(url)
        if isinstance(result, Err):
            return result

        payload = result.value
        if not isinstance(payload, list):
            return Err(HttpError(f"expected a list of repositories, got {type(payload).__name__}", url=url))

        try:
            repositories = [Repository.from_json(item) for item in payload]
        except (KeyError, TypeError, ValueError) as exc:
            return Err(HttpError(f"unexpected repository payload: {exc!r}", url=url))
        return Ok(repositories)

    def enqueue(self, username: str, on_success: OnSuccess, on_failure: OnFailure) -> "Task[None]":
        """
        Schedule `get_repositories` on the running loop; exactly one of the handlers is called, once.

        Raises:
            TypeError: a handler is missing.
            RuntimeError: no event loop is running.
        """
        if not callable(on_success) or not callable(on_failure):
            raise TypeError("both on_success and on_failure handlers are required")
        loop = get_running_loop()

        async def deliver() -> None:
            try:
                result = await self.get_repositories(username)
            except Exception as exc:
                logger.exception("fetching repositories of %r failed", username)
                result = Err(HttpError(repr(exc), url=self.repositories_url(username)))

            if isinstance(result, Ok):
                on_success(result.value)
            else:
                on_failure(result.error)

        return loop.create_task(deliver())
