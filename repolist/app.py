import logging
from typing import Callable, Optional

from wirescope import ComponentGraph, Injected, Injector, ProviderKey, Scope, build_graph
from wirescope.config import RootScopeName

from .config import AppConfig, PreferenceStore
from .httpclient import HttpClient, Transport, urllib_transport
from .models import Ok, Repository, Result
from .modules import network_module, user_module
from .service import GithubService

logger = logging.getLogger(__name__)

UserScopeName = "user"
LAST_USER = "last_user"


class MainScreen:
    """
    Injection site: fetches a user's repositories and confirms with a short notification.
    """

    api: Injected[GithubService]
    preferences: Injected[PreferenceStore]

    def __init__(self, notify: Optional[Callable[[str], None]] = None):
        self.notify: Callable[[str], None] = notify or logger.info
        self.repositories: list[Repository] = []

    async def fetch(self, username: str) -> Result[list[Repository]]:
        result = await self.api.get_repositories(username)
        if isinstance(result, Ok):
            self.repositories = result.value
            self.preferences[LAST_USER] = username
            self.notify(f"Loaded {len(result.value)} repositories for {username}")
        else:
            self.notify(f"Failed to load repositories for {username}: {result.error.message}")
        return result


class RepoListApplication:
    """
    Owns the application scope for the whole process and a user scope per session.
    """

    def __init__(self, config: AppConfig, *, transport: Transport = urllib_transport):
        self._config = config
        root = Scope(RootScopeName)
        root.install(network_module(config, transport))
        root.register_exit_callback(self._release_client, root)
        self._graph = build_graph(root)
        self._user_graph: Optional[ComponentGraph] = None

    def __enter__(self) -> "RepoListApplication":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @staticmethod
    def _release_client(root: Scope) -> None:
        client = root.cache.get(ProviderKey(HttpClient))
        if isinstance(client, HttpClient):
            client.close()

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def graph(self) -> ComponentGraph:
        return self._graph

    def user_graph(self) -> ComponentGraph:
        if self._user_graph is None or self._user_graph.is_closed:
            scope = Scope(UserScopeName, config=self._graph.scope.config)
            scope.install(user_module())
            self._user_graph = self._graph.child(scope)
        return self._user_graph

    def end_user_session(self) -> None:
        if self._user_graph is not None:
            self._user_graph.close()
            self._user_graph = None

    def inject(self, screen: MainScreen) -> MainScreen:
        return Injector(self.user_graph()).inject(screen)

    def close(self) -> None:
        self.end_user_session()
        self._graph.close()
