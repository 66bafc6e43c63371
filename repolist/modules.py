from wirescope import Module, ProviderKey

from .config import AppConfig, PreferenceStore
from .httpclient import HttpCache, HttpClient, Transport, urllib_transport
from .service import GithubService

BASE_URL = ProviderKey(str, "base_url")


def network_module(config: AppConfig, transport: Transport = urllib_transport) -> Module:
    """
    Application wide recipes: configuration inputs, the http cache and the http client.
    """
    network = Module("network")
    network.make(AppConfig).value(config)
    network.make(Transport).value(transport)
    network.make(BASE_URL).exposed().value(config.base_url)
    network.make(PreferenceStore).exposed().value(config.preferences)

    @network.provides(cached=True)
    def http_cache(config: AppConfig) -> HttpCache:
        return HttpCache(config.cache_dir, config.cache_size)

    @network.provides(cached=True, expose=True)
    def http_client(cache: HttpCache, transport: Transport, config: AppConfig) -> HttpClient:
        return HttpClient(cache, transport, timeout=config.timeout)

    return network


def user_module() -> Module:
    user = Module("user")
    user.make(GithubService).cached().exposed().type(GithubService)
    return user
