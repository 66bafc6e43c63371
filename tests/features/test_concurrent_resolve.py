import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from wirescope import GraphConfig, ProviderKey, Scope, build_graph


class Database:
    pass


class Repository:
    def __init__(self, db: Database):
        self.db = db


@pytest.fixture
def max_workers():
    return 8


@pytest.fixture
def pool(max_workers: int):
    return ThreadPoolExecutor(max_workers)


def slow_database_factory(calls: list[int]):
    def make_database() -> Database:
        calls.append(threading.get_ident())
        time.sleep(0.05)
        return Database()

    return make_database


def test_threading_resolve_cached(pool: ThreadPoolExecutor, max_workers: int):
    calls: list[int] = []
    scope = Scope()
    scope.register(Database, slow_database_factory(calls), cached=True)
    scope.register(Repository, Repository)
    graph = build_graph(scope)

    barrier = threading.Barrier(max_workers)

    def resolve():
        barrier.wait()
        return graph.resolve(Repository).db

    with pool as executor:
        futures = [executor.submit(resolve) for _ in range(max_workers)]
        results = [future.result() for future in futures]

    assert len(calls) == 1
    assert len({id(db) for db in results}) == 1


def test_threading_resolve_non_cached(pool: ThreadPoolExecutor, max_workers: int):
    scope = Scope()
    scope.register(Database, Database)
    graph = build_graph(scope)

    with pool as executor:
        futures = [executor.submit(graph.resolve, Database) for _ in range(max_workers)]
        results = [future.result() for future in futures]

    assert len({id(db) for db in results}) == max_workers


def test_unlocked_cache_single_thread():
    calls: list[int] = []
    scope = Scope(config=GraphConfig(thread_safe=False))
    scope.register(Database, slow_database_factory(calls), cached=True)
    graph = build_graph(scope)

    assert graph.resolve(Database) is graph.resolve(Database)
    assert len(calls) == 1
    assert ProviderKey(Database) in scope.cache
