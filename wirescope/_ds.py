from threading import Lock
from types import MappingProxyType
from typing import Any, Callable, Hashable, Iterable, Union

from ._node import ProviderKey, Recipe
from .errors import CyclicDependencyError, DuplicateKeyError, UnknownKeyError
from .utils.param_utils import MISSING, Maybe

RecipesView = MappingProxyType[ProviderKey, Recipe]
"""
### a readonly view of a scope's recipes
"""


class ProviderRegistry(dict[ProviderKey, Recipe]):
    """
    mapping a ProviderKey to the recipe that constructs it, unique per scope.
    """

    __slots__ = ("scope_name",)

    def __init__(self, scope_name: Hashable):
        super().__init__()
        self.scope_name = scope_name

    def register(self, key: ProviderKey, recipe: Recipe) -> None:
        if key in self:
            raise DuplicateKeyError(key, self.scope_name)
        self[key] = recipe

    def lookup(self, key: ProviderKey) -> Recipe:
        try:
            return self[key]
        except KeyError:
            raise UnknownKeyError(key, self.scope_name) from None


class InstanceCache:
    """
    mapping a ProviderKey to its constructed value, only values of cached recipes are kept here.

    First construction of a key takes that key's lock, double-checked,
    so the factory runs once even under concurrent first access.
    Reads of an already constructed key take no lock.
    """

    __slots__ = ("_values", "_locks", "_guard", "_thread_safe")

    def __init__(self, *, thread_safe: bool = True):
        self._values: dict[ProviderKey, Any] = {}
        self._locks: dict[ProviderKey, Lock] = {}
        self._guard = Lock()
        self._thread_safe = thread_safe

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: ProviderKey) -> bool:
        return key in self._values

    def get(self, key: ProviderKey) -> Maybe[Any]:
        return self._values.get(key, MISSING)

    def _lock_for(self, key: ProviderKey) -> Lock:
        with self._guard:
            if (lock := self._locks.get(key)) is None:
                lock = self._locks[key] = Lock()
            return lock

    def get_or_create(self, key: ProviderKey, factory: Callable[[], Any]) -> Any:
        if key in self._values:
            return self._values[key]

        if not self._thread_safe:
            value = self._values[key] = factory()
            return value

        with self._lock_for(key):
            if key in self._values:
                return self._values[key]
            value = factory()
            self._values[key] = value
            return value

    def clear(self) -> None:
        with self._guard:
            self._values.clear()
            self._locks.clear()


class Visitor:
    """
    Depth first traversals over the recipes of one scope.
    Keys that are not in `recipes` (provided by a parent graph) are leaves.
    """

    __slots__ = ("_recipes",)

    def __init__(self, recipes: Union[dict[ProviderKey, Recipe], RecipesView]):
        self._recipes = recipes

    def _local_deps(self, key: ProviderKey) -> list[ProviderKey]:
        return [d for d in self._recipes[key].dependencies if d in self._recipes]

    def _visit(
        self,
        start_keys: Union[Iterable[ProviderKey], ProviderKey],
        pre_visit: Union[Callable[[ProviderKey], None], None] = None,
        post_visit: Union[Callable[[ProviderKey], None], None] = None,
    ) -> None:
        """Generic DFS traversal with customizable visit callbacks.

        Args:
            start_keys: Starting key(s) for traversal
            pre_visit: Called before visiting a key's dependencies
            post_visit: Called after visiting a key's dependencies
        """
        if isinstance(start_keys, ProviderKey):
            start_keys = [start_keys]

        visited = set[ProviderKey]()

        def dfs(key: ProviderKey):
            if key in visited:
                return
            visited.add(key)

            if pre_visit:
                pre_visit(key)

            for dep in self._local_deps(key):
                dfs(dep)

            if post_visit:
                post_visit(key)

        for key in start_keys:
            dfs(key)

    def check_cycles(self) -> None:
        """
        Raise CyclicDependencyError for the first cycle found,
        `cycle_path` starts and ends with the same key.
        """
        done = set[ProviderKey]()
        current_path: list[ProviderKey] = []
        on_path = set[ProviderKey]()

        def dfs(key: ProviderKey):
            current_path.append(key)
            on_path.add(key)

            for dep in self._local_deps(key):
                if dep in on_path:
                    i = current_path.index(dep)
                    raise CyclicDependencyError(current_path[i:] + [dep])
                if dep not in done:
                    dfs(dep)

            current_path.pop()
            on_path.discard(key)
            done.add(key)

        for key in self._recipes:
            if key not in done:
                dfs(key)

    def get_dependents(self, dependency: ProviderKey) -> list[ProviderKey]:
        dependents: list[ProviderKey] = []

        def collect_dependent(key: ProviderKey):
            if dependency in self._recipes[key].dependencies:
                dependents.append(key)

        self._visit(list(self._recipes), pre_visit=collect_dependent)
        return dependents

    def get_dependencies(
        self, dependent: ProviderKey, recursive: bool = False
    ) -> list[ProviderKey]:
        if not recursive:
            return list(self._recipes[dependent].dependencies)

        def collect_dependencies(k: ProviderKey):
            if k != dependent:
                dependencies.append(k)

        dependencies: list[ProviderKey] = []
        self._visit(
            dependent,
            post_visit=collect_dependencies,
        )
        return dependencies

    def top_sorted_dependencies(self) -> list[ProviderKey]:
        "Sort the whole scope, from lowest dependencies to toppest dependents"
        order: list[ProviderKey] = []
        self._visit(list(self._recipes), post_visit=order.append)
        return order
