from typing import Any, Hashable, Sequence


class WireScopeError(Exception):
    """
    Base class for all wirescope exceptions.
    """

    def __init__(self, message: str, /):
        self.message = message
        super().__init__(self.message)


# =============== General Errors ===============


class NotSupportedError(WireScopeError):
    """
    Base class for all not supported exceptions.
    """


# =============== Registry Errors ===============


class RegistryError(WireScopeError):
    """
    Base class for all provider registration related exceptions.
    """


class DuplicateKeyError(RegistryError):
    def __init__(self, key: Any, scope_name: Hashable):
        self.key = key
        self.scope_name = scope_name
        super().__init__(f"{key} is already registered in scope {scope_name!r}")


class UnknownKeyError(RegistryError):
    def __init__(self, key: Any, scope_name: Hashable):
        self.key = key
        self.scope_name = scope_name
        super().__init__(f"{key} is not provided by scope {scope_name!r}")


class ScopeSealedError(RegistryError):
    def __init__(self, scope_name: Hashable):
        self.scope_name = scope_name
        super().__init__(
            f"scope {scope_name!r} already has a graph built over it, recipes can't be added"
        )


class MissingAnnotationError(RegistryError):
    def __init__(self, factory: Any, param_name: str):
        self.factory = factory
        self.param_name = param_name
        factory_repr = getattr(factory, "__qualname__", repr(factory))
        super().__init__(
            f"Unable to infer dependency for parameter `{param_name}` of {factory_repr}, "
            "annotate it or pass `depends_on` explicitly"
        )


# =============== Graph Errors ===============


class GraphError(WireScopeError):
    """
    Base class for all graph related exceptions.
    """


class MissingDependencyError(GraphError):
    """Raised when a recipe depends on a key that is neither local nor exposed by an ancestor."""

    def __init__(self, key: Any, required_by: Any, scope_name: Hashable):
        self.key = key
        self.required_by = required_by
        self.scope_name = scope_name
        super().__init__(
            f"{required_by} in scope {scope_name!r} depends on {key}, "
            "which is neither registered in the scope nor exposed by any of its ancestors"
        )


class CyclicDependencyError(GraphError):
    """Raised when a circular dependency is detected in the dependency graph."""

    def __init__(self, cycle_path: Sequence[Any]):
        cycle_str = " -> ".join(str(k) for k in cycle_path)
        self._cycle_path = list(cycle_path)
        super().__init__(f"Circular dependency detected: {cycle_str}")

    @property
    def cycle_path(self) -> list[Any]:
        return self._cycle_path


class ScopeClosedError(GraphError):
    def __init__(self, scope_name: Hashable):
        self.scope_name = scope_name
        super().__init__(f"scope {scope_name!r} is closed")


class OutOfScopeError(GraphError):
    def __init__(self, name: Hashable = ""):
        msg = f"scope with {name=} not found in the graph chain"
        super().__init__(msg)


# =============== Injection Errors ===============


class InjectionError(WireScopeError):
    """
    Base class for all injection related exceptions.
    """


class UnsatisfiedSlotError(InjectionError):
    def __init__(self, target: Any, slot_name: str, key: Any):
        self.target = target
        self.slot_name = slot_name
        self.key = key
        target_repr = getattr(target, "__qualname__", type(target).__qualname__)
        super().__init__(
            f"-> {target_repr}.{slot_name}: no graph in the chain can provide {key}"
        )


class UnresolvedAnnotationError(InjectionError):
    def __init__(self, target_type: type, reason: str):
        self.target_type = target_type
        self.reason = reason
        super().__init__(
            f"Unable to resolve the annotations of {target_type.__qualname__}: {reason}, "
            "its injection slots can't be collected"
        )
