"""DI container: register services by type/protocol, resolve their constructor dependencies."""
from __future__ import annotations

import inspect
import types
import typing
from typing import Any, Callable, TypeVar

T = TypeVar("T")


def _constructor_hints(cls: type[Any]) -> dict[str, Any]:
    """Evaluated __init__ annotations; postponed (string) annotations are resolved in the class module."""
    try:
        return typing.get_type_hints(cls.__init__)
    except (NameError, TypeError):
        return {}


def _unwrap_optional(ann: Any) -> Any:
    """X | None resolves as X; the None branch is covered by the parameter default."""
    if typing.get_origin(ann) in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(ann) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return ann


def _instantiate_with_container(container: Container, cls: type[T]) -> T:
    """Create an instance of cls, resolving __init__ dependencies from the container."""
    hints = _constructor_hints(cls)
    kwargs: dict[str, Any] = {}
    for name, param in inspect.signature(cls).parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        ann = hints.get(name, param.annotation)
        if ann is inspect.Parameter.empty:
            continue
        ann = _unwrap_optional(ann)
        if param.default is not inspect.Parameter.empty and not container.has(ann):
            continue
        kwargs[name] = container.resolve(ann)
    return cls(**kwargs)


class Container:
    """
    Register by type and resolve via factory.
    Repositories, domain services and handlers are all singletons: one instance per application.
    """

    def __init__(self) -> None:
        self._registry: dict[Any, Callable[[], Any]] = {}
        self._singletons: dict[Any, Any] = {}

    def register(self, key: Any, factory: Callable[[], T]) -> None:
        """Register a factory for a type. Re-registering replaces the previous binding."""
        self._registry[key] = factory
        self._singletons.pop(key, None)

    def register_instance(self, key: Any, instance: T) -> None:
        """Register a ready-made instance."""
        self._registry[key] = lambda: instance
        self._singletons[key] = instance

    def register_class(self, cls: type[T]) -> None:
        """Register a class: on resolve an instance is created with dependencies from the container."""
        self.register(cls, lambda: _instantiate_with_container(self, cls))

    def has(self, key: Any) -> bool:
        return key in self._registry

    def resolve(self, key: Any) -> Any:
        """Resolve an instance by type."""
        if key not in self._registry:
            raise KeyError(f"No registration for {key}")
        if key not in self._singletons:
            self._singletons[key] = self._registry[key]()
        return self._singletons[key]
