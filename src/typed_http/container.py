"""Dict-like dependency injection container used as the resolution context.

The container is the "provider" handed to settings factories and typed-client
factories. It supports transient and singleton providers and an optional
lookup that returns ``None`` for unregistered keys.

Example:
    >>> container = Container()
    >>> container[Clock] = SystemClock            # class, built per resolve
    >>> container.singleton(TokenCache, TokenCache)
    >>> container["region"] = "eu-west-1"        # plain instance
    >>> cache = container[TokenCache]
    >>> container.get(Missing) is None
    True
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, TypeVar

from .errors import RegistrationError, ResolutionError

T = TypeVar("T")


class Scope(Enum):
    """Component lifecycle scopes."""

    SINGLETON = "singleton"  # One instance per container
    TRANSIENT = "transient"  # New instance for each resolution


@dataclass
class ComponentDescriptor:
    """Registration metadata for one key.

    Attributes:
        key: The type or string the component is registered under
        provider: Class, zero-argument factory, or ready-made instance
        scope: Lifecycle scope
        is_factory: True when provider is a plain callable rather than a class
    """

    key: Any
    provider: Any
    scope: Scope = Scope.TRANSIENT
    is_factory: bool = False

    def __post_init__(self):
        if callable(self.provider) and not isinstance(self.provider, type):
            self.is_factory = True

    def create(self) -> Any:
        if isinstance(self.provider, type) or self.is_factory:
            return self.provider()
        return self.provider


class Container:
    """Dependency injection container.

    Registration is expected to happen during setup; resolution may happen
    from any thread. Singleton creation is serialized so each singleton is
    built exactly once.
    """

    def __init__(self):
        self._descriptors: dict[Any, ComponentDescriptor] = {}
        self._singletons: dict[Any, Any] = {}
        self._singleton_lock = threading.RLock()

    # Dict-like interface

    def __setitem__(self, key: Any, provider: Any) -> None:
        """Register a transient component using dict syntax."""
        self.register(key, provider)

    def __getitem__(self, key: Any) -> Any:
        """Resolve a component using dict syntax."""
        return self.resolve(key)

    def __contains__(self, key: Any) -> bool:
        return key in self._descriptors

    def __delitem__(self, key: Any) -> None:
        self._descriptors.pop(key, None)
        with self._singleton_lock:
            self._singletons.pop(key, None)

    def __len__(self) -> int:
        return len(self._descriptors)

    # Registration

    def register(
        self, key: Any, provider: Any = None, *, scope: Scope = Scope.TRANSIENT
    ) -> ComponentDescriptor:
        """Register a component, replacing any previous registration for ``key``.

        Args:
            key: A type or string identifying the component
            provider: Class, zero-argument factory, or instance. Defaults to
                ``key`` itself when ``key`` is a class.
            scope: Lifecycle scope

        Raises:
            RegistrationError: If no provider is given and ``key`` is not a class
        """
        if provider is None:
            if not isinstance(key, type):
                raise RegistrationError(f"No provider given for '{key}'")
            provider = key

        descriptor = ComponentDescriptor(key=key, provider=provider, scope=scope)
        self._descriptors[key] = descriptor
        with self._singleton_lock:
            self._singletons.pop(key, None)
        return descriptor

    def singleton(self, key: Any, provider: Any = None) -> ComponentDescriptor:
        """Register a singleton component."""
        return self.register(key, provider, scope=Scope.SINGLETON)

    def factory(self, key: Any, factory_func: Callable[[], Any]) -> ComponentDescriptor:
        """Register a transient factory function."""
        if not callable(factory_func):
            raise RegistrationError(f"Factory for '{key}' must be callable")
        return self.register(key, factory_func)

    # Resolution

    def resolve(self, key: Any) -> Any:
        """Resolve a registered component.

        Raises:
            ResolutionError: If ``key`` is not registered
        """
        descriptor = self._descriptors.get(key)
        if descriptor is None:
            raise ResolutionError(f"Component '{_describe(key)}' not registered", service_key=key)

        if descriptor.scope is Scope.SINGLETON:
            return self._resolve_singleton(descriptor)
        return descriptor.create()

    def get(self, key: Any, default: Any = None) -> Any:
        """Resolve ``key`` if registered, otherwise return ``default``."""
        if key not in self._descriptors:
            return default
        return self.resolve(key)

    def _resolve_singleton(self, descriptor: ComponentDescriptor) -> Any:
        # Double-checked locking
        if descriptor.key in self._singletons:
            return self._singletons[descriptor.key]

        with self._singleton_lock:
            if descriptor.key in self._singletons:
                return self._singletons[descriptor.key]
            instance = descriptor.create()
            self._singletons[descriptor.key] = instance
            return instance


def _describe(key: Any) -> str:
    return getattr(key, "__name__", str(key))
