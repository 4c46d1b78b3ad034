"""Typed client production.

Turning an interface definition into a callable client is delegated to a
``ProxyGenerator``. The registrar only needs ``produce``; any object with
that method can be passed to ``add_typed_client``.

``ClassProxyGenerator`` is the default. It treats the interface as a concrete
class whose constructor takes the finished ``httpx.AsyncClient``::

    class GitHubApi:
        def __init__(self, client: httpx.AsyncClient):
            self._client = client

        async def get_user(self, login: str) -> dict:
            response = await self._client.get(f"/users/{login}")
            return response.json()
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Protocol, get_origin, runtime_checkable

import httpx

from .errors import ProxyGenerationError
from .settings import ClientSettings


@dataclass(frozen=True)
class RequestBuilder:
    """Per-interface request building state shared by all its typed clients.

    Attributes:
        interface: The interface the builder belongs to
        settings: Settings resolved when the builder was created
    """

    interface: Any
    settings: ClientSettings | None = None

    @classmethod
    def for_type(cls, interface: Any, settings: ClientSettings | None = None) -> RequestBuilder:
        return cls(interface=interface, settings=settings)


@runtime_checkable
class ProxyGenerator(Protocol):
    """Produces a typed client bound to a finished HTTP client."""

    def produce(
        self,
        interface: Any,
        client: httpx.AsyncClient,
        request_builder: RequestBuilder | None = None,
    ) -> Any:
        ...


class ClassProxyGenerator:
    """Instantiates concrete interface classes around the HTTP client.

    The class is called as ``interface(client)``, or as
    ``interface(client, request_builder=...)`` when its constructor declares
    a ``request_builder`` parameter.
    """

    def produce(
        self,
        interface: Any,
        client: httpx.AsyncClient,
        request_builder: RequestBuilder | None = None,
    ) -> Any:
        cls = get_origin(interface) or interface
        if not isinstance(cls, type):
            raise ProxyGenerationError(
                f"Cannot produce a typed client for non-class {interface!r}", interface
            )

        if getattr(cls, "_is_protocol", False) or inspect.isabstract(cls):
            raise ProxyGenerationError(
                f"{cls.__name__} is abstract; register a ProxyGenerator that can implement it",
                interface,
            )

        if _accepts_request_builder(cls):
            return cls(client, request_builder=request_builder)
        return cls(client)


def _accepts_request_builder(interface: type) -> bool:
    try:
        parameters = inspect.signature(interface).parameters
    except (TypeError, ValueError):
        return False
    return "request_builder" in parameters
