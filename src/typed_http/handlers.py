"""Transport chain for typed clients.

A handler chain is a stack of ``httpx.AsyncBaseTransport`` objects. Each
``DelegatingTransport`` may inspect or modify the outgoing request and then
hands it to its inner transport. The innermost transport talks to the network.

``build_handler_chain`` turns ``ClientSettings`` into the transport that
becomes a client's primary handler::

    settings -> None                                   (keep default transport)
    settings -> inner factory output                   (no token getter)
    settings -> Authenticated*Transport(inner or default)

The chain is built once per client-construction event. Token getters run per
request.
"""

from __future__ import annotations

import inspect

import httpx

from .settings import ClientSettings, ParameterizedTokenGetter, TokenGetter, TokenValue

AUTHORIZATION = "Authorization"


class DelegatingTransport(httpx.AsyncBaseTransport):
    """Transport that forwards every request to an inner transport.

    Args:
        inner: The next transport in the chain. ``None`` terminates the chain
            at a new default ``httpx.AsyncHTTPTransport``.
    """

    def __init__(self, inner: httpx.AsyncBaseTransport | None = None):
        self._inner = inner if inner is not None else httpx.AsyncHTTPTransport()

    @property
    def inner(self) -> httpx.AsyncBaseTransport:
        return self._inner

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self._inner.handle_async_request(request)

    async def aclose(self) -> None:
        await self._inner.aclose()


class AuthenticatedTransport(DelegatingTransport):
    """Sets the Authorization header from a getter that takes no arguments."""

    def __init__(self, token_getter: TokenGetter, inner: httpx.AsyncBaseTransport | None = None):
        super().__init__(inner)
        self._token_getter = token_getter

    @property
    def token_getter(self) -> TokenGetter:
        return self._token_getter

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        token = await _await_token(self._token_getter())
        set_authorization(request, token)
        return await super().handle_async_request(request)


class AuthenticatedParameterizedTransport(DelegatingTransport):
    """Sets the Authorization header from a getter that receives the request."""

    def __init__(
        self,
        token_getter: ParameterizedTokenGetter,
        inner: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(inner)
        self._token_getter = token_getter

    @property
    def token_getter(self) -> ParameterizedTokenGetter:
        return self._token_getter

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        token = await _await_token(self._token_getter(request))
        set_authorization(request, token)
        return await super().handle_async_request(request)


def set_authorization(request: httpx.Request, token: str) -> None:
    """Write ``token`` into the request's Authorization header.

    A header holding only a scheme (``"Bearer"``) keeps the scheme and gets
    the token appended, unless the token already starts with that scheme.
    Anything else is replaced by ``token`` as-is.
    """
    existing = request.headers.get(AUTHORIZATION, "").strip()
    if (
        existing
        and " " not in existing
        and not token.lower().startswith(f"{existing.lower()} ")
    ):
        request.headers[AUTHORIZATION] = f"{existing} {token}"
    else:
        request.headers[AUTHORIZATION] = token


async def _await_token(value: TokenValue) -> str:
    if inspect.isawaitable(value):
        return await value
    return value


def build_handler_chain(settings: ClientSettings | None) -> httpx.AsyncBaseTransport | None:
    """Build the primary transport described by ``settings``.

    Returns ``None`` when the client should keep its default transport. When
    both token getters are set, the plain getter takes precedence. Errors
    raised by ``http_message_handler_factory`` propagate unchanged.
    """
    if settings is None:
        return None

    inner = None
    if settings.http_message_handler_factory is not None:
        inner = settings.http_message_handler_factory()

    if settings.authorization_header_value_getter is not None:
        return AuthenticatedTransport(settings.authorization_header_value_getter, inner)

    if settings.authorization_header_value_with_param_getter is not None:
        return AuthenticatedParameterizedTransport(
            settings.authorization_header_value_with_param_getter, inner
        )

    return inner
