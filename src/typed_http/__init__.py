"""typed-http - typed HTTP clients registered in a dependency injection container.

Each registered interface gets a named ``httpx.AsyncClient`` whose primary
transport is built from ``ClientSettings`` every time the client's handler
chain is constructed: an optional custom inner transport, wrapped by an
authentication transport when a token getter is configured.

Quick Start:
    >>> import httpx
    >>> from typed_http import ClientSettings, Container, add_typed_client
    >>>
    >>> class GitHubApi:
    ...     def __init__(self, client: httpx.AsyncClient):
    ...         self.client = client
    ...
    ...     async def me(self) -> dict:
    ...         return (await self.client.get("/user")).json()
    >>>
    >>> container = Container()
    >>> add_typed_client(
    ...     container,
    ...     GitHubApi,
    ...     ClientSettings(authorization_header_value_getter=lambda: "token ghp_xxx"),
    ... ).configure_options({"base_url": "https://api.github.com"})
    >>>
    >>> api = container[GitHubApi]   # handler chain is built here
"""

from loguru import logger

__version__ = "0.1.0"

from typed_http.config import HttpClientOptions
from typed_http.container import Container, Scope
from typed_http.errors import (
    ClientNotRegisteredError,
    ProxyGenerationError,
    RegistrationError,
    ResolutionError,
    TypedHttpError,
)
from typed_http.factory import (
    HandlerBuilder,
    HttpClientBuilder,
    HttpClientFactory,
    get_http_client_factory,
)
from typed_http.handlers import (
    AuthenticatedParameterizedTransport,
    AuthenticatedTransport,
    DelegatingTransport,
    build_handler_chain,
)
from typed_http.naming import unique_name_for_type
from typed_http.proxy import ClassProxyGenerator, ProxyGenerator, RequestBuilder
from typed_http.registration import add_typed_client, request_builder_key, typed_client
from typed_http.settings import ClientSettings, as_settings_factory, resolve_settings

__all__ = [
    # Registration
    "add_typed_client",
    "typed_client",
    "request_builder_key",
    # Settings
    "ClientSettings",
    "as_settings_factory",
    "resolve_settings",
    # Handlers
    "AuthenticatedParameterizedTransport",
    "AuthenticatedTransport",
    "DelegatingTransport",
    "build_handler_chain",
    # Host
    "HandlerBuilder",
    "HttpClientBuilder",
    "HttpClientFactory",
    "HttpClientOptions",
    "get_http_client_factory",
    "unique_name_for_type",
    # Container
    "Container",
    "Scope",
    # Proxies
    "ClassProxyGenerator",
    "ProxyGenerator",
    "RequestBuilder",
    # Errors
    "ClientNotRegisteredError",
    "ProxyGenerationError",
    "RegistrationError",
    "ResolutionError",
    "TypedHttpError",
]

# Disabled by default, users can enable with logger.enable("typed_http")
logger.disable("typed_http")
