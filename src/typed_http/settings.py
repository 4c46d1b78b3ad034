"""Settings that shape a typed client's handler chain.

Settings are never read at registration time. A registration stores a
settings factory, and every client-construction event calls it with the
container to get a fresh ``ClientSettings`` (or ``None`` for defaults).

Example:
    Fixed settings::

        settings = ClientSettings(authorization_header_value_getter=lambda: "token")

    Settings that depend on other services::

        def settings_factory(container):
            vault = container[Vault]
            return ClientSettings(
                authorization_header_value_getter=vault.fetch_token,
            )
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Union

import httpx

from .errors import RegistrationError

if TYPE_CHECKING:
    from .container import Container

TokenValue = Union[str, Awaitable[str]]
"""A token getter may return the value directly or an awaitable of it."""

TokenGetter = Callable[[], TokenValue]
"""Produces an authorization header value with no request context."""

ParameterizedTokenGetter = Callable[[httpx.Request], TokenValue]
"""Produces an authorization header value for a given outgoing request."""

TransportFactory = Callable[[], httpx.AsyncBaseTransport]
"""Zero-argument factory for the innermost transport."""


@dataclass(frozen=True)
class ClientSettings:
    """Handler-chain settings for a typed client.

    Attributes:
        http_message_handler_factory: Builds the innermost transport. When
            absent the default ``httpx.AsyncHTTPTransport`` is used.
        authorization_header_value_getter: Returns the Authorization header
            value for every request.
        authorization_header_value_with_param_getter: Returns the
            Authorization header value for a specific request. Ignored when
            ``authorization_header_value_getter`` is also set.
    """

    http_message_handler_factory: TransportFactory | None = None
    authorization_header_value_getter: TokenGetter | None = None
    authorization_header_value_with_param_getter: ParameterizedTokenGetter | None = None


SettingsFactory = Callable[["Container"], Union[ClientSettings, None]]
"""Deferred settings resolution, called once per client-construction event."""


def no_settings(container: Container) -> None:
    """Settings factory used when a registration has no settings."""
    return None


def as_settings_factory(
    settings: ClientSettings | SettingsFactory | None,
) -> SettingsFactory:
    """Collapse every accepted settings shape into a settings factory.

    Raises:
        RegistrationError: If ``settings`` has an unsupported type
    """
    if settings is None:
        return no_settings

    if isinstance(settings, ClientSettings):
        return lambda container: settings

    if callable(settings):
        return settings

    raise RegistrationError(
        f"Settings must be ClientSettings, a callable taking the container, or None; "
        f"got {type(settings).__name__}"
    )


def resolve_settings(settings_factory: SettingsFactory, container: Container) -> ClientSettings | None:
    """Run a settings factory for one construction event."""
    return settings_factory(container)
