"""Exception hierarchy for typed HTTP client registration and resolution.

Exception Hierarchy:
    TypedHttpError: Base exception for all typed-http errors
    ├── RegistrationError: Invalid registration arguments
    ├── ResolutionError: A component could not be resolved from the container
    │   └── ClientNotRegisteredError: No named client with that name
    └── ProxyGenerationError: A typed client could not be produced

Errors raised by user code while a handler chain is being built (for example
by an ``http_message_handler_factory``) are not wrapped; they propagate to
whoever asked for the client.

Example:
    >>> try:
    ...     api = container[GitHubApi]
    ... except ClientNotRegisteredError as e:
    ...     print(f"Unknown client: {e.client_name}")
"""

from __future__ import annotations

from typing import Any


class TypedHttpError(Exception):
    """Base exception for all typed-http errors."""

    pass


class RegistrationError(TypedHttpError):
    """Raised when a client or component registration is invalid.

    This occurs when:
    - The interface is not a class
    - Settings are neither ClientSettings, a callable, nor None
    - A container provider is not usable
    """

    pass


class ResolutionError(TypedHttpError):
    """Raised when a component cannot be resolved from the container."""

    def __init__(self, message: str, service_key: Any = None, cause: Exception | None = None):
        super().__init__(message)
        self.service_key = service_key
        self.cause = cause


class ClientNotRegisteredError(ResolutionError):
    """Raised when a named HTTP client was never registered."""

    def __init__(self, client_name: str):
        self.client_name = client_name
        super().__init__(
            f"HTTP client '{client_name}' not configured", service_key=client_name
        )


class ProxyGenerationError(TypedHttpError):
    """Raised when a typed client cannot be produced for an interface."""

    def __init__(self, message: str, interface: type | None = None):
        super().__init__(message)
        self.interface = interface
