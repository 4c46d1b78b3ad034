"""Typed client registration.

Two entry points register a typed client with a container:

    - ``add_typed_client(container, Api, settings)`` takes the interface as a
      value, which suits interfaces chosen at runtime
    - ``@typed_client(container, settings)`` decorates the interface class

``settings`` may be omitted, a ``ClientSettings`` instance, or a callable
that receives the container and returns ``ClientSettings`` or ``None``.

Both shapes go through ``_register``, which records callbacks only. Nothing
is resolved or built until the first typed client is requested:

    container[Api]
      -> HttpClientFactory.create_typed_client(<canonical name>)
      -> primary-handler callback: resolve settings, build_handler_chain,
         install the result as the primary handler when there is one
      -> ProxyGenerator.produce(Api, client, request_builder)

Example:
    >>> container = Container()
    >>> add_typed_client(
    ...     container,
    ...     GitHubApi,
    ...     ClientSettings(authorization_header_value_getter=lambda: "token abc"),
    ... ).configure_options({"base_url": "https://api.github.com"})
    >>> api = container[GitHubApi]
"""

from __future__ import annotations

from typing import Any, Callable, get_origin

from loguru import logger

from .container import Container
from .errors import RegistrationError
from .factory import HandlerBuilder, HttpClientBuilder, get_http_client_factory
from .handlers import build_handler_chain
from .naming import unique_name_for_type
from .proxy import ClassProxyGenerator, ProxyGenerator, RequestBuilder
from .settings import ClientSettings, SettingsFactory, as_settings_factory, resolve_settings


def request_builder_key(interface: Any) -> tuple[type, Any]:
    """Container key of the shared ``RequestBuilder`` for ``interface``."""
    return (RequestBuilder, interface)


def add_typed_client(
    container: Container,
    interface: Any,
    settings: ClientSettings | SettingsFactory | None = None,
    *,
    proxy_generator: ProxyGenerator | None = None,
) -> HttpClientBuilder:
    """Register a typed client for ``interface``.

    Args:
        container: Container the typed client is resolved from
        interface: The client interface class (or parameterized generic)
        settings: Handler-chain settings, fixed or per construction event
        proxy_generator: Produces the typed client; ``ClassProxyGenerator``
            when omitted

    Returns:
        The named client's builder, for further configuration

    Raises:
        RegistrationError: If ``interface`` is not a class or ``settings``
            has an unsupported type
    """
    if not isinstance(interface, type) and get_origin(interface) is None:
        raise RegistrationError(f"Typed client interface must be a class, got {interface!r}")

    return _register(
        container,
        interface,
        as_settings_factory(settings),
        proxy_generator or ClassProxyGenerator(),
    )


def typed_client(
    container: Container,
    settings: ClientSettings | SettingsFactory | None = None,
    *,
    proxy_generator: ProxyGenerator | None = None,
) -> Callable[[type], type]:
    """Decorator form of ``add_typed_client``.

    Example:
        @typed_client(container, ClientSettings(authorization_header_value_getter=get_token))
        class BillingApi:
            def __init__(self, client: httpx.AsyncClient):
                self.client = client
    """
    settings_factory = as_settings_factory(settings)
    generator = proxy_generator or ClassProxyGenerator()

    def decorator(cls: type) -> type:
        _register(container, cls, settings_factory, generator)
        return cls

    return decorator


def _register(
    container: Container,
    interface: Any,
    settings_factory: SettingsFactory,
    proxy_generator: ProxyGenerator,
) -> HttpClientBuilder:
    name = unique_name_for_type(interface)
    factory = get_http_client_factory(container)
    builder_key = request_builder_key(interface)

    container.singleton(
        builder_key,
        lambda: RequestBuilder.for_type(interface, resolve_settings(settings_factory, container)),
    )

    def primary_handler(handler_builder: HandlerBuilder):
        return build_handler_chain(resolve_settings(settings_factory, handler_builder.services))

    def produce_typed_client(client, services: Container) -> Any:
        return proxy_generator.produce(interface, client, services.get(builder_key))

    # Re-registering replaces both callbacks, so the latest settings own the chain
    http_client_builder = (
        factory.add_client(name)
        .configure_primary_handler(primary_handler)
        .add_typed_client(produce_typed_client)
    )
    container[interface] = lambda: factory.create_typed_client(name)

    logger.debug(f"Registered typed client '{name}'")
    return http_client_builder
