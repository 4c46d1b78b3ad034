"""Named HTTP client host.

``HttpClientFactory`` keeps one registration per client name and builds
``httpx.AsyncClient`` instances for it. Registrations are configured through
``HttpClientBuilder``:

    - ``configure_primary_handler``: the single callback that supplies the
      primary transport; registering another one replaces it
    - ``configure_handler_builder``: callbacks that run on a fresh
      ``HandlerBuilder`` every time the handler chain is (re)built
    - ``add_handler``: delegating transports stacked above the primary one
    - ``configure_client`` / ``configure_options``: applied to every client
    - ``add_typed_client``: turns a finished client into a typed client

The handler chain for a name is built lazily by the first ``create_client``
call and shared by the clients created after it until ``handler_lifetime``
runs out. The next ``create_client`` then builds a new chain from scratch,
rerunning every handler-builder callback. Clients never close the shared
chain. A retired chain is closed once none of its clients is open or alive
any more; ``HttpClientFactory.aclose`` closes whatever is left.

Example:
    >>> factory = HttpClientFactory(container)
    >>> factory.add_client("github").configure_options(
    ...     {"base_url": "https://api.github.com"}
    ... ).add_handler(LoggingTransport)
    >>> async with factory.create_client("github") as client:
    ...     response = await client.get("/rate_limit")
"""

from __future__ import annotations

import asyncio
import threading
import time
import weakref
from dataclasses import dataclass, field
from typing import Any, Callable

import httpx
from loguru import logger

from .config import HttpClientOptions
from .container import Container
from .errors import ClientNotRegisteredError, ResolutionError
from .handlers import DelegatingTransport

HandlerFactory = Callable[[httpx.AsyncBaseTransport], httpx.AsyncBaseTransport]
"""Wraps an inner transport, e.g. a ``DelegatingTransport`` subclass."""

HandlerBuilderAction = Callable[["HandlerBuilder"], None]
PrimaryHandlerFactory = Callable[["HandlerBuilder"], "httpx.AsyncBaseTransport | None"]
ClientAction = Callable[[httpx.AsyncClient], None]
TypedClientFactory = Callable[[httpx.AsyncClient, Container], Any]


@dataclass
class HandlerBuilder:
    """Mutable description of one handler chain while it is being built.

    Attributes:
        name: Name of the client the chain is for
        services: Container available to callbacks
        primary_handler: Innermost transport. ``None`` means a default
            ``httpx.AsyncHTTPTransport``.
        additional_handlers: Wrappers applied around the primary handler,
            the first one ending up outermost
    """

    name: str
    services: Container
    primary_handler: httpx.AsyncBaseTransport | None = None
    additional_handlers: list[HandlerFactory] = field(default_factory=list)

    def build(self) -> httpx.AsyncBaseTransport:
        transport = self.primary_handler
        if transport is None:
            transport = httpx.AsyncHTTPTransport()

        for handler_factory in reversed(self.additional_handlers):
            transport = handler_factory(transport)
        return transport


@dataclass
class ClientRegistration:
    """Everything recorded for one named client."""

    name: str
    options: HttpClientOptions
    primary_handler_factory: PrimaryHandlerFactory | None = None
    handler_builder_actions: list[HandlerBuilderAction] = field(default_factory=list)
    additional_handlers: list[HandlerFactory] = field(default_factory=list)
    client_actions: list[ClientAction] = field(default_factory=list)
    typed_client_factory: TypedClientFactory | None = None


class _SharedTransport(DelegatingTransport):
    """Hands requests to a shared chain without letting a client close it.

    Closing only marks the lease as released and lets the factory close
    retired chains nobody uses any more.
    """

    def __init__(self, inner: httpx.AsyncBaseTransport, on_release: Callable[[], Any]):
        super().__init__(inner)
        self.released = False
        self._on_release = on_release

    async def aclose(self) -> None:
        if not self.released:
            self.released = True
            await self._on_release()


@dataclass(eq=False)
class _HandlerEntry:
    transport: httpx.AsyncBaseTransport
    created_at: float
    leases: weakref.WeakSet = field(default_factory=weakref.WeakSet)

    def is_expired(self, lifetime: float | None, now: float) -> bool:
        if lifetime is None:
            return False
        return now - self.created_at >= lifetime

    def in_use(self) -> bool:
        # Leases of garbage collected clients drop out of the WeakSet
        return any(not lease.released for lease in list(self.leases))


class HttpClientBuilder:
    """Fluent configuration for one named client registration."""

    def __init__(self, factory: HttpClientFactory, name: str):
        self._factory = factory
        self.name = name

    @property
    def services(self) -> Container:
        return self._factory.services

    @property
    def registration(self) -> ClientRegistration:
        return self._factory._get_registration(self.name)

    def configure_primary_handler(self, handler_factory: PrimaryHandlerFactory) -> HttpClientBuilder:
        """Set the callback that supplies the primary transport.

        The callback runs on every new ``HandlerBuilder`` before the
        ``configure_handler_builder`` callbacks. Returning ``None`` keeps the
        default transport. A later call replaces the earlier callback.
        """
        self.registration.primary_handler_factory = handler_factory
        return self

    def configure_handler_builder(self, action: HandlerBuilderAction) -> HttpClientBuilder:
        """Run ``action`` on every new ``HandlerBuilder`` for this client."""
        self.registration.handler_builder_actions.append(action)
        return self

    def add_handler(self, handler_factory: HandlerFactory) -> HttpClientBuilder:
        """Stack a delegating transport above the primary handler."""
        self.registration.additional_handlers.append(handler_factory)
        return self

    def configure_client(self, action: ClientAction) -> HttpClientBuilder:
        """Run ``action`` on every ``httpx.AsyncClient`` created for this name."""
        self.registration.client_actions.append(action)
        return self

    def configure_options(self, options: HttpClientOptions | dict[str, Any]) -> HttpClientBuilder:
        """Replace this client's options, or update them from a dict."""
        registration = self.registration
        if isinstance(options, HttpClientOptions):
            registration.options = options
        else:
            registration.options = HttpClientOptions.model_validate(
                {**registration.options.model_dump(), **options}
            )
        return self

    def set_handler_lifetime(self, seconds: float | None) -> HttpClientBuilder:
        """Set how long a built handler chain is reused."""
        return self.configure_options({"handler_lifetime": seconds})

    def add_typed_client(self, typed_client_factory: TypedClientFactory) -> HttpClientBuilder:
        """Set the factory that wraps finished clients into typed clients."""
        self.registration.typed_client_factory = typed_client_factory
        return self


class HttpClientFactory:
    """Creates ``httpx.AsyncClient`` instances for registered client names."""

    def __init__(
        self,
        services: Container,
        options: HttpClientOptions | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.services = services
        self.options = options or HttpClientOptions()
        self._clock = clock
        self._registrations: dict[str, ClientRegistration] = {}
        self._active: dict[str, _HandlerEntry] = {}
        self._expired: list[_HandlerEntry] = []
        self._closing: set[asyncio.Task] = set()
        self._lock = threading.RLock()
        self._name_locks: dict[str, threading.RLock] = {}

    @property
    def names(self) -> list[str]:
        return list(self._registrations)

    def is_registered(self, name: str) -> bool:
        return name in self._registrations

    def add_client(self, name: str) -> HttpClientBuilder:
        """Register ``name``, or return a builder for its existing registration."""
        if name not in self._registrations:
            self._registrations[name] = ClientRegistration(
                name=name, options=self.options.model_copy(deep=True)
            )
            logger.debug(f"Registered HTTP client '{name}'")
        return HttpClientBuilder(self, name)

    def create_client(self, name: str) -> httpx.AsyncClient:
        """Create a client for ``name`` on top of its current handler chain.

        Raises:
            ClientNotRegisteredError: If ``name`` was never registered
        """
        registration = self._get_registration(name)
        lease = self._lease(registration)
        self._schedule_release()

        client = httpx.AsyncClient(transport=lease, **registration.options.client_kwargs())
        for action in registration.client_actions:
            action(client)
        return client

    def create_typed_client(self, name: str) -> Any:
        """Create a client for ``name`` and wrap it with its typed client factory."""
        registration = self._get_registration(name)
        if registration.typed_client_factory is None:
            raise ResolutionError(f"HTTP client '{name}' has no typed client", service_key=name)

        client = self.create_client(name)
        return registration.typed_client_factory(client, self.services)

    async def aclose(self) -> None:
        """Close every handler chain this factory has built."""
        with self._lock:
            transports = [entry.transport for entry in self._active.values()]
            transports.extend(entry.transport for entry in self._expired)
            self._active.clear()
            self._expired.clear()
            closing = list(self._closing)

        if closing:
            await asyncio.gather(*closing)
        for transport in transports:
            await transport.aclose()
        logger.debug(f"Closed {len(transports)} HTTP handler chain(s)")

    def _get_registration(self, name: str) -> ClientRegistration:
        try:
            return self._registrations[name]
        except KeyError:
            raise ClientNotRegisteredError(name) from None

    def _name_lock(self, name: str) -> threading.RLock:
        with self._lock:
            return self._name_locks.setdefault(name, threading.RLock())

    def _lease(self, registration: ClientRegistration) -> _SharedTransport:
        name = registration.name
        # Only this name waits while its chain is built
        with self._name_lock(name):
            now = self._clock()
            entry = self._active.get(name)

            if entry is None or entry.is_expired(registration.options.handler_lifetime, now):
                fresh = _HandlerEntry(transport=self._build_transport(registration), created_at=now)
                with self._lock:
                    if entry is not None:
                        self._expired.append(entry)
                        logger.debug(f"Rotated handler chain for HTTP client '{name}'")
                    self._active[name] = fresh
                entry = fresh

            lease = _SharedTransport(entry.transport, self._release_unused)
            entry.leases.add(lease)
            return lease

    def _take_unused(self) -> list[httpx.AsyncBaseTransport]:
        with self._lock:
            unused = [entry for entry in self._expired if not entry.in_use()]
            self._expired = [entry for entry in self._expired if entry not in unused]
        return [entry.transport for entry in unused]

    async def _release_unused(self) -> None:
        for transport in self._take_unused():
            await transport.aclose()
            logger.debug(f"Closed retired handler chain {type(transport).__name__}")

    def _schedule_release(self) -> None:
        if not self._expired:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to close on here; a later client close or aclose() does it
            return

        task = loop.create_task(self._release_unused())
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    def _build_transport(self, registration: ClientRegistration) -> httpx.AsyncBaseTransport:
        builder = HandlerBuilder(
            name=registration.name,
            services=self.services,
            additional_handlers=list(registration.additional_handlers),
        )
        if registration.primary_handler_factory is not None:
            primary = registration.primary_handler_factory(builder)
            if primary is not None:
                builder.primary_handler = primary
        for action in registration.handler_builder_actions:
            action(builder)

        transport = builder.build()
        logger.debug(
            f"Built handler chain for HTTP client '{registration.name}': "
            f"{type(transport).__name__}"
        )
        return transport


def get_http_client_factory(container: Container) -> HttpClientFactory:
    """Return the container's ``HttpClientFactory``, registering one if needed."""
    factory = container.get(HttpClientFactory)
    if factory is None:
        factory = HttpClientFactory(container)
        container.singleton(HttpClientFactory, factory)
    return factory
