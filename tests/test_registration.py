"""End-to-end tests for typed client registration."""

from typing import Generic, TypeVar
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from conftest import ClosableTransport, EchoApi, OtherApi
from typed_http import (
    AuthenticatedTransport,
    ClientSettings,
    RegistrationError,
    RequestBuilder,
    add_typed_client,
    request_builder_key,
    typed_client,
    unique_name_for_type,
)

T = TypeVar("T")


class PagedApi(EchoApi, Generic[T]):
    """Generic typed client."""


class TokenSource:
    """Service a settings factory resolves from the container."""

    def __init__(self):
        self.issued = 0

    def __call__(self) -> str:
        self.issued += 1
        return f"token-{self.issued}"


def active_transport(factory, interface):
    return factory._active[unique_name_for_type(interface)].transport


@pytest.mark.asyncio
async def test_plain_getter_sets_authorization_header(container):
    """A plain token getter's value is sent on the default transport."""
    add_typed_client(container, EchoApi, ClientSettings(authorization_header_value_getter=lambda: "abc"))
    send = AsyncMock(return_value=httpx.Response(200))

    api = container[EchoApi]
    with patch.object(httpx.AsyncHTTPTransport, "handle_async_request", send):
        await api.ping()

    assert send.call_args[0][0].headers["Authorization"] == "abc"


@pytest.mark.asyncio
async def test_no_settings_uses_default_transport_without_auth(container, factory):
    add_typed_client(container, EchoApi)
    send = AsyncMock(return_value=httpx.Response(200))

    api = container[EchoApi]
    with patch.object(httpx.AsyncHTTPTransport, "handle_async_request", send):
        await api.ping()

    assert type(active_transport(factory, EchoApi)) is httpx.AsyncHTTPTransport
    assert "Authorization" not in send.call_args[0][0].headers


def test_settings_factory_returning_none_is_not_an_error(container, factory):
    add_typed_client(container, EchoApi, lambda c: None)

    api = container[EchoApi]

    assert isinstance(api, EchoApi)
    assert type(active_transport(factory, EchoApi)) is httpx.AsyncHTTPTransport


@pytest.mark.asyncio
async def test_chain_order_is_auth_then_custom_inner(container, factory, recorder):
    inner = recorder.transport()
    add_typed_client(
        container,
        EchoApi,
        ClientSettings(
            http_message_handler_factory=lambda: inner,
            authorization_header_value_getter=lambda: "x",
        ),
    )

    await container[EchoApi].ping()

    chain = active_transport(factory, EchoApi)
    assert isinstance(chain, AuthenticatedTransport)
    assert chain.inner is inner
    assert recorder.last.headers["Authorization"] == "x"


@pytest.mark.asyncio
async def test_inner_factory_without_getters_is_primary_handler(container, factory, recorder):
    inner = recorder.transport()
    add_typed_client(container, EchoApi, ClientSettings(http_message_handler_factory=lambda: inner))

    await container[EchoApi].ping()

    assert active_transport(factory, EchoApi) is inner
    assert "Authorization" not in recorder.last.headers


@pytest.mark.asyncio
async def test_param_getter_gets_value_for_each_request(container, recorder):
    add_typed_client(
        container,
        EchoApi,
        ClientSettings(
            http_message_handler_factory=recorder.transport,
            authorization_header_value_with_param_getter=lambda request: request.url.host,
        ),
    )

    await container[EchoApi].ping()

    assert recorder.last.headers["Authorization"] == "test.local"


@pytest.mark.asyncio
async def test_plain_getter_wins_when_both_are_set(container, recorder):
    add_typed_client(
        container,
        EchoApi,
        ClientSettings(
            http_message_handler_factory=recorder.transport,
            authorization_header_value_getter=lambda: "plain",
            authorization_header_value_with_param_getter=lambda request: "param",
        ),
    )

    await container[EchoApi].ping()

    assert recorder.last.headers["Authorization"] == "plain"


def test_settings_not_resolved_at_registration(container):
    settings_factory = Mock(return_value=None)

    add_typed_client(container, EchoApi, settings_factory)

    settings_factory.assert_not_called()


def test_settings_factory_receives_container(container, recorder):
    container.singleton(TokenSource)
    seen = []

    def settings_factory(c):
        seen.append(c)
        return ClientSettings(
            http_message_handler_factory=recorder.transport,
            authorization_header_value_getter=c[TokenSource],
        )

    add_typed_client(container, EchoApi, settings_factory)
    container[EchoApi]

    assert seen
    assert all(c is container for c in seen)


@pytest.mark.asyncio
async def test_handler_rotation_resolves_settings_again(container, factory, clock, recorder):
    generation = iter(["gen-1", "gen-2"])

    def settings_factory(c):
        token = next(generation)
        return ClientSettings(
            http_message_handler_factory=recorder.transport,
            authorization_header_value_getter=lambda: token,
        )

    builder = add_typed_client(container, EchoApi, settings_factory)
    builder.set_handler_lifetime(10)
    # The request builder singleton resolves settings once; keep it out of the count
    container.singleton(request_builder_key(EchoApi), RequestBuilder.for_type(EchoApi))

    await container[EchoApi].ping()
    first_chain = active_transport(factory, EchoApi)

    await container[EchoApi].ping()
    assert active_transport(factory, EchoApi) is first_chain

    clock.advance(11)
    await container[EchoApi].ping()

    assert active_transport(factory, EchoApi) is not first_chain
    assert [r.headers["Authorization"] for r in recorder.requests] == ["gen-1", "gen-1", "gen-2"]


def test_registering_same_type_twice_reuses_named_client(container, factory):
    add_typed_client(container, EchoApi)
    add_typed_client(container, EchoApi, ClientSettings(authorization_header_value_getter=lambda: "x"))

    assert factory.names == [unique_name_for_type(EchoApi)]


@pytest.mark.asyncio
async def test_last_registration_settings_win(container, recorder):
    add_typed_client(container, EchoApi, ClientSettings(authorization_header_value_getter=lambda: "old"))
    add_typed_client(
        container,
        EchoApi,
        ClientSettings(
            http_message_handler_factory=recorder.transport,
            authorization_header_value_getter=lambda: "new",
        ),
    )

    await container[EchoApi].ping()

    assert recorder.last.headers["Authorization"] == "new"


@pytest.mark.asyncio
async def test_reregistering_without_settings_drops_authentication(container):
    add_typed_client(container, EchoApi, ClientSettings(authorization_header_value_getter=lambda: "old"))
    add_typed_client(container, EchoApi)
    send = AsyncMock(return_value=httpx.Response(200))

    api = container[EchoApi]
    with patch.object(httpx.AsyncHTTPTransport, "handle_async_request", send):
        await api.ping()

    assert "Authorization" not in send.call_args[0][0].headers
    assert container[request_builder_key(EchoApi)].settings is None


def test_replaced_registration_no_longer_builds_its_handler(container, factory):
    old_inner = Mock(return_value=ClosableTransport())
    new_inner = Mock(return_value=ClosableTransport())
    add_typed_client(container, EchoApi, ClientSettings(http_message_handler_factory=old_inner))
    add_typed_client(container, EchoApi, ClientSettings(http_message_handler_factory=new_inner))

    container[EchoApi]

    old_inner.assert_not_called()
    new_inner.assert_called_once_with()
    assert active_transport(factory, EchoApi) is new_inner.return_value


def test_different_types_get_separate_clients(container, factory):
    add_typed_client(container, EchoApi)
    add_typed_client(container, OtherApi)

    assert sorted(factory.names) == sorted(
        [unique_name_for_type(EchoApi), unique_name_for_type(OtherApi)]
    )


@pytest.mark.asyncio
async def test_decorator_and_function_share_behavior(container, factory, recorder):
    settings = ClientSettings(
        http_message_handler_factory=recorder.transport,
        authorization_header_value_getter=lambda: "same",
    )

    @typed_client(container, settings)
    class DecoratedApi(EchoApi):
        pass

    add_typed_client(container, OtherApi, settings)

    await container[DecoratedApi].ping()
    await container[OtherApi].ping()

    assert unique_name_for_type(DecoratedApi) in factory.names
    assert [r.headers["Authorization"] for r in recorder.requests] == ["same", "same"]


def test_decorator_returns_class_unchanged(container):
    @typed_client(container)
    class PlainApi(EchoApi):
        pass

    assert isinstance(container[PlainApi], PlainApi)


def test_generic_interface_registration(container, factory):
    add_typed_client(container, PagedApi[int])

    api = container[PagedApi[int]]

    assert isinstance(api, PagedApi)
    assert factory.is_registered(unique_name_for_type(PagedApi[int]))


def test_custom_proxy_generator_receives_client_and_request_builder(container):
    generator = Mock()
    settings = ClientSettings(authorization_header_value_getter=lambda: "x")

    add_typed_client(container, EchoApi, settings, proxy_generator=generator)
    result = container[EchoApi]

    assert result is generator.produce.return_value
    interface, client, request_builder = generator.produce.call_args[0]
    assert interface is EchoApi
    assert isinstance(client, httpx.AsyncClient)
    assert request_builder == RequestBuilder(interface=EchoApi, settings=settings)


def test_options_apply_to_typed_client(container):
    add_typed_client(container, EchoApi).configure_options(
        {"base_url": "https://api.example.com", "headers": {"X-Api-Version": "2"}}
    )

    api = container[EchoApi]

    assert api.client.base_url.host == "api.example.com"
    assert api.client.headers["X-Api-Version"] == "2"


def test_inner_factory_error_fails_client_construction(container):
    def broken():
        raise ConnectionRefusedError("socket budget exhausted")

    add_typed_client(container, EchoApi, ClientSettings(http_message_handler_factory=broken))

    with pytest.raises(ConnectionRefusedError, match="socket budget exhausted"):
        container[EchoApi]


def test_invalid_settings_rejected(container):
    with pytest.raises(RegistrationError, match="Settings must be"):
        add_typed_client(container, EchoApi, "token abc")


def test_non_class_interface_rejected(container):
    with pytest.raises(RegistrationError, match="must be a class"):
        add_typed_client(container, "EchoApi")
