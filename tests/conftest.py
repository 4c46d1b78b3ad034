"""Shared test fixtures and utilities."""

import httpx
import pytest

from typed_http import Container, HttpClientFactory


@pytest.fixture
def container():
    """Create a fresh container for testing."""
    return Container()


@pytest.fixture
def clock():
    """Manually advanced clock for handler lifetime tests."""
    return FakeClock()


@pytest.fixture
def factory(container, clock):
    """Create an HTTP client factory on a fake clock and register it."""
    factory = HttpClientFactory(container, clock=clock)
    container.singleton(HttpClientFactory, factory)
    return factory


@pytest.fixture
def recorder():
    """Record requests that reach the innermost transport."""
    return RequestRecorder()


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RequestRecorder:
    """Handler for httpx.MockTransport that keeps every request it sees."""

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, json={"ok": True})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


class ClosableTransport(httpx.AsyncBaseTransport):
    """Transport that answers 200 and remembers whether it was closed."""

    def __init__(self):
        self.closed = False

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200)

    async def aclose(self) -> None:
        self.closed = True


# Typed client interfaces used across tests
class EchoApi:
    """Typed client whose constructor takes the finished HTTP client."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def ping(self) -> httpx.Response:
        return await self.client.get("http://test.local/ping")


class OtherApi(EchoApi):
    """A second interface, for name separation tests."""
