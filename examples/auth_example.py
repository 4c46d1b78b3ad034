"""Example demonstrating typed clients with authentication settings."""

import asyncio
import os
import time

import httpx
from loguru import logger

from typed_http import ClientSettings, Container, add_typed_client, typed_client

container = Container()


class TokenCache:
    """Caches an access token and refreshes it when it is about to expire.

    The cache is shared by every request of every client built with it, so
    refreshing happens under a lock.
    """

    def __init__(self, ttl: float = 300.0):
        self.ttl = ttl
        self._token: str | None = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        async with self._lock:
            if self._token is None or time.monotonic() >= self._expires_at:
                # In a real app this would call the OAuth2 token endpoint
                self._token = f"Bearer mock-token-{int(time.time())}"
                self._expires_at = time.monotonic() + self.ttl
            return self._token


container.singleton(TokenCache)


# GitHub client with a fixed personal access token
class GitHubApi:
    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def rate_limit(self) -> dict:
        response = await self.client.get("/rate_limit")
        return response.json()


add_typed_client(
    container,
    GitHubApi,
    ClientSettings(
        authorization_header_value_getter=lambda: f"token {os.getenv('GITHUB_TOKEN', 'fake-token')}"
    ),
).configure_options(
    {"base_url": "https://api.github.com", "headers": {"Accept": "application/vnd.github.v3+json"}}
)


# OAuth2 client whose settings are resolved from the container
@typed_client(
    container,
    lambda c: ClientSettings(authorization_header_value_getter=c[TokenCache].get_token),
)
class OrdersApi:
    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def list_orders(self) -> list:
        response = await self.client.get("/orders")
        return response.json()


# Tenant-scoped tokens chosen per request
def tenant_token(request: httpx.Request) -> str:
    tenant = request.url.host.split(".")[0]
    return f"Bearer tenant-{tenant}"


@typed_client(
    container,
    ClientSettings(
        http_message_handler_factory=lambda: httpx.AsyncHTTPTransport(retries=2),
        authorization_header_value_with_param_getter=tenant_token,
    ),
)
class TenantApi:
    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def whoami(self, tenant: str) -> dict:
        response = await self.client.get(f"https://{tenant}.api.example.com/me")
        return response.json()


async def main():
    logger.enable("typed_http")

    github = container[GitHubApi]
    orders = container[OrdersApi]
    tenants = container[TenantApi]

    print("Registered:", type(github).__name__, type(orders).__name__, type(tenants).__name__)

    try:
        print(await github.rate_limit())
    except httpx.HTTPError as e:
        print(f"GitHub request failed: {e}")


if __name__ == "__main__":
    asyncio.run(main())
