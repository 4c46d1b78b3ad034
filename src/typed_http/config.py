"""Client options for named HTTP clients.

Example:
    Factory-wide defaults from the environment::

        # TYPED_HTTP_TIMEOUT=10 TYPED_HTTP_HANDLER_LIFETIME=300
        options = HttpClientOptions.from_env()

    Per-client options on a registration::

        add_typed_client(container, GitHubApi).configure_options(
            {"base_url": "https://api.github.com", "timeout": 15.0}
        )
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_ENV_PREFIX = "TYPED_HTTP_"


class HttpClientOptions(BaseModel):
    """Options applied to every ``httpx.AsyncClient`` built for a name.

    Attributes:
        base_url: Base URL for relative request paths
        headers: Default headers sent with every request
        timeout: Request timeout in seconds (default: 30.0)
        follow_redirects: Whether to follow redirects (default: True)
        handler_lifetime: Seconds a built handler chain is reused before the
            next client rebuilds it. ``None`` keeps the first chain forever.
    """

    base_url: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: float = 30.0
    follow_redirects: bool = True
    handler_lifetime: float | None = 120.0

    @classmethod
    def from_env(cls, prefix: str = DEFAULT_ENV_PREFIX, **overrides: Any) -> HttpClientOptions:
        """Build options from ``<prefix><FIELD>`` environment variables.

        Only scalar fields are read; pydantic coerces the string values.
        Keyword overrides take precedence over the environment.
        """
        values: dict[str, Any] = {}
        prefix = prefix.upper()

        for field_name in cls.model_fields:
            if field_name == "headers":
                continue
            raw = os.environ.get(f"{prefix}{field_name.upper()}")
            if raw is None:
                continue
            if field_name in ("base_url", "handler_lifetime") and raw.lower() in ("", "none"):
                values[field_name] = None
            else:
                values[field_name] = raw

        values.update(overrides)
        return cls.model_validate(values)

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``httpx.AsyncClient``."""
        kwargs: dict[str, Any] = {
            "headers": dict(self.headers),
            "timeout": self.timeout,
            "follow_redirects": self.follow_redirects,
        }
        if self.base_url is not None:
            kwargs["base_url"] = self.base_url
        return kwargs
