"""Canonical client names derived from interface types."""

from __future__ import annotations

from typing import Any, get_args, get_origin


def unique_name_for_type(interface: Any) -> str:
    """Return the canonical named-client key for ``interface``.

    The name is ``"<module>.<qualname>"``. Parameterized generics render their
    arguments recursively, so ``Api[int]`` and ``Api[str]`` get distinct
    names while repeated calls for the same type always agree.

    Examples:
        >>> unique_name_for_type(GitHubApi)
        'myapp.clients.GitHubApi'
        >>> unique_name_for_type(PagedApi[User])
        'myapp.clients.PagedApi[myapp.models.User]'
    """
    origin = get_origin(interface)
    if origin is not None:
        args = ", ".join(unique_name_for_type(arg) for arg in get_args(interface))
        return f"{unique_name_for_type(origin)}[{args}]"

    qualname = getattr(interface, "__qualname__", None) or getattr(interface, "__name__", None)
    if qualname is None:
        return repr(interface)

    module = getattr(interface, "__module__", None)
    return f"{module}.{qualname}" if module else qualname
