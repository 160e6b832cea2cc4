"""Session endpoint resolution."""

from __future__ import annotations

from .config import SessionEndpointConfig


def resolve_endpoint(config: SessionEndpointConfig, scheme: str, host: str) -> str:
    """Return the absolute URL of the session endpoint.

    Absolute locators let the endpoint live off-host (a private blob container,
    for instance). Relative locators point at the host serving the request.
    """

    if config.is_absolute:
        return config.endpoint_locator
    return f"{scheme}://{host}/{config.endpoint_locator}"


__all__ = ["resolve_endpoint"]
