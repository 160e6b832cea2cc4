"""Configuration objects."""

from __future__ import annotations

from typing import Any, Mapping

import msgspec
from msgspec import Struct

from .exceptions import EasyAuthError
from .identity import IdentityOptions
from .observability import ObservabilityConfig


class SessionEndpointConfig(Struct, frozen=True):
    """Where the session endpoint lives.

    ``endpoint_locator`` is used verbatim when it starts with ``http``; anything
    else is treated as a path on the host that received the request.
    """

    endpoint_locator: str

    def __post_init__(self) -> None:
        if not self.endpoint_locator:
            raise ValueError("endpoint_locator must not be empty")

    @property
    def is_absolute(self) -> bool:
        return self.endpoint_locator.startswith("http")


class EasyAuthConfig(Struct, frozen=True, rename="pascal"):
    """Typed configuration for session verification.

    Field names map to PascalCase keys (``AuthEndpoint``, ``NameClaimType`` ...)
    when loaded from a settings mapping with :func:`load_config`.
    """

    auth_endpoint: str = ".auth/me"
    name_claim_type: str = "name"
    role_claim_type: str = "roles"
    allowed_providers: tuple[str, ...] = ()
    timeout_seconds: float | None = None
    observability: ObservabilityConfig = ObservabilityConfig()

    def __post_init__(self) -> None:
        if not self.auth_endpoint:
            raise ValueError("AuthEndpoint must not be empty")

    def endpoint(self) -> SessionEndpointConfig:
        return SessionEndpointConfig(endpoint_locator=self.auth_endpoint)

    def identity_options(self) -> IdentityOptions:
        return IdentityOptions(
            name_claim_type=self.name_claim_type,
            role_claim_type=self.role_claim_type,
            allowed_providers=self.allowed_providers,
        )


def load_config(values: Mapping[str, Any] | None = None) -> EasyAuthConfig:
    """Build an :class:`EasyAuthConfig` from a plain settings mapping."""

    try:
        config = msgspec.convert(dict(values or {}), type=EasyAuthConfig)
    except msgspec.ValidationError as exc:
        raise EasyAuthError(f"Invalid easyauth configuration: {exc}") from exc
    return config


__all__ = ["EasyAuthConfig", "SessionEndpointConfig", "load_config"]
