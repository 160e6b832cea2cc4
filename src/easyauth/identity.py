"""Identity construction from verified claim records."""

from __future__ import annotations

from typing import Any, Awaitable, Protocol, Sequence

from msgspec import Struct

from .exceptions import IdentityBuilderFailure
from .models import Claim


class IdentityOptions(Struct, frozen=True):
    """Options handed to an :class:`IdentityBuilder`."""

    name_claim_type: str = "name"
    role_claim_type: str = "roles"
    allowed_providers: tuple[str, ...] = ()

    def allows(self, provider_name: str) -> bool:
        if not self.allowed_providers:
            return True
        normalized = provider_name.lower()
        return any(provider.lower() == normalized for provider in self.allowed_providers)


class Identity(Struct, frozen=True):
    """Claims-based identity established by the session endpoint."""

    authentication_type: str
    claims: tuple[Claim, ...] = ()
    name_claim_type: str = "name"
    role_claim_type: str = "roles"

    @property
    def is_authenticated(self) -> bool:
        return bool(self.authentication_type)

    @property
    def name(self) -> str | None:
        return self.find_first(self.name_claim_type)

    @property
    def roles(self) -> tuple[str, ...]:
        return tuple(claim.value for claim in self.claims if claim.type == self.role_claim_type)

    def find_first(self, claim_type: str) -> str | None:
        for claim in self.claims:
            if claim.type == claim_type:
                return claim.value
        return None

    def has_claim(self, claim_type: str, value: str) -> bool:
        return any(claim.type == claim_type and claim.value == value for claim in self.claims)

    def is_in_role(self, role: str) -> bool:
        return role in self.roles


class IdentityBuilder(Protocol):
    def build(
        self,
        claims: Sequence[Claim],
        provider_name: str,
        options: IdentityOptions,
    ) -> Any | Awaitable[Any]:  # pragma: no cover - protocol
        ...


class ClaimsIdentityBuilder:
    """Default builder producing an :class:`Identity` from the session claims."""

    def build(self, claims: Sequence[Claim], provider_name: str, options: IdentityOptions) -> Identity:
        if not provider_name:
            raise IdentityBuilderFailure("Session endpoint did not name an identity provider.")
        if not options.allows(provider_name):
            raise IdentityBuilderFailure(f"Identity provider '{provider_name}' is not allowed.")
        return Identity(
            authentication_type=provider_name,
            claims=tuple(claims),
            name_claim_type=options.name_claim_type,
            role_claim_type=options.role_claim_type,
        )


__all__ = ["ClaimsIdentityBuilder", "Identity", "IdentityBuilder", "IdentityOptions"]
