"""Claim records returned by the session endpoint."""

from __future__ import annotations

from typing import Iterable

from msgspec import Struct


class Claim(Struct, frozen=True):
    """A single ``(type, value)`` attribute of a verified identity."""

    type: str
    value: str

    def as_tuple(self) -> tuple[str, str]:
        return (self.type, self.value)


class ClaimRecord(Struct, frozen=True):
    """Claims describing one active session, keyed by the provider that established it."""

    provider_name: str
    claims: tuple[Claim, ...] = ()
    user_id: str | None = None

    @classmethod
    def from_pairs(
        cls,
        provider_name: str,
        pairs: Iterable[tuple[str, str]],
        *,
        user_id: str | None = None,
    ) -> "ClaimRecord":
        return cls(
            provider_name=provider_name,
            claims=tuple(Claim(type=claim_type, value=value) for claim_type, value in pairs),
            user_id=user_id,
        )

    def values_for(self, claim_type: str) -> tuple[str, ...]:
        return tuple(claim.value for claim in self.claims if claim.type == claim_type)


__all__ = ["Claim", "ClaimRecord"]
