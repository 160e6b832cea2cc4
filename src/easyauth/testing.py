"""Testing helpers."""

from __future__ import annotations

from typing import Any

from .fetcher import TransportResponse
from .outbound import OutboundRequest
from .serialization import json_encode


class StaticSessionTransport:
    """In-process session endpoint that always gives the same answer."""

    __test__ = False

    def __init__(self, response: TransportResponse) -> None:
        self.response = response
        self.requests: list[OutboundRequest] = []

    @classmethod
    def with_json(cls, payload: Any, *, status: int = 200, reason: str = "OK") -> "StaticSessionTransport":
        return cls(TransportResponse(status=status, reason=reason, body=json_encode(payload)))

    @classmethod
    def with_session(
        cls,
        provider_name: str,
        claims: list[tuple[str, str]],
        *,
        user_id: str | None = None,
    ) -> "StaticSessionTransport":
        session: dict[str, Any] = {
            "provider_name": provider_name,
            "user_claims": [{"typ": claim_type, "val": value} for claim_type, value in claims],
        }
        if user_id is not None:
            session["user_id"] = user_id
        return cls.with_json([session])

    @classmethod
    def with_status(cls, status: int, reason: str = "", body: bytes = b"") -> "StaticSessionTransport":
        return cls(TransportResponse(status=status, reason=reason, body=body))

    async def __call__(self, request: OutboundRequest) -> TransportResponse:
        self.requests.append(request)
        return self.response

    @property
    def last_request(self) -> OutboundRequest | None:
        return self.requests[-1] if self.requests else None


__all__ = ["StaticSessionTransport"]
