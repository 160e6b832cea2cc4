"""Exception types raised while verifying a session."""

from __future__ import annotations

from enum import Enum
from typing import Any

from .serialization import json_encode


class FailureKind(str, Enum):
    ENDPOINT_UNREACHABLE = "endpoint_unreachable"
    MALFORMED_SESSION_PAYLOAD = "malformed_session_payload"
    IDENTITY_BUILDER_FAILURE = "identity_builder_failure"


class EasyAuthError(Exception):
    """Base error type."""


class HTTPError(EasyAuthError):
    """Structured HTTP error that is msgspec serializable."""

    def __init__(self, status: int, detail: Any) -> None:
        super().__init__(status, detail)
        self.status = status
        self.detail = detail

    def to_response_body(self) -> bytes:
        return json_encode({"error": {"status": self.status, "detail": self.detail}})


class SessionVerificationError(EasyAuthError):
    """Raised when a session cannot be turned into a verified identity."""

    kind: FailureKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EndpointUnreachable(SessionVerificationError):
    """The session endpoint answered with a non-success status or not at all."""

    kind = FailureKind.ENDPOINT_UNREACHABLE

    def __init__(
        self,
        message: str = "Unable to fetch user information from auth endpoint.",
        *,
        status: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason


class MalformedSessionPayload(SessionVerificationError):
    """The session endpoint answered, but not with a usable claims document."""

    kind = FailureKind.MALFORMED_SESSION_PAYLOAD

    def __init__(self, message: str = "Could not retrieve json from auth endpoint.") -> None:
        super().__init__(message)


class IdentityBuilderFailure(SessionVerificationError):
    """The identity builder rejected the claim record."""

    kind = FailureKind.IDENTITY_BUILDER_FAILURE


__all__ = [
    "EasyAuthError",
    "EndpointUnreachable",
    "FailureKind",
    "HTTPError",
    "IdentityBuilderFailure",
    "MalformedSessionPayload",
    "SessionVerificationError",
]
