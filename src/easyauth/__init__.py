"""Session-endpoint authentication for applications behind an identity-aware proxy."""

from .config import EasyAuthConfig, SessionEndpointConfig, load_config
from .endpoints import resolve_endpoint
from .exceptions import (
    EasyAuthError,
    EndpointUnreachable,
    FailureKind,
    HTTPError,
    IdentityBuilderFailure,
    MalformedSessionPayload,
    SessionVerificationError,
)
from .fetcher import SessionFetcher, TransportResponse, parse_session_payload, urllib_transport
from .identity import ClaimsIdentityBuilder, Identity, IdentityBuilder, IdentityOptions
from .middleware import EasyAuthMiddleware
from .models import Claim, ClaimRecord
from .observability import Observability, ObservabilityConfig
from .outbound import ZUMO_HEADER_PREFIX, OutboundRequest, SessionCookie, build_outbound_request
from .requests import InboundContext
from .testing import StaticSessionTransport
from .verifier import (
    SessionVerifier,
    VerificationFailure,
    VerificationResult,
    VerificationSuccess,
    verify_session,
)

__all__ = [
    "ZUMO_HEADER_PREFIX",
    "Claim",
    "ClaimRecord",
    "ClaimsIdentityBuilder",
    "EasyAuthConfig",
    "EasyAuthError",
    "EasyAuthMiddleware",
    "EndpointUnreachable",
    "FailureKind",
    "HTTPError",
    "Identity",
    "IdentityBuilder",
    "IdentityBuilderFailure",
    "IdentityOptions",
    "InboundContext",
    "MalformedSessionPayload",
    "Observability",
    "ObservabilityConfig",
    "OutboundRequest",
    "SessionCookie",
    "SessionEndpointConfig",
    "SessionFetcher",
    "SessionVerificationError",
    "SessionVerifier",
    "StaticSessionTransport",
    "TransportResponse",
    "VerificationFailure",
    "VerificationResult",
    "VerificationSuccess",
    "build_outbound_request",
    "load_config",
    "parse_session_payload",
    "resolve_endpoint",
    "urllib_transport",
    "verify_session",
]
