"""Session verification orchestration."""

from __future__ import annotations

from typing import Any, Union

from msgspec import Struct

from .config import EasyAuthConfig, SessionEndpointConfig
from .endpoints import resolve_endpoint
from .exceptions import (
    FailureKind,
    IdentityBuilderFailure,
    SessionVerificationError,
)
from .fetcher import SessionFetcher, TransportCallable, _maybe_await
from .identity import ClaimsIdentityBuilder, IdentityBuilder, IdentityOptions
from .observability import Observability
from .outbound import build_outbound_request
from .requests import InboundContext


class VerificationSuccess(Struct, frozen=True, tag="success"):
    identity: Any
    provider_name: str

    @property
    def succeeded(self) -> bool:
        return True


class VerificationFailure(Struct, frozen=True, tag="failure"):
    kind: FailureKind
    message: str
    status: int | None = None
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return False

    @classmethod
    def from_error(cls, error: BaseException) -> "VerificationFailure":
        if isinstance(error, SessionVerificationError):
            return cls(
                kind=error.kind,
                message=error.message,
                status=getattr(error, "status", None),
                reason=getattr(error, "reason", None),
            )
        return cls(kind=FailureKind.ENDPOINT_UNREACHABLE, message=str(error) or type(error).__name__)


VerificationResult = Union[VerificationSuccess, VerificationFailure]


class SessionVerifier:
    """Exchange the inbound session for a verified identity.

    Resolves the endpoint, replays cookies and ``X-ZUMO-*`` headers against it,
    and hands the first claim record to the identity builder. Failures come
    back as :class:`VerificationFailure` values; nothing raised inside the
    pipeline escapes :meth:`verify`.
    """

    def __init__(
        self,
        builder: IdentityBuilder | None = None,
        *,
        fetcher: SessionFetcher | None = None,
        options: IdentityOptions | None = None,
        observability: Observability | None = None,
    ) -> None:
        self.builder = builder or ClaimsIdentityBuilder()
        self.options = options or IdentityOptions()
        self._observability = observability or Observability()
        self._fetcher = fetcher or SessionFetcher(observability=self._observability)

    @classmethod
    def from_config(
        cls,
        config: EasyAuthConfig,
        *,
        builder: IdentityBuilder | None = None,
        transport: TransportCallable | None = None,
        observability: Observability | None = None,
    ) -> "SessionVerifier":
        observability = observability or Observability(config.observability)
        fetcher = SessionFetcher(
            transport=transport,
            observability=observability,
            timeout=config.timeout_seconds,
        )
        return cls(
            builder,
            fetcher=fetcher,
            options=config.identity_options(),
            observability=observability,
        )

    async def verify(
        self,
        context: InboundContext,
        config: SessionEndpointConfig | EasyAuthConfig,
    ) -> VerificationResult:
        try:
            endpoint = config.endpoint() if isinstance(config, EasyAuthConfig) else config
            url = resolve_endpoint(endpoint, context.scheme, context.host)
            request = build_outbound_request(context, url)
            records = await self._fetcher.fetch(request)
            record = records[0]
            try:
                identity = await _maybe_await(
                    self.builder.build(record.claims, record.provider_name, self.options)
                )
            except SessionVerificationError:
                raise
            except Exception as exc:
                raise IdentityBuilderFailure(str(exc) or type(exc).__name__) from exc
        except Exception as exc:
            failure = VerificationFailure.from_error(exc)
            self._observability.on_verification_failure(failure)
            return failure
        return VerificationSuccess(identity=identity, provider_name=record.provider_name)


async def verify_session(
    context: InboundContext,
    config: SessionEndpointConfig | EasyAuthConfig,
    *,
    builder: IdentityBuilder | None = None,
    transport: TransportCallable | None = None,
) -> VerificationResult:
    """One-shot helper around :class:`SessionVerifier`."""

    if isinstance(config, EasyAuthConfig):
        verifier = SessionVerifier.from_config(config, builder=builder, transport=transport)
    else:
        verifier = SessionVerifier(builder, fetcher=SessionFetcher(transport=transport))
    return await verifier.verify(context, config)


__all__ = [
    "SessionVerifier",
    "VerificationFailure",
    "VerificationResult",
    "VerificationSuccess",
    "verify_session",
]
