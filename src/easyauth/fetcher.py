"""Fetch and parse claim records from the session endpoint."""

from __future__ import annotations

import asyncio
import inspect
from functools import partial
from typing import Any, Awaitable, Callable

import msgspec
from msgspec import Struct

from .exceptions import EndpointUnreachable, MalformedSessionPayload
from .models import Claim, ClaimRecord
from .observability import Observability
from .outbound import OutboundRequest
from .serialization import json_decode


class TransportResponse(Struct, frozen=True):
    status: int
    reason: str = ""
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


TransportCallable = Callable[[OutboundRequest], Awaitable[TransportResponse] | TransportResponse]


class _SessionClaim(Struct):
    # the platform emits ``typ``/``val``; ``type``/``value`` is accepted as well
    typ: str | None = None
    val: str | None = None
    type: str | None = None
    value: str | None = None


class _SessionDocument(Struct):
    provider_name: str
    user_claims: list[_SessionClaim]
    user_id: str | None = None


class SessionFetcher:
    """Send an :class:`OutboundRequest` and turn the answer into claim records."""

    def __init__(
        self,
        *,
        transport: TransportCallable | None = None,
        observability: Observability | None = None,
        timeout: float | None = None,
    ) -> None:
        self._transport = transport or partial(urllib_transport, timeout=timeout)
        self._observability = observability or Observability()

    async def fetch(self, request: OutboundRequest) -> tuple[ClaimRecord, ...]:
        context = self._observability.on_session_fetch_start(request)
        try:
            response = await _maybe_await(self._transport(request))
            if not response.ok:
                raise EndpointUnreachable(status=response.status, reason=response.reason)
            records = parse_session_payload(response.body)
        except Exception as exc:
            self._observability.on_session_fetch_error(context, exc)
            raise
        self._observability.on_session_fetch_success(context, records)
        return records


def parse_session_payload(body: bytes) -> tuple[ClaimRecord, ...]:
    """Parse the endpoint's JSON array; the first element is the active session."""

    try:
        document = json_decode(body)
    except msgspec.DecodeError as exc:
        raise MalformedSessionPayload() from exc
    if not isinstance(document, list):
        raise MalformedSessionPayload("Auth endpoint did not return a JSON array.")
    if not document:
        raise MalformedSessionPayload("Auth endpoint returned no active session.")
    records = [_claim_record(document[0])]
    for entry in document[1:]:
        try:
            records.append(_claim_record(entry))
        except MalformedSessionPayload:
            continue
    return tuple(records)


def _claim_record(entry: Any) -> ClaimRecord:
    try:
        raw = msgspec.convert(entry, type=_SessionDocument)
    except msgspec.ValidationError as exc:
        raise MalformedSessionPayload(f"Auth endpoint session is malformed: {exc}") from exc
    claims: list[Claim] = []
    for item in raw.user_claims:
        claim_type = item.typ if item.typ is not None else item.type
        claim_value = item.val if item.val is not None else item.value
        if claim_type is None or claim_value is None:
            raise MalformedSessionPayload("Auth endpoint session contains a claim without type or value.")
        claims.append(Claim(type=claim_type, value=claim_value))
    return ClaimRecord(provider_name=raw.provider_name, claims=tuple(claims), user_id=raw.user_id)


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


async def urllib_transport(request: OutboundRequest, *, timeout: float | None = None) -> TransportResponse:
    """Default transport: ``urllib`` in a worker thread, redirects are not followed."""

    import urllib.error
    import urllib.request

    headers = {"Accept": "application/json"}
    headers.update(request.headers)
    cookie = request.cookie_header()
    if cookie is not None:
        headers["Cookie"] = cookie

    class _RejectRedirects(urllib.request.HTTPRedirectHandler):
        def redirect_request(self, req, fp, code, msg, headers, newurl):  # type: ignore[override]
            return None

    def _send() -> TransportResponse:
        try:
            outbound = urllib.request.Request(request.url, headers=headers, method=request.method)
        except ValueError as exc:
            raise EndpointUnreachable(f"Invalid auth endpoint URL {request.url!r}.") from exc
        opener = urllib.request.build_opener(_RejectRedirects())
        options: dict[str, Any] = {} if timeout is None else {"timeout": timeout}
        try:
            with opener.open(outbound, **options) as response:
                status = getattr(response, "status", response.getcode())
                return TransportResponse(status=status, reason=response.reason or "", body=response.read())
        except urllib.error.HTTPError as exc:
            try:
                body = exc.read()
            except OSError:  # pragma: no cover - depends on network I/O
                body = b""
            return TransportResponse(status=exc.code, reason=str(exc.reason or ""), body=body or b"")
        except urllib.error.URLError as exc:
            raise EndpointUnreachable(f"Unable to reach auth endpoint: {exc.reason}") from exc
        except OSError as exc:  # pragma: no cover - depends on network I/O
            raise EndpointUnreachable(f"Unable to reach auth endpoint: {exc}") from exc

    return await asyncio.to_thread(_send)


__all__ = [
    "SessionFetcher",
    "TransportCallable",
    "TransportResponse",
    "parse_session_payload",
    "urllib_transport",
]
