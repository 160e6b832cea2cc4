from __future__ import annotations

import json
import logging

import pytest

from easyauth import (
    EndpointUnreachable,
    FailureKind,
    InboundContext,
    Observability,
    ObservabilityConfig,
    OutboundRequest,
    SessionCookie,
    SessionEndpointConfig,
    SessionFetcher,
    SessionVerifier,
    StaticSessionTransport,
    VerificationFailure,
    VerificationSuccess,
)
from tests.observability_stubs import (
    disable_optional_providers,
    setup_stub_datadog,
    setup_stub_opentelemetry,
    setup_stub_sentry,
)


def _request() -> OutboundRequest:
    return OutboundRequest(
        url="https://app.example.com/.auth/me",
        cookies=(
            SessionCookie(domain="app.example.com", name="AppServiceAuthSession", value="super-secret"),
            SessionCookie(domain="app.example.com", name="ARRAffinity", value="node-7"),
        ),
        headers={"X-ZUMO-AUTH": "zumo-secret"},
    )


def _events(caplog: pytest.LogCaptureFixture) -> list[dict[str, object]]:
    return [json.loads(record.message) for record in caplog.records if record.name == "easyauth.observability"]


@pytest.mark.asyncio
async def test_fetch_success_emits_span_metrics_and_logs(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    tracer = setup_stub_opentelemetry(monkeypatch)
    hub = setup_stub_sentry(monkeypatch)
    statsd = setup_stub_datadog(monkeypatch)
    observability = Observability(ObservabilityConfig(datadog_tags=(("env", "test"),)))
    fetcher = SessionFetcher(
        transport=StaticSessionTransport.with_session("aad", [("sub", "u1")]),
        observability=observability,
    )

    with caplog.at_level(logging.INFO, logger="easyauth.observability"):
        await fetcher.fetch(_request())

    (span,) = tracer.spans
    assert span.name == "easyauth.session.fetch"
    assert span.kind == "client"
    assert span.attributes["easyauth.cookies.count"] == 2
    assert span.attributes["easyauth.provider"] == "aad"
    assert span.attributes["easyauth.result"] == "success"
    assert span.status.status_code == "ok"
    assert span.ended

    assert hub.breadcrumbs[0]["category"] == "easyauth"
    assert hub.breadcrumbs[0]["data"]["cookie_names"] == ["ARRAffinity", "AppServiceAuthSession"]

    metric, tags = statsd.increments[0]
    assert metric == "easyauth.session.fetched"
    assert "env:test" in tags
    assert "provider:aad" in tags
    assert statsd.timings[0][0] == "easyauth.session.duration"

    start, success = _events(caplog)
    assert start == {
        "endpoint_host": "app.example.com",
        "cookie_count": 2,
        "header_count": 1,
        "event": "session.fetch.start",
    }
    assert success["event"] == "session.fetch.success"
    assert success["provider"] == "aad"
    assert "super-secret" not in caplog.text
    assert "zumo-secret" not in caplog.text


@pytest.mark.asyncio
async def test_fetch_error_records_status_and_kind(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    tracer = setup_stub_opentelemetry(monkeypatch)
    hub = setup_stub_sentry(monkeypatch)
    statsd = setup_stub_datadog(monkeypatch)
    observability = Observability(ObservabilityConfig(sentry_capture_exceptions=True))
    fetcher = SessionFetcher(
        transport=StaticSessionTransport.with_status(502, "Bad Gateway"),
        observability=observability,
    )

    with caplog.at_level(logging.INFO, logger="easyauth.observability"):
        with pytest.raises(EndpointUnreachable) as excinfo:
            await fetcher.fetch(_request())

    (span,) = tracer.spans
    assert span.attributes["http.status_code"] == 502
    assert span.attributes["easyauth.result"] == "error"
    assert span.exceptions == [excinfo.value]
    assert span.status.status_code == "error"
    assert span.exit_exception is excinfo.value
    assert hub.captured == [excinfo.value]
    metric, tags = statsd.increments[0]
    assert metric == "easyauth.session.errors"
    assert "kind:endpoint_unreachable" in tags
    assert "status:502" in tags
    error_event = _events(caplog)[-1]
    assert error_event["event"] == "session.fetch.error"
    assert error_event["status"] == 502
    assert error_event["reason"] == "Bad Gateway"


@pytest.mark.asyncio
async def test_verification_failure_is_logged(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    disable_optional_providers(monkeypatch)
    observability = Observability()
    verifier = SessionVerifier(
        fetcher=SessionFetcher(
            transport=StaticSessionTransport.with_status(200, body=b"not-json"),
            observability=observability,
        ),
        observability=observability,
    )
    context = InboundContext(scheme="https", host="app.example.com")

    with caplog.at_level(logging.INFO, logger="easyauth.observability"):
        await verifier.verify(context, SessionEndpointConfig(endpoint_locator=".auth/me"))

    events = [event["event"] for event in _events(caplog)]
    assert events == ["session.fetch.start", "session.fetch.error", "session.verify.failure"]
    assert _events(caplog)[-1]["kind"] == "malformed_session_payload"


@pytest.mark.asyncio
async def test_disabled_observability_is_silent(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    tracer = setup_stub_opentelemetry(monkeypatch)
    statsd = setup_stub_datadog(monkeypatch)
    observability = Observability(ObservabilityConfig(enabled=False))
    assert not observability.enabled
    fetcher = SessionFetcher(
        transport=StaticSessionTransport.with_session("aad", []),
        observability=observability,
    )

    with caplog.at_level(logging.INFO, logger="easyauth.observability"):
        await fetcher.fetch(_request())

    assert tracer.spans == []
    assert statsd.increments == []
    assert _events(caplog) == []


def test_error_without_context_only_captures(monkeypatch: pytest.MonkeyPatch) -> None:
    hub = setup_stub_sentry(monkeypatch)
    observability = Observability(
        ObservabilityConfig(opentelemetry_enabled=False, datadog_enabled=False, sentry_capture_exceptions=True)
    )
    error = RuntimeError("manual")
    observability.on_session_fetch_error(None, error)
    assert hub.captured == [error]


def _provider_down(*args: object, **kwargs: object) -> None:
    raise RuntimeError("provider down")


@pytest.mark.asyncio
async def test_failing_metrics_provider_never_changes_the_outcome(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    disable_optional_providers(monkeypatch)
    statsd = setup_stub_datadog(monkeypatch)
    monkeypatch.setattr(statsd, "increment", _provider_down)
    observability = Observability()
    context = InboundContext(scheme="https", host="app.example.com")
    config = SessionEndpointConfig(endpoint_locator=".auth/me")

    def verifier(transport: StaticSessionTransport) -> SessionVerifier:
        return SessionVerifier(
            fetcher=SessionFetcher(transport=transport, observability=observability),
            observability=observability,
        )

    with caplog.at_level(logging.INFO, logger="easyauth.observability"):
        ok = await verifier(StaticSessionTransport.with_session("aad", [("name", "Ada")])).verify(context, config)
        failed = await verifier(StaticSessionTransport.with_status(500, "Internal Server Error")).verify(
            context, config
        )

    assert isinstance(ok, VerificationSuccess)
    assert ok.identity.name == "Ada"
    assert isinstance(failed, VerificationFailure)
    assert failed.kind is FailureKind.ENDPOINT_UNREACHABLE
    assert failed.status == 500
    hook_failures = [event["hook"] for event in _events(caplog) if event["event"] == "observability.hook_failed"]
    assert hook_failures == ["session.fetch.success", "session.fetch.error", "session.verify.failure"]


@pytest.mark.asyncio
async def test_failing_breadcrumb_closes_span_and_fetch_still_returns(monkeypatch: pytest.MonkeyPatch) -> None:
    tracer = setup_stub_opentelemetry(monkeypatch)
    hub = setup_stub_sentry(monkeypatch)
    setup_stub_datadog(monkeypatch)
    monkeypatch.setattr(hub, "add_breadcrumb", _provider_down)
    fetcher = SessionFetcher(
        transport=StaticSessionTransport.with_session("aad", [("sub", "u1")]),
        observability=Observability(),
    )

    records = await fetcher.fetch(_request())

    assert records[0].provider_name == "aad"
    (span,) = tracer.spans
    assert span.ended
