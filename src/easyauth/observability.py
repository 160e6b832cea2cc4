"""Observability integration for session verification."""

from __future__ import annotations

import json
import logging
import time
from contextlib import ExitStack
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Sequence, TypeVar

import msgspec

if TYPE_CHECKING:
    from .models import ClaimRecord
    from .outbound import OutboundRequest
    from .verifier import VerificationFailure


class SessionObservabilityConfig(msgspec.Struct, frozen=True):
    """Session fetch metrics and tracing configuration."""

    span_name: str = "easyauth.session.fetch"
    datadog_metric_success: str = "easyauth.session.fetched"
    datadog_metric_error: str = "easyauth.session.errors"
    datadog_metric_timing: str = "easyauth.session.duration"
    datadog_metric_failure: str = "easyauth.verify.failures"


class ObservabilityConfig(msgspec.Struct, frozen=True):
    """Top-level observability configuration."""

    enabled: bool = True
    opentelemetry_enabled: bool = True
    opentelemetry_tracer: str = "easyauth"
    sentry_enabled: bool = True
    sentry_record_breadcrumbs: bool = True
    sentry_capture_exceptions: bool = False
    sentry_breadcrumb_category: str = "easyauth"
    sentry_breadcrumb_level: str = "info"
    datadog_enabled: bool = True
    datadog_tags: tuple[tuple[str, str], ...] = ()
    session: SessionObservabilityConfig = SessionObservabilityConfig()


T = TypeVar("T")


class _ObservationContext:
    __slots__ = ("datadog_tags", "log_fields", "span", "stack", "start")

    def __init__(
        self,
        *,
        start: float,
        stack: ExitStack,
        span: Any | None,
        datadog_tags: tuple[str, ...],
        log_fields: Mapping[str, Any],
    ) -> None:
        self.start = start
        self.stack = stack
        self.span = span
        self.datadog_tags = datadog_tags
        self.log_fields = dict(log_fields)

    def close(self, error: BaseException | None = None) -> None:
        if error is None:
            self.stack.__exit__(None, None, None)
        else:
            self.stack.__exit__(type(error), error, error.__traceback__)


class Observability:
    """Coordinate tracing, error tracking, metrics, and logging providers.

    Public hooks never raise: a failing provider is logged and dropped so that
    diagnostics cannot change the outcome of a verification.
    """

    def __init__(self, config: ObservabilityConfig | None = None) -> None:
        self.config = config or ObservabilityConfig()
        self._tracer = None
        self._client_span_kind = None
        self._status_cls = None
        self._status_ok = None
        self._status_error = None
        self._sentry_hub = None
        self._statsd = None
        self._logger = logging.getLogger("easyauth.observability")
        self._base_datadog_tags = tuple(f"{key}:{value}" for key, value in self.config.datadog_tags)
        if self.config.enabled:
            self._prepare_opentelemetry()
            self._prepare_sentry()
            self._prepare_datadog()
        self._enabled = self.config.enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _prepare_opentelemetry(self) -> None:
        if not self.config.opentelemetry_enabled:
            return
        try:
            from opentelemetry import trace  # type: ignore[import-not-found]
        except ImportError:  # pragma: no cover - optional dependency
            return
        self._tracer = trace.get_tracer(self.config.opentelemetry_tracer)
        try:
            from opentelemetry.trace import SpanKind  # type: ignore[import-not-found]
        except ImportError:  # pragma: no cover - optional dependency
            SpanKind = None
        self._client_span_kind = getattr(SpanKind, "CLIENT", None) if SpanKind else None
        try:
            from opentelemetry.trace import (  # type: ignore[import-not-found]
                Status,
                StatusCode,
            )
        except ImportError:  # pragma: no cover - optional dependency
            self._status_cls = None
        else:
            self._status_cls = Status
            self._status_ok = getattr(StatusCode, "OK", None)
            self._status_error = getattr(StatusCode, "ERROR", None)

    def _prepare_sentry(self) -> None:
        if not self.config.sentry_enabled:
            return
        try:
            import sentry_sdk  # type: ignore[import-not-found]
        except ImportError:  # pragma: no cover - optional dependency
            return
        self._sentry_hub = sentry_sdk.Hub.current

    def _prepare_datadog(self) -> None:
        if not self.config.datadog_enabled:
            return
        statsd = None
        try:
            from datadog import statsd as datadog_statsd  # type: ignore[import-not-found]
        except ImportError:  # pragma: no cover - optional dependency
            try:
                from ddtrace import statsd as ddtrace_statsd  # type: ignore[import-not-found]
            except ImportError:  # pragma: no cover - optional dependency
                ddtrace_statsd = None
            statsd = ddtrace_statsd
        else:
            statsd = datadog_statsd
        if statsd is not None:
            self._statsd = statsd

    def _status(self, code: Any, description: str | None = None) -> Any | None:
        if self._status_cls is None or code is None:
            return None
        if description is None:
            return self._status_cls(code)
        return self._status_cls(code, description=description)

    def _log(self, event: str, fields: Mapping[str, Any] | None = None) -> None:
        if not self._enabled:
            return
        payload: dict[str, Any] = {}
        for key, value in (fields or {}).items():
            if value is not None:
                payload[key] = value
        payload["event"] = event
        self._logger.info(json.dumps(payload, separators=(",", ":")))

    def _guarded(self, hook: str, call: Callable[..., T], *args: Any) -> T | None:
        try:
            return call(*args)
        except Exception:
            self._logger.exception(
                json.dumps({"event": "observability.hook_failed", "hook": hook}, separators=(",", ":"))
            )
            return None

    def _start(
        self,
        span_name: str,
        *,
        attributes: Mapping[str, Any],
        datadog_tags: Iterable[str],
        breadcrumb_message: str,
        breadcrumb_data: Mapping[str, Any],
        log_fields: Mapping[str, Any],
    ) -> _ObservationContext | None:
        if not self._enabled:
            return None
        stack = ExitStack()
        span = None
        try:
            if self._tracer is not None:
                span = stack.enter_context(
                    self._tracer.start_as_current_span(span_name, kind=self._client_span_kind)
                )
                for key, value in attributes.items():
                    span.set_attribute(key, value)
            if self._sentry_hub is not None and self.config.sentry_record_breadcrumbs:
                self._sentry_hub.add_breadcrumb(
                    category=self.config.sentry_breadcrumb_category,
                    level=self.config.sentry_breadcrumb_level,
                    message=breadcrumb_message,
                    data=dict(breadcrumb_data),
                )
        except Exception as exc:
            stack.__exit__(type(exc), exc, exc.__traceback__)
            raise
        return _ObservationContext(
            start=time.perf_counter(),
            stack=stack,
            span=span,
            datadog_tags=(*self._base_datadog_tags, *datadog_tags),
            log_fields=log_fields,
        )

    def _capture_exception(self, error: BaseException) -> None:
        if self._sentry_hub is not None and self.config.sentry_capture_exceptions:
            self._sentry_hub.capture_exception(error)

    def _record(self, metric: str | None, context: _ObservationContext, tags: Sequence[str]) -> None:
        if self._statsd is None:
            return
        if metric:
            self._statsd.increment(metric, tags=list(tags))
        if self.config.session.datadog_metric_timing:
            duration_ms = (time.perf_counter() - context.start) * 1000.0
            self._statsd.timing(self.config.session.datadog_metric_timing, duration_ms, tags=list(tags))

    def on_session_fetch_start(self, request: "OutboundRequest") -> _ObservationContext | None:
        return self._guarded("session.fetch.start", self._fetch_start, request)

    def on_session_fetch_success(
        self,
        context: _ObservationContext | None,
        records: Sequence["ClaimRecord"],
    ) -> None:
        self._guarded("session.fetch.success", self._fetch_success, context, records)

    def on_session_fetch_error(self, context: _ObservationContext | None, error: BaseException) -> None:
        self._guarded("session.fetch.error", self._fetch_error, context, error)

    def on_verification_failure(self, failure: "VerificationFailure") -> None:
        self._guarded("session.verify.failure", self._verification_failure, failure)

    def _fetch_start(self, request: "OutboundRequest") -> _ObservationContext | None:
        host = request.host
        log_fields = {
            "endpoint_host": host,
            "cookie_count": len(request.cookies),
            "header_count": len(request.headers),
        }
        self._log("session.fetch.start", log_fields)
        return self._start(
            self.config.session.span_name,
            attributes={
                "http.method": request.method,
                "easyauth.endpoint.host": host,
                "easyauth.cookies.count": len(request.cookies),
                "easyauth.headers.count": len(request.headers),
            },
            datadog_tags=[f"endpoint_host:{host}"] if host else [],
            breadcrumb_message=f"fetching session from {host or request.url}",
            breadcrumb_data={
                "cookie_count": len(request.cookies),
                "cookie_names": sorted({cookie.name for cookie in request.cookies}),
            },
            log_fields=log_fields,
        )

    def _fetch_success(self, context: _ObservationContext | None, records: Sequence["ClaimRecord"]) -> None:
        if context is None:
            return
        try:
            provider = records[0].provider_name if records else None
            tags = list(context.datadog_tags)
            if provider:
                tags.append(f"provider:{provider}")
            self._log(
                "session.fetch.success",
                {**context.log_fields, "provider": provider, "record_count": len(records)},
            )
            if context.span is not None:
                if provider:
                    context.span.set_attribute("easyauth.provider", provider)
                context.span.set_attribute("easyauth.result", "success")
                status = self._status(self._status_ok)
                if status is not None:
                    context.span.set_status(status)
            self._record(self.config.session.datadog_metric_success, context, tags)
        finally:
            context.close()

    def _fetch_error(self, context: _ObservationContext | None, error: BaseException) -> None:
        if context is None:
            self._capture_exception(error)
            return
        try:
            status_code = getattr(error, "status", None)
            kind = getattr(getattr(error, "kind", None), "value", None)
            tags = list(context.datadog_tags)
            if kind:
                tags.append(f"kind:{kind}")
            if status_code is not None:
                tags.append(f"status:{status_code}")
            self._log(
                "session.fetch.error",
                {
                    **context.log_fields,
                    "kind": kind,
                    "status": status_code,
                    "reason": getattr(error, "reason", None),
                    "error": str(error),
                },
            )
            if context.span is not None:
                if status_code is not None:
                    context.span.set_attribute("http.status_code", status_code)
                context.span.set_attribute("easyauth.result", "error")
                if hasattr(context.span, "record_exception"):
                    context.span.record_exception(error)
                status = self._status(self._status_error, description=str(error))
                if status is not None:
                    context.span.set_status(status)
            self._capture_exception(error)
            self._record(self.config.session.datadog_metric_error, context, tags)
        finally:
            context.close(error)

    def _verification_failure(self, failure: "VerificationFailure") -> None:
        if not self._enabled:
            return
        self._log(
            "session.verify.failure",
            {"kind": failure.kind.value, "status": failure.status, "message": failure.message},
        )
        if self._statsd is not None and self.config.session.datadog_metric_failure:
            tags = [*self._base_datadog_tags, f"kind:{failure.kind.value}"]
            self._statsd.increment(self.config.session.datadog_metric_failure, tags=tags)


__all__ = [
    "Observability",
    "ObservabilityConfig",
    "SessionObservabilityConfig",
]
