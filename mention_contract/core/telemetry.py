"""Logging and tracing for hosts that run mention transitions.

A host wraps its lifetime in ``telemetry_session(settings)``. Inside it every
``mentions.*`` span and every log record carries the contract, subject key and
target cid of the transition being applied, as bound by the executor through
``transition_scope`` and ``bind_transition``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import logging
import os

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, Resource
from opentelemetry.sdk.trace import Span, SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from mention_contract.core.config import Settings

MENTION_SPAN_PREFIX = "mentions."
LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s trace_id=%(trace_id)s span_id=%(span_id)s "
    "contract=%(mention_contract)s data_key=%(mention_data_key)s cid=%(mention_cid)s %(message)s"
)

_TRANSITION_FIELDS: ContextVar[Mapping[str, str] | None] = ContextVar("mention_transition_fields", default=None)
_BASE_LOG_RECORD_FACTORY = logging.getLogRecordFactory()
_LOG_FIELDS_INSTALLED = False
_HTTPX_INSTRUMENTOR = HTTPXClientInstrumentor()


@dataclass(slots=True)
class TelemetryRuntime:
    enabled: bool
    provider: TracerProvider | None


def transition_fields() -> dict[str, str]:
    return dict(_TRANSITION_FIELDS.get() or {})


@contextmanager
def transition_scope(*, contract: str, data_key: str) -> Iterator[None]:
    token = _TRANSITION_FIELDS.set({"mention.contract": contract, "mention.data_key": data_key})
    try:
        yield
    finally:
        _TRANSITION_FIELDS.reset(token)


def bind_transition(**fields: str) -> None:
    """Add fields to the running transition and to the current span."""
    current = transition_fields()
    span = trace.get_current_span()
    for name, value in fields.items():
        current[f"mention.{name}"] = value
        span.set_attribute(f"mention.{name}", value)
    _TRANSITION_FIELDS.set(current)


class MentionSpanProcessor(SpanProcessor):
    """Copies the bound transition fields onto store and authority spans."""

    def on_start(self, span: Span, parent_context: Context | None = None) -> None:
        if not span.name.startswith(MENTION_SPAN_PREFIX):
            return
        for name, value in transition_fields().items():
            span.set_attribute(name, value)


def configure_logging(level: int = logging.INFO) -> None:
    _install_log_fields()
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)


def setup_telemetry(settings: Settings) -> TelemetryRuntime:
    if settings.otel_log_correlation:
        _install_log_fields()
    if not settings.otel_enabled:
        return TelemetryRuntime(enabled=False, provider=None)

    provider = TracerProvider(
        resource=Resource.create(
            {
                SERVICE_NAME: settings.otel_service_name,
                DEPLOYMENT_ENVIRONMENT: settings.environment,
            }
        ),
        sampler=TraceIdRatioBased(settings.otel_trace_sample_ratio),
    )
    provider.add_span_processor(MentionSpanProcessor())
    exporter = _build_exporter(settings)
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    # store and authority calls go through httpx
    _HTTPX_INSTRUMENTOR.instrument()
    return TelemetryRuntime(enabled=True, provider=provider)


def shutdown_telemetry(runtime: TelemetryRuntime) -> None:
    if not runtime.enabled:
        return
    _HTTPX_INSTRUMENTOR.uninstrument()
    if runtime.provider is not None:
        runtime.provider.force_flush()
        runtime.provider.shutdown()


@contextmanager
def telemetry_session(settings: Settings) -> Iterator[TelemetryRuntime]:
    configure_logging()
    runtime = setup_telemetry(settings)
    try:
        yield runtime
    finally:
        shutdown_telemetry(runtime)


def _build_exporter(settings: Settings) -> OTLPSpanExporter | None:
    endpoint = (
        settings.otel_exporter_otlp_endpoint
        or os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")
        or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    )
    if not endpoint:
        logging.getLogger(__name__).info(
            "no OTLP endpoint for %s; mention spans stay in-process",
            settings.otel_service_name,
        )
        return None
    return OTLPSpanExporter(endpoint=endpoint, headers=parse_headers(settings.otel_exporter_otlp_headers) or None)


def parse_headers(raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    headers: dict[str, str] = {}
    for item in raw.split(","):
        key, separator, value = item.partition("=")
        if separator and key.strip():
            headers[key.strip()] = value.strip()
    return headers


def _install_log_fields() -> None:
    global _LOG_FIELDS_INSTALLED
    if _LOG_FIELDS_INSTALLED:
        return

    def record_factory(*args: object, **kwargs: object) -> logging.LogRecord:
        record = _BASE_LOG_RECORD_FACTORY(*args, **kwargs)
        context = trace.get_current_span().get_span_context()
        record.trace_id = format(context.trace_id, "032x") if context.is_valid else "0" * 32
        record.span_id = format(context.span_id, "016x") if context.is_valid else "0" * 16
        fields = _TRANSITION_FIELDS.get() or {}
        record.mention_contract = fields.get("mention.contract", "-")
        record.mention_data_key = fields.get("mention.data_key", "-")
        record.mention_cid = fields.get("mention.cid", "-")
        return record

    logging.setLogRecordFactory(record_factory)
    _LOG_FIELDS_INSTALLED = True
