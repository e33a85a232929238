"""Logging, correlation identifiers and tracing for the chat relay."""
from __future__ import annotations

import logging
import os
from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from structlog.stdlib import ProcessorFormatter

SERVICE_NAME = "chat-relay"

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
_logging_configured = False
_tracing_configured = False


class CorrelationIdFilter(logging.Filter):
    """Inject the correlation identifier into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - logging helper
        record.correlation_id = correlation_id_var.get() or "unknown"
        return True


def _add_correlation_id(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:  # pragma: no cover - logging helper
    event_dict.setdefault("correlation_id", correlation_id_var.get() or "unknown")
    return event_dict


def _otlp_enabled() -> bool:
    return bool(
        os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        or os.getenv("OTEL_EXPORTER_OTLP_LOGS_ENDPOINT")
    )


def _configure_otlp_logging(service_name: str) -> None:
    if not _otlp_enabled():
        return

    root_logger = logging.getLogger()
    try:
        resource = Resource.create(
            {"service.name": os.getenv("OTEL_SERVICE_NAME", service_name)}
        )
        logger_provider = LoggerProvider(resource=resource)
        logger_provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter()))
        set_logger_provider(logger_provider)
        root_logger.addHandler(LoggingHandler(level=logging.NOTSET, logger_provider=logger_provider))
        root_logger.debug(
            "OTLP log exporter configured",
            extra={"service_name": resource.attributes.get("service.name")},
        )
    except Exception:  # pragma: no cover - exporter misconfiguration
        root_logger.exception("Failed to configure OTLP log exporter")


def configure_logging(service_name: str = SERVICE_NAME, level: int = logging.INFO) -> None:
    """Route stdlib and structlog records through a JSON renderer.

    Safe to call more than once; only the first call has an effect.
    """

    global _logging_configured
    if _logging_configured:
        return

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        _add_correlation_id,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        timestamper,
        structlog.processors.format_exc_info,
    ]

    formatter = ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    structlog.configure(
        processors=shared_processors + [ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    _configure_otlp_logging(service_name)
    _logging_configured = True


def _parse_otlp_headers(raw_value: Optional[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    if not raw_value:
        return headers
    for item in raw_value.split(","):
        if "=" not in item:
            continue
        key, value = item.split("=", 1)
        key = key.strip()
        if not key:
            continue
        headers[key] = value.strip()
    return headers


def configure_tracing(app: Optional[FastAPI] = None, service_name: str = SERVICE_NAME) -> None:
    """Initialise OpenTelemetry tracing when an OTLP endpoint is configured."""

    global _tracing_configured
    if _tracing_configured or not os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"):
        return

    endpoint = os.environ["OTEL_EXPORTER_OTLP_ENDPOINT"]
    exporter = OTLPSpanExporter(
        endpoint=f"{endpoint.rstrip('/')}/v1/traces",
        headers=_parse_otlp_headers(os.getenv("OTEL_EXPORTER_OTLP_HEADERS")) or None,
    )
    provider = TracerProvider(
        resource=Resource.create({"service.name": os.getenv("OTEL_SERVICE_NAME", service_name)}),
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    if app is not None:
        FastAPIInstrumentor().instrument_app(app, tracer_provider=provider)
    _tracing_configured = True


def get_correlation_id() -> Optional[str]:
    """Return the current correlation identifier if set."""

    return correlation_id_var.get()


def set_correlation_id(value: str) -> Token:
    """Attach a correlation identifier to the current context."""

    structlog.contextvars.bind_contextvars(correlation_id=value)
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token) -> None:
    """Reset the correlation identifier to the previous context value."""

    correlation_id_var.reset(token)
    structlog.contextvars.unbind_contextvars("correlation_id")
