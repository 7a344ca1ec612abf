"""OpenTelemetry configuration: traces, metrics, logs.

Owns all OpenTelemetry provider setup. Called once from ``main.py``
**before** the FastAPI app is created so auto-instrumentation hooks work.

Two modes
---------
1. **Production**: ``APPLICATIONINSIGHTS_CONNECTION_STRING`` is set.
   Delegates entirely to ``configure_azure_monitor()`` which creates
   its own providers, exporters, and instrumentors.

2. **Local dev**: ``OTLP_ENDPOINT`` is set (no App Insights string).
   Explicitly creates TracerProvider / MeterProvider / LoggerProvider
   with OTLP gRPC exporters pointed at the endpoint.

With neither variable set telemetry stays off and nothing is imported.
"""

from __future__ import annotations

import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

_telemetry_enabled: bool = False


def is_telemetry_enabled() -> bool:
    """Return whether OTel providers are active."""
    return _telemetry_enabled


def configure_observability() -> None:
    """Set up all OTel providers and instrumentors."""
    global _telemetry_enabled  # noqa: PLW0603

    # Load .env into os.environ early so telemetry variables and redirect
    # rules defined there are visible to os.getenv / the rule snapshot.
    from dotenv import load_dotenv

    load_dotenv()

    conn_str = os.getenv("APPLICATIONINSIGHTS_CONNECTION_STRING")
    otlp_endpoint = os.getenv("OTLP_ENDPOINT")

    if not conn_str and not otlp_endpoint:
        return

    _telemetry_enabled = True

    if conn_str:
        _configure_azure_monitor()
    else:
        _configure_otlp(otlp_endpoint)  # type: ignore[arg-type]


def instrument_app(app: Any) -> None:
    """Instrument a FastAPI app instance for HTTP tracing + metrics.

    Call this *after* the app is created. In production the Azure Monitor
    distro handles this automatically; in OTLP-only mode we do it ourselves.
    """
    if not _telemetry_enabled:
        return

    if os.getenv("APPLICATIONINSIGHTS_CONNECTION_STRING"):
        return

    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app)
        logger.info("telemetry.fastapi.instrumented")
    except Exception as exc:
        logger.warning(
            "telemetry.fastapi.failed",
            extra={"error": str(exc)},
        )


def _configure_azure_monitor() -> None:
    """Production: Azure Monitor creates all providers + instrumentors."""
    try:
        from azure.monitor.opentelemetry import configure_azure_monitor

        configure_azure_monitor(
            instrumentation_options={
                "azure_sdk": {"enabled": False},
                "flask": {"enabled": False},
                "django": {"enabled": False},
                "fastapi": {"enabled": True},
                "psycopg2": {"enabled": False},
                "requests": {"enabled": False},
                "urllib": {"enabled": False},
                "urllib3": {"enabled": False},
            },
        )
        logger.info("telemetry.azure_monitor.configured")
    except Exception as exc:
        logger.warning("telemetry.azure_monitor.failed", extra={"error": str(exc)})


def _configure_otlp(endpoint: str) -> None:
    """Local dev: create our own providers with OTLP gRPC exporters."""
    from opentelemetry import metrics, trace
    from opentelemetry._logs import set_logger_provider
    from opentelemetry.exporter.otlp.proto.grpc._log_exporter import (
        OTLPLogExporter,
    )
    from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
        OTLPMetricExporter,
    )
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
        OTLPSpanExporter,
    )
    from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
    from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
    from opentelemetry.sdk.metrics import MeterProvider
    from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    insecure = endpoint.startswith("http://")
    service_name = os.getenv("OTEL_SERVICE_NAME", "static-redirector")
    resource = Resource.create({SERVICE_NAME: service_name})

    # ── Traces ────────────────────────────────────────────────────────
    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=insecure))
    )
    trace.set_tracer_provider(tracer_provider)

    # ── Metrics ───────────────────────────────────────────────────────
    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=endpoint, insecure=insecure),
        export_interval_millis=15_000,
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)

    # ── Logs ──────────────────────────────────────────────────────────
    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(
        BatchLogRecordProcessor(OTLPLogExporter(endpoint=endpoint, insecure=insecure))
    )
    set_logger_provider(logger_provider)

    # Bridge stdlib logging → OTel LoggerProvider
    otel_handler = LoggingHandler(
        level=logging.NOTSET,
        logger_provider=logger_provider,
    )
    logging.getLogger().addHandler(otel_handler)

    logger.info(
        "telemetry.otlp.configured",
        extra={"endpoint": endpoint, "service": service_name},
    )
