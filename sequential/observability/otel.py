"""OpenTelemetry + Prometheus fallback wiring for the Sequential backend."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI

from sequential import config

logger = logging.getLogger("sequential.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_resolution_counter: Any | None = None
_resolution_latency_hist: Any | None = None
_root_failure_counter: Any | None = None
_tokens_counter: Any | None = None
_token_open_counter: Any | None = None

_prom_enabled = False
_prom_resolution_counter: Any | None = None
_prom_resolution_latency_hist: Any | None = None
_prom_root_failure_counter: Any | None = None
_prom_tokens_counter: Any | None = None
_prom_token_open_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def _label(value: str) -> str:
    return (value or "").strip() or "unknown"


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _resolution_counter, _resolution_latency_hist, _root_failure_counter
    global _tokens_counter, _token_open_counter
    global _prom_enabled
    global _prom_resolution_counter, _prom_resolution_latency_hist, _prom_root_failure_counter
    global _prom_tokens_counter, _prom_token_open_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (SEQUENTIAL_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "sequential-backend"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "sequential",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_exporter = OTLPSpanExporter(endpoint=traces_endpoint or None)
    trace_provider.add_span_processor(BatchSpanProcessor(trace_exporter))
    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer("sequential.backend")

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("sequential.backend")

    _resolution_counter = meter.create_counter(
        "sequential_resolutions_total",
        unit="1",
        description="Count of selection resolutions by outcome",
    )
    _resolution_latency_hist = meter.create_histogram(
        "sequential_resolution_latency_ms",
        unit="ms",
        description="Latency of selection resolutions",
    )
    _root_failure_counter = meter.create_counter(
        "sequential_root_failures_total",
        unit="1",
        description="Non-fatal per-root resolution failures",
    )
    _tokens_counter = meter.create_counter(
        "sequential_tokens_minted_total",
        unit="1",
        description="Access tokens minted",
    )
    _token_open_counter = meter.create_counter(
        "sequential_tokens_opened_total",
        unit="1",
        description="Stored access tokens reopened",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = tracer
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        try:
            from prometheus_client import Counter, Histogram, start_http_server

            start_http_server(config.PROM_PORT)
            _prom_enabled = True
            _prom_resolution_counter = Counter(
                "sequential_resolutions_total",
                "Count of selection resolutions by outcome",
                ["result"],
            )
            _prom_resolution_latency_hist = Histogram(
                "sequential_resolution_latency_ms",
                "Latency of selection resolutions",
                ["result"],
            )
            _prom_root_failure_counter = Counter(
                "sequential_root_failures_total",
                "Non-fatal per-root resolution failures",
                ["kind"],
            )
            _prom_tokens_counter = Counter(
                "sequential_tokens_minted_total",
                "Access tokens minted",
                ["classification"],
            )
            _prom_token_open_counter = Counter(
                "sequential_tokens_opened_total",
                "Stored access tokens reopened",
                ["state"],
            )
            logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prometheus fallback not started: %s", exc)
            _prom_enabled = False

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
    except Exception as exc:  # noqa: BLE001
        logger.debug("FastAPI uninstrument failed: %s", exc)
    try:
        if _meter_provider is not None:
            _meter_provider.shutdown()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Meter provider shutdown failed: %s", exc)
    try:
        if _trace_provider is not None:
            _trace_provider.shutdown()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Trace provider shutdown failed: %s", exc)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_resolution(result: str, duration_ms: float, *, classifications: list[str] | None = None) -> None:
    labels = {"result": _label(result)}
    if _enabled and _resolution_counter is not None:
        _resolution_counter.add(1, labels)
    if _enabled and _resolution_latency_hist is not None:
        _resolution_latency_hist.record(max(0.0, float(duration_ms)), labels)
    if _prom_enabled and _prom_resolution_counter is not None:
        _prom_resolution_counter.labels(**labels).inc()
    if _prom_enabled and _prom_resolution_latency_hist is not None:
        _prom_resolution_latency_hist.labels(**labels).observe(max(0.0, float(duration_ms)))

    for classification in classifications or []:
        token_labels = {"classification": _label(classification)}
        if _enabled and _tokens_counter is not None:
            _tokens_counter.add(1, token_labels)
        if _prom_enabled and _prom_tokens_counter is not None:
            _prom_tokens_counter.labels(**token_labels).inc()


def record_root_failure(kind: str, count: int = 1) -> None:
    safe_count = max(0, int(count))
    if safe_count == 0:
        return
    labels = {"kind": _label(kind)}
    if _enabled and _root_failure_counter is not None:
        _root_failure_counter.add(safe_count, labels)
    if _prom_enabled and _prom_root_failure_counter is not None:
        _prom_root_failure_counter.labels(**labels).inc(safe_count)


def record_token_open(stale: bool) -> None:
    labels = {"state": "stale" if stale else "fresh"}
    if _enabled and _token_open_counter is not None:
        _token_open_counter.add(1, labels)
    if _prom_enabled and _prom_token_open_counter is not None:
        _prom_token_open_counter.labels(**labels).inc()
