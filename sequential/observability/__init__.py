"""Observability helpers."""

from sequential.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_resolution,
    record_root_failure,
    record_token_open,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_resolution",
    "record_root_failure",
    "record_token_open",
]
