"""Observability helpers."""

from dashsync.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_sync,
    record_upstream_failure,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_sync",
    "record_upstream_failure",
]
