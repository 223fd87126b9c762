"""Tracing and logging helpers for ngpack builds."""

from __future__ import annotations

from ngpack.telemetry.logging import add_trace_context, configure_logging
from ngpack.telemetry.sanitization import sanitize_error_message
from ngpack.telemetry.tracing import create_span, get_tracer, reset_tracer, set_tracer, traced

__all__ = [
    "add_trace_context",
    "configure_logging",
    "create_span",
    "get_tracer",
    "reset_tracer",
    "sanitize_error_message",
    "set_tracer",
    "traced",
]
