"""OpenTelemetry tracing utilities for ngpack.

Provides the ``@traced`` decorator and the ``create_span()`` context manager
used to wrap pipeline stages. Both record a sanitized error status on the span
when the wrapped code raises, then re-raise unchanged.
"""

from __future__ import annotations

import asyncio
import functools
import threading
from collections.abc import Callable
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar, cast, overload

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode, Tracer

from ngpack.telemetry.sanitization import sanitize_error_message

__all__ = ["traced", "create_span", "get_tracer", "set_tracer", "reset_tracer"]

if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

_TRACER_NAME = "ngpack"

_tracer: Tracer | None = None
_lock = threading.Lock()


def get_tracer() -> Tracer:
    """The tracer of every ngpack span, created on first use.

    Falls back to a NoOpTracer when the OpenTelemetry API cannot provide one,
    so a broken tracing setup never fails a build.
    """
    global _tracer

    tracer = _tracer
    if tracer is not None:
        return tracer
    with _lock:
        if _tracer is None:
            try:
                _tracer = trace.get_tracer(_TRACER_NAME)
            except Exception as e:
                logger.warning("tracer_unavailable", error=sanitize_error_message(str(e)))
                return trace.NoOpTracer()
        return _tracer


def set_tracer(tracer: Tracer | None) -> None:
    """Replace the ngpack tracer (for testing).

    Args:
        tracer: Tracer instance to use, or None to create one on next use.
    """
    global _tracer
    with _lock:
        _tracer = tracer


def reset_tracer() -> None:
    """Drop the cached tracer so the next span picks up the current provider."""
    set_tracer(None)


def _record_error(span: Span, exc: Exception) -> None:
    sanitized = sanitize_error_message(str(exc))
    span.set_status(Status(StatusCode.ERROR, sanitized))
    span.set_attribute("exception.type", type(exc).__name__)
    span.set_attribute("exception.message", sanitized)


@overload
def traced(func: Callable[P, R]) -> Callable[P, R]: ...


@overload
def traced(
    *,
    name: str | None = None,
    attributes: dict[str, str] | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]: ...


def traced(
    func: Callable[P, R] | None = None,
    *,
    name: str | None = None,
    attributes: dict[str, str] | None = None,
) -> Callable[P, R] | Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator to trace a sync or async function with a span.

    Can be used with or without arguments:
        @traced
        def my_function(): ...

        @traced(name="styles.render", attributes={"renderer": "sass"})
        async def render(): ...

    Args:
        func: The function to decorate (when used without parentheses).
        name: Optional span name. Defaults to the function name.
        attributes: Optional static attributes set on every invocation.

    Returns:
        Decorated function that creates a span on each invocation.
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        span_name = name if name is not None else fn.__name__

        if asyncio.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                with get_tracer().start_as_current_span(
                    span_name,
                    record_exception=False,
                    set_status_on_exception=False,
                ) as span:
                    for key, value in (attributes or {}).items():
                        span.set_attribute(key, value)
                    try:
                        result = await fn(*args, **kwargs)
                        return cast(R, result)
                    except Exception as e:
                        _record_error(span, e)
                        raise

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(fn)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with get_tracer().start_as_current_span(
                span_name,
                record_exception=False,
                set_status_on_exception=False,
            ) as span:
                for key, value in (attributes or {}).items():
                    span.set_attribute(key, value)
                try:
                    return fn(*args, **kwargs)
                except Exception as e:
                    _record_error(span, e)
                    raise

        return sync_wrapper

    if func is not None:
        return decorator(func)
    return decorator


@contextmanager
def create_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Create a span as a context manager.

    Nested calls create parent-child relationships automatically.

    Args:
        name: The name for the span.
        attributes: Optional dictionary of attributes to set on the span.

    Yields:
        The created span for additional attribute setting.

    Examples:
        >>> with create_span("build.pipeline") as span:
        ...     span.set_attribute("build.package", "@my/lib")
        ...     with create_span("build.clean"):
        ...         pass
    """
    with get_tracer().start_as_current_span(
        name,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            _record_error(span, e)
            raise
