"""Tracing decorator and span helpers for store calls."""

import asyncio
import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

# Only these argument names are recorded as span attributes; anything else
# (payloads, passwords, secrets) is skipped.
_SAFE_SPAN_ATTR_KEYS = frozenset({
    "entity", "id", "ids", "page", "items", "limit", "offset",
    "collection_id", "database_id", "document_id", "logical_name", "user_id",
})


def _safe_span_attrs(
    signature: inspect.Signature, args: tuple, kwargs: dict
) -> dict[str, str]:
    """Span attributes for the allow-listed arguments, positional or keyword."""
    try:
        arguments = signature.bind_partial(*args, **kwargs).arguments
    except TypeError:
        arguments = kwargs
    return {
        f"arg.{key}": str(value)
        for key, value in arguments.items()
        if key in _SAFE_SPAN_ATTR_KEYS
    }


def traced(operation_name: str | None = None) -> Callable:
    """Decorator to run an async function inside a span.

    Exceptions are recorded on the span and re-raised.

    Args:
        operation_name: Span name (defaults to module.funcname).
    """

    def decorator(func: Callable) -> Callable:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"traced() supports async functions only: {func.__name__}")
        tracer = trace.get_tracer(__name__)
        span_name = operation_name or f"{func.__module__}.{func.__name__}"
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(span_name) as span:
                for key, value in _safe_span_attrs(signature, args, kwargs).items():
                    span.set_attribute(key, value)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Add attributes to the current span."""
    span = trace.get_current_span()
    if span and span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(key, value)
