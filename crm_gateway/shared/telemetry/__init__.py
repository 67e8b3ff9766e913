"""Shared telemetry: logging setup, OpenTelemetry config, and tracing helpers."""

from crm_gateway.shared.telemetry.logging import setup_logging
from crm_gateway.shared.telemetry.telemetry import (
    TelemetryConfig,
    get_telemetry,
    set_telemetry,
)
from crm_gateway.shared.telemetry.tracing import add_span_attributes, traced

__all__ = [
    "setup_logging",
    "TelemetryConfig",
    "get_telemetry",
    "set_telemetry",
    "traced",
    "add_span_attributes",
]
