"""Core modules for configuration, logging, and telemetry."""

from kubexfer.core.config import Settings, get_settings
from kubexfer.core.logging import configure_logging
from kubexfer.core.telemetry import flush_telemetry, get_tracer, reset_telemetry, setup_telemetry

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "flush_telemetry",
    "get_tracer",
    "reset_telemetry",
    "setup_telemetry",
]
