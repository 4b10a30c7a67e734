"""Utility functions and helpers.

- security: Secret redaction
- logging: Structured logging with secret sanitization, plugin logger
- metrics: In-process metrics collection
"""

from slackscot.utils.logging import (
    LogFormat,
    LogLevel,
    SLogger,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)
from slackscot.utils.metrics import (
    Counter,
    Gauge,
    Histogram,
    MetricsRegistry,
    Timer,
)
from slackscot.utils.security import (
    RedactionError,
    SecretRedactor,
)

__all__ = [
    # Metrics
    "Counter",
    "Gauge",
    "Histogram",
    "MetricsRegistry",
    "Timer",
    # Logging
    "LogFormat",
    "LogLevel",
    "SLogger",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
    # Security
    "RedactionError",
    "SecretRedactor",
]
