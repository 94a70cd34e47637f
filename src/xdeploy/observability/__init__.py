"""Run-scoped structured logging and correlation scopes."""

from xdeploy.observability.logging import (
    LOG_FILENAME,
    LoggingSettings,
    RunLog,
    configure_logging,
    correlation_scope,
    redact,
)

__all__ = [
    "LOG_FILENAME",
    "LoggingSettings",
    "RunLog",
    "configure_logging",
    "correlation_scope",
    "redact",
]
