"""Logging setup and per-call telemetry."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Send logs to stderr; stdout carries the MCP stream."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr, force=True)


@dataclass(frozen=True, slots=True)
class ToolCallTelemetry:
    """Redacted summary of one tool invocation."""

    tool_name: str
    outcome: str
    latency_seconds: float
    error_code: int | None = None

    def log(self, logger: logging.Logger) -> None:
        logger.info(
            "tool=%s outcome=%s error_code=%s latency_ms=%.1f",
            self.tool_name,
            self.outcome,
            self.error_code,
            self.latency_seconds * 1000,
        )
