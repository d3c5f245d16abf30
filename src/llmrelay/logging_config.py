"""Logging configuration for the relay process.

Usage:
    from llmrelay.logging_config import configure_logging

    # Configure once at startup
    configure_logging(level="DEBUG", format="json")

Environment Variables:
    RELAY_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    RELAY_LOG_FORMAT: Output format ("text" or "json")
    RELAY_LOG_FILE: Optional log file path
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Literal

TEXT_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys() | {"message", "taskName"}
)

_configured = False


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    {
        "timestamp": "2025-12-28T14:30:00.123000",
        "level": "INFO",
        "logger": "llmrelay.server",
        "message": "[00001_143000_ab12] POST /api/chat -> 200 (812ms)",
        "extra": {...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


def configure_logging(
    level: str | None = None,
    format: Literal["text", "json"] | None = None,
    file_path: str | None = None,
    force: bool = False,
) -> None:
    """Configure root logging.

    Subsequent calls are ignored unless force=True. Arguments take priority
    over the RELAY_LOG_* environment variables.

    Args:
        level: Log level. Defaults to RELAY_LOG_LEVEL or "INFO".
        format: Output format. Defaults to RELAY_LOG_FORMAT or "text".
        file_path: Optional file path. Defaults to RELAY_LOG_FILE.
        force: Reconfigure even if already configured.

    Raises:
        ValueError: If the level is unknown. Checked even when already configured.
    """
    global _configured
    level = (level or os.environ.get("RELAY_LOG_LEVEL") or "INFO").upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level}")

    if _configured and not force:
        return

    format = format or os.environ.get("RELAY_LOG_FORMAT", "text")  # type: ignore[assignment]
    file_path = file_path or os.environ.get("RELAY_LOG_FILE")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers.clear()

    if format == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    _configured = True
