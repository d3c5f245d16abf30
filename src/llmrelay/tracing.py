"""Request tracing for the relay.

Provides short, sortable trace IDs and the per-request start/finish log lines.
Trace IDs are derived from a counter and the clock only, so no request
content ever ends up in them.
"""

from __future__ import annotations

import itertools
import logging
import secrets
import time

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-Id"


class RequestTracer:
    """Generates trace IDs and logs request lifecycle events.

    Format: {counter}_{hhmmss}_{suffix}
    Example: 00042_031333_9f2c
    """

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def generate_trace_id(self) -> str:
        seq = next(self._counter)
        return f"{seq:05d}_{time.strftime('%H%M%S')}_{secrets.token_hex(2)}"

    def log_request(self, trace_id: str, method: str, path: str, origin: str | None) -> None:
        logger.debug(
            "[%s] request_start: method=%s, path=%s, origin=%s",
            trace_id,
            method,
            path,
            origin or "-",
        )

    def log_response(
        self,
        trace_id: str,
        method: str,
        path: str,
        status_code: int,
        duration_s: float,
    ) -> None:
        """Log the outcome at a level matching the status class."""
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "[%s] %s %s -> %d (%.0fms)",
            trace_id,
            method,
            path,
            status_code,
            duration_s * 1000,
        )
