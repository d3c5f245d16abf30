"""Client for the upstream chat completion API.

Uses a single aiohttp.ClientSession for the process lifetime. Each call is a
single attempt bounded by the configured timeout; there is no retry.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import aiohttp

from llmrelay.config import RelayConfig
from llmrelay.errors import UpstreamTimeout, UpstreamUnreachable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpstreamResponse:
    """A completed HTTP exchange with the upstream, whatever its status."""

    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass
class UpstreamClient:
    """HTTP client for the OpenAI-compatible completions endpoint.

    Example:
        >>> client = UpstreamClient(config=RelayConfig(upstream_api_key="sk-..."))
        >>> await client.connect()
        >>> response = await client.send({"model": "gpt-4o-mini", "messages": []})
        >>> await client.close()
    """

    config: RelayConfig
    _session: aiohttp.ClientSession | None = None
    _in_flight: int = 0

    @property
    def in_flight(self) -> int:
        """Number of outbound calls that have started but not finished."""
        return self._in_flight

    async def connect(self) -> None:
        """Create the HTTP session carrying the upstream credential."""
        self._session = aiohttp.ClientSession(
            # Bounded per call in send()
            timeout=aiohttp.ClientTimeout(total=None),
            headers={
                "Authorization": f"Bearer {self.config.upstream_api_key}",
                "Content-Type": "application/json",
            },
        )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def send(self, payload: dict[str, Any], trace_id: str = "-") -> UpstreamResponse:
        """POST the payload to the completions endpoint.

        Args:
            payload: Upstream chat completion body.
            trace_id: Trace ID for log correlation.

        Returns:
            UpstreamResponse with the upstream status and raw body text.

        Raises:
            UpstreamTimeout: If no response arrived within timeout_ms.
            UpstreamUnreachable: If the request failed at the transport level.
        """
        if self._session is None:
            raise RuntimeError("Client not connected. Call connect() first.")

        start_time = time.monotonic()
        self._in_flight += 1
        try:
            # wait_for cancels the inner request on expiry and waits for it to unwind
            response = await asyncio.wait_for(
                self._post(payload),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.warning(
                "[%s] Upstream timed out after %dms", trace_id, self.config.timeout_ms
            )
            raise UpstreamTimeout(
                f"Upstream request timed out after {self.config.timeout_ms}ms"
            ) from e
        except (aiohttp.ClientError, OSError) as e:
            logger.warning("[%s] Upstream unreachable: %s", trace_id, type(e).__name__)
            raise UpstreamUnreachable(
                f"Upstream request failed: {type(e).__name__}"
            ) from e
        finally:
            self._in_flight -= 1

        logger.info(
            "[%s] Upstream responded %d in %.0fms",
            trace_id,
            response.status,
            (time.monotonic() - start_time) * 1000,
        )
        if not response.ok:
            logger.warning(
                "[%s] Upstream error %d: %s", trace_id, response.status, response.text[:500]
            )
        return response

    async def _post(self, payload: dict[str, Any]) -> UpstreamResponse:
        assert self._session is not None
        async with self._session.post(self.config.completions_url, json=payload) as response:
            body = await response.read()
            return UpstreamResponse(
                status=response.status,
                text=body.decode("utf-8", errors="replace"),
            )
