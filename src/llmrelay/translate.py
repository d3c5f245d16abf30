"""Maps upstream results and local failures to outward JSON responses."""

from __future__ import annotations

import json
from typing import Any

from aiohttp import web

from llmrelay.clients.upstream_client import UpstreamResponse
from llmrelay.errors import RelayError

GENERIC_ERROR = "Internal server error"


def parse_upstream_body(text: str) -> dict[str, Any]:
    """Decode an upstream body, wrapping anything that is not a JSON object.

    Non-JSON text (an HTML error page, a proxy message) is kept under "raw"
    rather than dropped.
    """
    try:
        data = json.loads(text)
    except ValueError:
        return {"raw": text}
    if not isinstance(data, dict):
        return {"raw": text}
    return data


def from_upstream(
    response: UpstreamResponse, headers: dict[str, str] | None = None
) -> web.Response:
    """Pass the upstream status through verbatim with a JSON object body."""
    return web.json_response(
        parse_upstream_body(response.text),
        status=response.status,
        headers=headers,
    )


def from_error(error: RelayError, headers: dict[str, str] | None = None) -> web.Response:
    return web.json_response(error.to_body(), status=error.status, headers=headers)


def error_response(
    message: str, status: int, headers: dict[str, str] | None = None
) -> web.Response:
    return web.json_response({"error": message}, status=status, headers=headers)
