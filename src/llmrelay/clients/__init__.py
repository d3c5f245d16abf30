"""Outbound HTTP clients."""

from llmrelay.clients.upstream_client import UpstreamClient, UpstreamResponse

__all__ = [
    "UpstreamClient",
    "UpstreamResponse",
]
