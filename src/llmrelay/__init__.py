"""llmrelay - authenticated HTTP relay for LLM chat completion APIs.

The relay lets a browser frontend call a chat completion provider without
ever seeing the provider's API key. Callers present a shared relay key
instead; the relay validates it, shapes the request, and forwards it with
the server-held credential.

Pipeline (per request):
    OriginGuard   CORS policy, preflight handling
    AuthGate      X-Relay-Key check
    shaping       Inbound body -> upstream payload
    UpstreamClient  Single bounded outbound call
    translate     Upstream result -> outward JSON response

Quick Start:
    >>> from llmrelay import RelayConfig, RelayServer
    >>> config = RelayConfig.from_env()
    >>> await RelayServer(config=config).serve()
"""

from llmrelay.__version__ import __version__
from llmrelay.config import RelayConfig
from llmrelay.server import RelayServer

__all__ = [
    "__version__",
    "RelayConfig",
    "RelayServer",
]
