"""Origin guard for browser callers.

Decides whether a request's Origin is permitted and computes the CORS
response headers. Preflight handling lives in the server middleware; this
module only makes the decision.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from llmrelay.config import WILDCARD, RelayConfig

ALLOW_METHODS = "GET,POST,OPTIONS"
ALLOW_HEADERS = "content-type, authorization, x-relay-key"
MAX_AGE = "86400"


@dataclass(frozen=True)
class OriginDecision:
    """Outcome of an origin check."""

    allowed: bool
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class OriginGuard:
    """Applies the configured origin policy.

    With a wildcard, every request is allowed and the outward
    Access-Control-Allow-Origin is the literal "*". With a fixed list, only
    exact matches are allowed and the caller's origin is echoed back
    together with "Vary: Origin".

    Example:
        >>> guard = OriginGuard(RelayConfig(allowed_origins={"https://app.example"}))
        >>> guard.check("https://app.example", preflight=False).allowed
        True
    """

    config: RelayConfig

    def is_allowed(self, origin: str | None, preflight: bool = False) -> bool:
        if self.config.allows_any_origin:
            return True
        if not origin:
            # A preflight is always browser-issued, so it must name an origin
            return False if preflight else self.config.allow_missing_origin
        return origin in self.config.allowed_origins

    def check(self, origin: str | None, preflight: bool = False) -> OriginDecision:
        """Decide ALLOW/DENY and build the CORS headers for the response."""
        allowed = self.is_allowed(origin, preflight=preflight)

        headers = {
            "Access-Control-Allow-Methods": ALLOW_METHODS,
            "Access-Control-Allow-Headers": ALLOW_HEADERS,
            "Access-Control-Max-Age": MAX_AGE,
        }
        if self.config.allows_any_origin:
            headers["Access-Control-Allow-Origin"] = WILDCARD
        else:
            # Response depends on the Origin header, so caches must key on it
            headers["Vary"] = "Origin"
            if allowed and origin:
                headers["Access-Control-Allow-Origin"] = origin

        return OriginDecision(allowed=allowed, headers=headers)
