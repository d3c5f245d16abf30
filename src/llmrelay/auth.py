"""Relay key check for protected routes."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from llmrelay.config import RelayConfig
from llmrelay.errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

RELAY_KEY_HEADER = "X-Relay-Key"


@dataclass(frozen=True)
class AuthGate:
    """Validates the caller's X-Relay-Key against the configured key.

    Checks run in a fixed order so a server misconfiguration is never
    reported as a caller mistake:
    1. Relay key unset -> ConfigurationError (500)
    2. Header missing or different -> AuthenticationError (401)
    3. Upstream API key unset -> ConfigurationError (500)
    """

    config: RelayConfig

    def authorize(self, presented: str | None) -> None:
        """Raise if the caller may not use the relay.

        Args:
            presented: Raw X-Relay-Key header value, or None if absent.

        Raises:
            ConfigurationError: If a required secret is not configured.
            AuthenticationError: If the presented key does not match exactly.
        """
        if not self.config.relay_key:
            logger.error("RELAY_KEY is not configured; rejecting protected request")
            raise ConfigurationError("Missing RELAY_KEY (server config)")

        if not self._matches(presented or ""):
            raise AuthenticationError("Unauthorized")

        if not self.config.upstream_api_key:
            logger.error("OPENAI_API_KEY is not configured; rejecting protected request")
            raise ConfigurationError("Missing OPENAI_API_KEY (server config)")

    def _matches(self, presented: str) -> bool:
        # Constant-time, exact, case-sensitive. Header values that were not
        # valid UTF-8 arrive holding lone surrogates, which must still encode.
        return hmac.compare_digest(
            presented.encode("utf-8", "surrogatepass"),
            self.config.relay_key.encode("utf-8", "surrogatepass"),
        )
