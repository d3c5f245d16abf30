"""Relay configuration.

RelayConfig is built once at startup (usually via RelayConfig.from_env) and
handed to every component. It is frozen, so request handlers can share it
without coordination.

Environment Variables:
    OPENAI_API_KEY: Upstream bearer credential (required for protected routes)
    RELAY_KEY: Shared key callers send as X-Relay-Key (required for protected routes)
    MODEL_DEFAULT: Model used when the caller omits one
    TIMEOUT_AI: Outbound call timeout in milliseconds
    ALLOWED_ORIGINS: Comma-separated origin list, or "*"
    ALLOW_NO_ORIGIN: Accept non-preflight requests without an Origin header
    UPSTREAM_BASE_URL: Base URL of the OpenAI-compatible API
    HOST / PORT: Listen address
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from llmrelay.errors import ConfigurationError

WILDCARD = "*"

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT_MS = 25000
DEFAULT_UPSTREAM_BASE_URL = "https://api.openai.com/v1"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 7860
DEFAULT_MAX_BODY_SIZE = 1024 * 1024  # 1MB

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_origins(value: str) -> frozenset[str]:
    """Split a comma-separated origin list, dropping blanks."""
    return frozenset(part.strip() for part in value.split(",") if part.strip())


def _parse_int(name: str, value: str, minimum: int) -> int:
    try:
        parsed = int(value)
    except ValueError as err:
        raise ConfigurationError(f"{name} must be an integer, got: {value!r}") from err
    if parsed < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got: {parsed}")
    return parsed


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got: {value!r}")


@dataclass(frozen=True)
class RelayConfig:
    """Process-lifetime relay settings.

    Secrets are excluded from repr so the config can be logged safely.
    """

    upstream_api_key: str = field(default="", repr=False)
    relay_key: str = field(default="", repr=False)
    default_model: str = DEFAULT_MODEL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    allowed_origins: frozenset[str] = frozenset({WILDCARD})

    # Only consulted when allowed_origins has no wildcard
    allow_missing_origin: bool = True

    upstream_base_url: str = DEFAULT_UPSTREAM_BASE_URL

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    max_body_size: int = DEFAULT_MAX_BODY_SIZE

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ConfigurationError(f"timeout_ms must be positive, got: {self.timeout_ms}")
        # Accept any iterable of origins but always store a frozenset
        if not isinstance(self.allowed_origins, frozenset):
            object.__setattr__(self, "allowed_origins", frozenset(self.allowed_origins))
        object.__setattr__(self, "upstream_base_url", self.upstream_base_url.rstrip("/"))

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @property
    def allows_any_origin(self) -> bool:
        return WILDCARD in self.allowed_origins

    @property
    def completions_url(self) -> str:
        return f"{self.upstream_base_url}/chat/completions"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> RelayConfig:
        """Build a config from environment variables.

        Priority: explicit override > environment > built-in default.
        Empty environment values count as unset.

        Raises:
            ConfigurationError: If a numeric or boolean variable is malformed.
        """
        env = os.environ if environ is None else environ

        def get(key: str) -> str | None:
            value = env.get(key)
            return value if value else None

        values: dict[str, Any] = {
            "upstream_api_key": get("OPENAI_API_KEY") or "",
            "relay_key": get("RELAY_KEY") or "",
            "default_model": get("MODEL_DEFAULT") or DEFAULT_MODEL,
            "allowed_origins": parse_origins(get("ALLOWED_ORIGINS") or WILDCARD),
            "upstream_base_url": get("UPSTREAM_BASE_URL") or DEFAULT_UPSTREAM_BASE_URL,
            "host": get("HOST") or DEFAULT_HOST,
        }

        timeout = get("TIMEOUT_AI")
        if timeout is not None:
            values["timeout_ms"] = _parse_int("TIMEOUT_AI", timeout, minimum=1)

        port = get("PORT")
        if port is not None:
            values["port"] = _parse_int("PORT", port, minimum=0)

        allow_missing = get("ALLOW_NO_ORIGIN")
        if allow_missing is not None:
            values["allow_missing_origin"] = _parse_bool("ALLOW_NO_ORIGIN", allow_missing)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> RelayConfig:
        """Return a copy with the given non-None fields replaced."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def missing_secrets(self) -> list[str]:
        """Names of required secrets that are unset."""
        missing = []
        if not self.relay_key:
            missing.append("RELAY_KEY")
        if not self.upstream_api_key:
            missing.append("OPENAI_API_KEY")
        return missing

    def describe(self) -> dict[str, Any]:
        """Redacted view for logging and `llmrelay check-config`."""
        return {
            "upstream_api_key": "set" if self.upstream_api_key else "missing",
            "relay_key": "set" if self.relay_key else "missing",
            "default_model": self.default_model,
            "timeout_ms": self.timeout_ms,
            "allowed_origins": sorted(self.allowed_origins),
            "allow_missing_origin": self.allow_missing_origin,
            "upstream_base_url": self.upstream_base_url,
            "host": self.host,
            "port": self.port,
        }
