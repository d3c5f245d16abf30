"""Shared error definitions for the relay.

Every local failure is a RelayError carrying the HTTP status it maps to.
Upstream non-2xx responses are not errors here; they pass through verbatim.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for failures the relay answers itself."""

    status: int = 500

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status

    def to_body(self) -> dict[str, str]:
        """JSON body sent to the caller."""
        return {"error": self.message}


class ConfigurationError(RelayError):
    """A required secret or setting is missing or malformed."""

    status = 500


class AuthenticationError(RelayError):
    """Caller did not present the relay key."""

    status = 401


class OriginRejected(RelayError):
    """Request origin is not in the allowed list."""

    status = 403


class InvalidRequest(RelayError):
    """Inbound body could not be shaped into an upstream payload."""

    status = 400


class UpstreamTimeout(RelayError):
    """Outbound call exceeded the configured timeout."""

    status = 500


class UpstreamUnreachable(RelayError):
    """Outbound call failed before an HTTP response was received."""

    status = 502
