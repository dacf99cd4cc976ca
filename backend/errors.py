"""
Gateway error taxonomy.

Every failure a handler can hit is one of these. They carry the HTTP status
they render as; main.py turns them into ``{"error": ...}`` JSON bodies.
"""
from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base exception for gateway failures."""

    status_code = 500
    default_message = "An error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        body.update(self.details)
        return body


class AuthError(GatewayError):
    status_code = 401
    default_message = "Unauthorized: Invalid API key"


class ValidationError(GatewayError):
    status_code = 400
    default_message = "Invalid request"


class NotFound(GatewayError):
    status_code = 404
    default_message = "Not found"


class QuotaExceeded(GatewayError):
    status_code = 429
    default_message = "Daily usage limit exceeded"

    def __init__(self, limit: int):
        super().__init__(details={"limit": limit})
        self.limit = limit


class ConfigError(GatewayError):
    status_code = 500
    default_message = "OpenAI API key is not configured"


class UpstreamError(GatewayError):
    """Completion provider failed; ``upstream_status`` is None for network errors."""

    status_code = 502
    default_message = "Failed to get completions from OpenAI"

    def __init__(self, upstream_status: Optional[int] = None, reason: Optional[str] = None):
        details = {"code": upstream_status} if upstream_status is not None else {}
        super().__init__(details=details)
        self.upstream_status = upstream_status
        # Server-side only, never rendered
        self.reason = reason

    @property
    def is_outage(self) -> bool:
        """Network errors, timeouts, malformed bodies, 429 and 5xx"""
        status = self.upstream_status
        return status is None or status == 429 or status >= 500


class UpstreamUnavailable(GatewayError):
    status_code = 503
    default_message = "Completions are temporarily unavailable, try again later"


class StorageError(GatewayError):
    status_code = 503
    default_message = "Usage ledger unavailable"
