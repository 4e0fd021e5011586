"""
Error taxonomy for RDAP lookups.

Every error carries the HTTP status a front door should answer with.
"""

from __future__ import annotations

from .limiter import RateLimitInfo, rate_limit_headers


class RdapError(Exception):
    """Base class for all lookup failures."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "status": self.status_code}


class ValidationError(RdapError):
    """Missing or empty query."""

    status_code = 400


class RateLimitExceeded(RdapError):
    """The client used up its request window."""

    status_code = 429

    def __init__(self, info: RateLimitInfo) -> None:
        super().__init__("Rate limit exceeded")
        self.info = info

    @property
    def retry_after(self) -> int:
        return self.info.retry_after

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retryAfter"] = self.retry_after
        return data

    @property
    def headers(self) -> dict[str, str]:
        """Rate limit headers plus Retry-After for the rejected response."""
        headers = rate_limit_headers(self.info)
        headers["Retry-After"] = str(self.retry_after)
        return headers


class NoServerFound(RdapError):
    """No bootstrap service covers the TLD, address or ASN."""

    status_code = 404


class RdapNotFound(RdapError):
    """The authoritative RDAP server answered 404."""

    status_code = 404


class RdapUpstreamError(RdapError):
    """The RDAP server answered with a non-success status or a bad body."""

    status_code = 502

    def __init__(self, status: int, detail: str | None = None) -> None:
        message = f"RDAP server returned {status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.status = status


class RdapTransportError(RdapError):
    """Network failure talking to the RDAP server."""

    status_code = 502


class BootstrapUnavailable(RdapError):
    """A bootstrap registry could not be fetched and nothing is cached."""

    status_code = 503

    def __init__(self, resource_type: str) -> None:
        super().__init__(f"Unable to load RDAP service registry for {resource_type}")
        self.resource_type = resource_type
