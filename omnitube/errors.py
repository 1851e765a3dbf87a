"""Failure taxonomy shared by all backends."""

import httpx


class OmnitubeError(Exception):
    """Base class for errors raised by backend adapters."""


class NetworkError(OmnitubeError):
    """Transport failure or non-success HTTP status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(OmnitubeError):
    """The response was valid but the entity is absent."""


class DecodeError(OmnitubeError):
    """Malformed response or a required JSON field is missing."""


class UnsupportedOperationError(OmnitubeError):
    """The active backend lacks the capability for this call."""


def classify_http_error(exc: httpx.HTTPError) -> OmnitubeError:
    """Map an httpx exception onto the taxonomy."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 404:
            return NotFoundError(f"Not found: {exc.request.url}")
        return NetworkError(f"HTTP {status} from {exc.request.url}", status_code=status)

    if isinstance(exc, httpx.TimeoutException):
        return NetworkError(f"Timed out: {exc}")

    return NetworkError(f"Network error: {exc}")
