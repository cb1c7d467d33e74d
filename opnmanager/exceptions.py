"""Error taxonomy for OPNsense API calls.

Every failure raised by this package derives from ``OPNsenseError`` and carries
an operator-facing message, the URL involved (when there is one) and the
underlying exception (when there is one).
"""

from typing import Optional


class OPNsenseError(Exception):
    """Base class for all opnmanager errors."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.url = url
        self.original_error = original_error

    def __str__(self) -> str:
        return self.message


class ConfigError(OPNsenseError):
    """Invalid or incomplete configuration."""


class MissingProfileError(ConfigError):
    """No default API profile is configured."""

    def __init__(self, message: str = "API info not found: no default API profile is configured"):
        super().__init__(message)


class RequestValidationError(OPNsenseError):
    """A request was rejected before it was sent."""


class InvalidMethodError(RequestValidationError):
    pass


class NetworkError(OPNsenseError):
    """Transport-level failure. Raised directly for unclassified failures."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message, url=url, original_error=original_error)
        self.detail = detail if detail is not None else (str(original_error) if original_error else None)


class RequestTimeoutError(NetworkError):
    pass


class ConnectionRefusedByHostError(NetworkError):
    pass


class DnsResolutionError(NetworkError):
    pass


class TlsError(NetworkError):
    pass


class HttpError(OPNsenseError):
    """Non-2xx response. Raised directly for status codes without a dedicated class."""

    def __init__(
        self,
        message: str,
        status: int,
        body: str = "",
        url: Optional[str] = None,
    ):
        super().__init__(message, url=url)
        self.status = status
        self.body = body


class UnauthorizedError(HttpError):
    pass


class ForbiddenError(HttpError):
    pass


class NotFoundError(HttpError):
    pass


class DecodeError(OPNsenseError):
    """Response body could not be decoded into the expected shape."""
