"""Exceptions raised by the Garmin Connect client."""

from typing import Any, Optional


class GarminConnectError(Exception):
    """Base class for every error raised by this package."""
    pass


class MissingCredentialsError(GarminConnectError):
    """Raised at construction when no username/password can be resolved."""
    pass


class AuthNegotiationError(GarminConnectError):
    """Raised when the SSO pages or OAuth responses lack an expected marker."""
    pass


class InvalidCredentialsError(GarminConnectError):
    """Raised when the service rejects the username/password pair."""
    pass


class AuthenticationError(GarminConnectError):
    """Raised when an API call stays unauthorized after one session recovery."""
    pass


class DirectoryNotFoundError(GarminConnectError):
    """Raised when a token directory is missing or cannot be created."""
    pass


class TokenNotFoundError(GarminConnectError):
    """Raised when a token is requested but no session has been established."""
    pass


class TokenParseError(GarminConnectError):
    """Raised when a persisted token file does not hold valid token data."""
    pass


class InvalidFormatError(GarminConnectError, ValueError):
    """Raised when an upload/download format is outside the allowed set."""
    pass


class TransportError(GarminConnectError):
    """Raised on network-level failures (timeouts, refused or reset connections)."""
    pass


class ApiError(GarminConnectError):
    """Raised for HTTP error responses other than an authentication failure."""

    def __init__(self, message: str, status_code: int, body: Optional[Any] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __repr__(self):
        return f"ApiError(status_code={self.status_code}, message={self.args[0]!r})"
