"""
Spotify module exceptions.

Every failure surfaced to callers falls into one of three buckets:
an HTTP failure (SpotifyAPIError), a decode failure (SpotifyDecodeError)
or a missing/unusable token (SpotifyAuthError and its subclasses).
"""

from typing import Optional


class SpotifyError(Exception):
    """Base exception for all Spotify-related errors."""
    pass


class SpotifyAuthError(SpotifyError):
    """Raised when authentication/authorization fails."""
    pass


class SpotifyTokenError(SpotifyAuthError):
    """Raised when token operations fail."""
    pass


class SpotifyTokenExpiredError(SpotifyTokenError):
    """Raised when a token has expired or was rejected by the API."""
    pass


class SpotifyMissingTokenError(SpotifyAuthError):
    """Raised when no credentials are available for a request."""
    pass


class SpotifyUnauthenticatedError(SpotifyAuthError):
    """Raised when a refresh failed and the session was signed out."""
    pass


class SpotifyAPIError(SpotifyError):
    """Raised when a Spotify API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SpotifyRateLimitError(SpotifyAPIError):
    """Raised when rate limited by Spotify API."""

    def __init__(self, message: str, retry_after: int = None):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class SpotifyNotFoundError(SpotifyAPIError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class SpotifyDecodeError(SpotifyError):
    """Raised when a response body cannot be decoded."""
    pass


class SpotifyRequestCancelled(SpotifyError):
    """Raised when an in-flight request was cancelled."""
    pass
