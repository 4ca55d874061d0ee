"""
Lightweight HTTP client for the Spotify Web API.

Wraps requests.Session. A fresh bearer token is obtained from the token
provider before every request, so proactive refresh happens in one place
(TokenManager). There is no retry or backoff: one request, one outcome.
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

import requests
from requests.exceptions import RequestException

from .exceptions import (
    SpotifyAPIError,
    SpotifyDecodeError,
    SpotifyNotFoundError,
    SpotifyRateLimitError,
    SpotifyRequestCancelled,
    SpotifyTokenExpiredError,
)

logger = logging.getLogger(__name__)

BASE_URL = "https://api.spotify.com/v1"
DEFAULT_TIMEOUT = 30  # seconds


class SpotifyHTTPClient:
    """
    HTTP client for Spotify Web API requests.

    Example:
        client = SpotifyHTTPClient(token_manager.get_valid_token)
        profile = client.get("/me")
    """

    def __init__(
        self,
        token_provider: Callable[[], str],
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the HTTP client.

        Args:
            token_provider: Callable returning a valid access token.
                Exceptions it raises propagate unchanged.
            base_url: API root, without trailing slash.
            timeout: Per-request timeout in seconds.
        """
        self._token_provider = token_provider
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._cancelled = threading.Event()
        self._session = requests.Session()
        self._session.headers.update({
            "Accept": "application/json",
        })

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def cancel(self) -> None:
        """Cancel outstanding requests; their results are discarded."""
        self._cancelled.set()
        logger.debug("HTTP client cancelled")

    def reset_cancel(self) -> None:
        self._cancelled.clear()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    # -----------------------------------------------------------------
    # Public HTTP methods
    # -----------------------------------------------------------------

    def get(self, path: str, params: Optional[Dict] = None) -> Any:
        """Send a GET request to a path relative to the API root."""
        return self.request("GET", f"{self._base_url}{path}", params=params)

    def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Execute a single authorized request and decode the JSON body.

        Returns:
            Decoded JSON, or None for 204 No Content.

        Raises:
            SpotifyRequestCancelled: If cancel() was called.
            SpotifyTokenExpiredError: On 401.
            SpotifyNotFoundError: On 404.
            SpotifyRateLimitError: On 429.
            SpotifyAPIError: On any other failure status or network error.
            SpotifyDecodeError: If the body is not valid JSON.
        """
        if self._cancelled.is_set():
            raise SpotifyRequestCancelled(f"{method} {url} cancelled")

        access_token = self._token_provider()
        request_headers = {"Authorization": f"Bearer {access_token}"}
        if headers:
            request_headers.update(headers)

        try:
            response = self._session.request(
                method,
                url,
                params=params,
                headers=request_headers,
                timeout=self._timeout,
            )
        except RequestException as e:
            if self._cancelled.is_set():
                raise SpotifyRequestCancelled(f"{method} {url} cancelled")
            logger.error("Network error on %s %s: %s", method, url, e)
            raise SpotifyAPIError(f"Network error: {e}")

        if self._cancelled.is_set():
            raise SpotifyRequestCancelled(f"{method} {url} cancelled")

        return self._handle_response(response, url)

    # -----------------------------------------------------------------
    # Internal response handling
    # -----------------------------------------------------------------

    def _handle_response(self, response, url: str) -> Any:
        status = response.status_code
        logger.debug("%s -> %d", url, status)

        if status == 204:
            return None

        if response.ok:
            try:
                return response.json()
            except ValueError as e:
                raise SpotifyDecodeError(f"Invalid JSON from {url}: {e}")

        if status == 401:
            raise SpotifyTokenExpiredError("Token expired or invalid")

        if status == 404:
            raise SpotifyNotFoundError(f"Resource not found: {url}")

        if status == 429:
            retry_after = int(response.headers.get("Retry-After", 60))
            raise SpotifyRateLimitError(
                f"Rate limited, retry after {retry_after}s",
                retry_after=retry_after,
            )

        try:
            body = response.json()
            msg = body.get("error", {}).get("message", response.text)
        except (ValueError, AttributeError):
            msg = response.text
        logger.error("API error %d on %s: %s", status, url, msg)
        raise SpotifyAPIError(f"API error {status}: {msg}", status_code=status)
