"""
Spotify OAuth operations.

Handles authorization URL generation, code exchange and token refresh.
The manager here is stateless: it operates on TokenInfo values passed to
it. Holding the current token and deciding when to refresh is the job of
TokenManager.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from urllib.parse import urlencode

import requests

from .credentials import SpotifyCredentials
from .exceptions import (
    SpotifyAuthError,
    SpotifyTokenError,
    SpotifyTokenExpiredError,
)

logger = logging.getLogger(__name__)


DEFAULT_SCOPES = [
    "user-read-currently-playing",
    "user-read-recently-played",
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-private",
    "user-read-email",
    "user-follow-read",
    "user-library-read",
    "user-read-playback-position",
    "user-top-read",
    "playlist-read-private",
    "playlist-read-collaborative",
]


@dataclass
class TokenInfo:
    """
    An access token, when it lapses, and how to renew it.

    ``expires_at`` is Unix time in seconds. ``refresh_token`` may be None
    only for tokens that cannot be renewed.
    """

    access_token: str
    token_type: str
    expires_at: float
    refresh_token: Optional[str] = None
    scope: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenInfo":
        """
        Build from a token endpoint response.

        Spotify answers with a relative ``expires_in``; it is pinned to
        an absolute instant here so the value can be persisted.

        Raises:
            SpotifyTokenError: If the response has no usable access token.
        """
        if not isinstance(data, dict) or not data.get("access_token"):
            raise SpotifyTokenError(
                "Token response missing required fields: ['access_token']"
            )

        expires_at = data.get("expires_at")
        if expires_at is None:
            expires_at = time.time() + int(data.get("expires_in", 3600))

        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type", "Bearer"),
            expires_at=float(expires_at),
            refresh_token=data.get("refresh_token"),
            scope=data.get("scope"),
        )

    @property
    def expiration(self) -> datetime:
        """Expiration instant as an aware UTC datetime."""
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc)

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= time.time()

    @property
    def expires_in_seconds(self) -> int:
        """Seconds left; negative once lapsed."""
        return int(self.expires_at - time.time())

    def expires_within(self, seconds: float) -> bool:
        """True if the token lapses within ``seconds`` from now."""
        return self.expires_at <= time.time() + seconds


def _error_description(response) -> str:
    """Best-effort extraction of an OAuth error message."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return body.get("error_description") or body.get("error") or response.text
    return response.text


class SpotifyAuthManager:
    """
    Authorization code flow against the Spotify accounts service.

    Stateless: it turns a code into a TokenInfo and a TokenInfo into a
    renewed one. Deciding when to renew is TokenManager's job.

    Example:
        auth_manager = SpotifyAuthManager(credentials)
        redirect(auth_manager.get_auth_url(state))
        ...
        token_info = auth_manager.exchange_code(request.args["code"])
    """

    AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
    TOKEN_URL = "https://accounts.spotify.com/api/token"

    def __init__(
        self,
        credentials: SpotifyCredentials,
        scopes: Optional[list] = None,
        timeout: float = 30,
    ):
        self._credentials = credentials
        self._scope = " ".join(scopes or DEFAULT_SCOPES)
        self._timeout = timeout

    def get_auth_url(self, state: Optional[str] = None) -> str:
        """
        URL of the consent page.

        The dialog is forced so that after signing out the user can pick
        another account instead of being sent straight back.
        """
        query = {
            "client_id": self._credentials.client_id,
            "response_type": "code",
            "redirect_uri": self._credentials.redirect_uri,
            "scope": self._scope,
            "show_dialog": "true",
        }
        if state:
            query["state"] = state
        return f"{self.AUTHORIZE_URL}?{urlencode(query)}"

    def exchange_code(self, code: str) -> TokenInfo:
        """
        Trade the callback's authorization code for a token pair.

        Raises:
            SpotifyAuthError: If ``code`` is empty.
            SpotifyTokenExpiredError: If Spotify rejected the code.
            SpotifyTokenError: On any other failure.
        """
        if not code:
            raise SpotifyAuthError("Authorization code is required")

        token_info = TokenInfo.from_dict(self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._credentials.redirect_uri,
            },
            "Token exchange",
        ))
        logger.info("Exchanged authorization code for token")
        return token_info

    def refresh_token(self, token_info: TokenInfo) -> TokenInfo:
        """
        Renew an access token.

        When the response carries no refresh token the current one stays
        valid and is carried over.

        Raises:
            SpotifyTokenExpiredError: If the refresh token was revoked.
            SpotifyTokenError: On any other failure, including a token
                that has no refresh token.
        """
        if not token_info.refresh_token:
            raise SpotifyTokenError("Cannot refresh: no refresh_token available")

        data = self._request_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": token_info.refresh_token,
            },
            "Token refresh",
        )
        if not data.get("refresh_token"):
            data["refresh_token"] = token_info.refresh_token

        renewed = TokenInfo.from_dict(data)
        logger.info("Refreshed access token")
        return renewed

    def _request_token(self, form: Dict[str, str], action: str) -> Dict[str, Any]:
        try:
            response = requests.post(
                self.TOKEN_URL,
                data=form,
                auth=self._credentials.basic_auth,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error("%s failed: %s", action, e)
            raise SpotifyTokenError(f"{action} failed: {e}")

        if response.status_code != 200:
            reason = _error_description(response)
            logger.warning("%s rejected with status %d: %s", action, response.status_code, reason)
            # 400 invalid_grant and 401 invalid_client both mean the
            # credentials on hand will never work again.
            error_cls = (
                SpotifyTokenExpiredError
                if response.status_code in (400, 401)
                else SpotifyTokenError
            )
            raise error_cls(f"{action} failed: {reason}")

        try:
            data = response.json()
        except ValueError as e:
            raise SpotifyTokenError(f"{action} returned invalid JSON: {e}")
        if not isinstance(data, dict) or not data:
            raise SpotifyTokenError(f"{action} returned no token")
        return data
