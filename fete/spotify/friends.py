"""
Friend activity from the Spotify web player.

The public Web API has no friend feed. The web player gets one by
trading the ``sp_dc`` session cookie (plus a time-based one-time code)
for a short-lived web player token, then calling the presence service
with it. None of this is documented: the endpoints and the code secret
are configuration so they can be updated without a release, and every
failure is reported as an ordinary SpotifyError.
"""

import base64
import hashlib
import hmac
import logging
import struct
import threading
import time
from typing import Callable, List, Optional

import requests
from requests.exceptions import RequestException

from .credential_store import CredentialStore
from .exceptions import (
    SpotifyAPIError,
    SpotifyAuthError,
    SpotifyDecodeError,
    SpotifyMissingTokenError,
)
from .models import FriendActivity, decode_items

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URL = "https://open.spotify.com/get_access_token"
DEFAULT_BUDDYLIST_URL = "https://guc-spclient.spotify.com/presence-view/v1/buddylist"

_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/135.0.0.0 Safari/537.36"
    ),
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Origin": "https://open.spotify.com",
    "Referer": "https://open.spotify.com/",
}

# Refresh the web player token slightly before it lapses.
_TOKEN_EXPIRY_SLACK_SECONDS = 30


def generate_totp(
    secret: str,
    for_time: Optional[float] = None,
    digits: int = 6,
    period: int = 30,
) -> str:
    """
    RFC 6238 time-based one-time password (HMAC-SHA1).

    Args:
        secret: Base32-encoded shared secret (padding optional).
        for_time: Unix time in seconds; defaults to now.
        digits: Code length.
        period: Time step in seconds.
    """
    if for_time is None:
        for_time = time.time()

    normalized = secret.replace(" ", "").upper()
    normalized += "=" * (-len(normalized) % 8)
    try:
        key = base64.b32decode(normalized)
    except (ValueError, TypeError) as e:
        raise ValueError(f"TOTP secret is not valid base32: {e}")

    counter = int(for_time // period)
    digest = hmac.new(key, struct.pack(">Q", counter), hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    code = struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF
    return str(code % (10 ** digits)).zfill(digits)


class FriendActivityClient:
    """
    Fetches what the user's friends are listening to.

    Example:
        client = FriendActivityClient(
            store,
            code_generator=lambda now: generate_totp(secret, now),
        )
        for activity in client.get_friend_activity():
            print(activity.user.name, activity.track.name)
    """

    def __init__(
        self,
        store: CredentialStore,
        code_generator: Optional[Callable[[float], str]] = None,
        token_url: str = DEFAULT_TOKEN_URL,
        buddylist_url: str = DEFAULT_BUDDYLIST_URL,
        totp_version: int = 5,
        timeout: float = 30,
    ):
        self._store = store
        self._code_generator = code_generator
        self._token_url = token_url
        self._buddylist_url = buddylist_url
        self._totp_version = totp_version
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(_BROWSER_HEADERS)
        self._lock = threading.Lock()

        self._web_token: Optional[str] = None
        self._web_token_expires_at: float = 0.0

    @property
    def is_configured(self) -> bool:
        return self._code_generator is not None

    def clear_cached_token(self) -> None:
        with self._lock:
            self._web_token = None
            self._web_token_expires_at = 0.0

    def close(self) -> None:
        self._session.close()

    # -----------------------------------------------------------------
    # Web player token
    # -----------------------------------------------------------------

    def _get_web_player_token(self) -> str:
        with self._lock:
            if self._web_token and self._web_token_expires_at > time.time():
                return self._web_token

            cookie = self._store.get_web_player_cookie()
            if not cookie:
                raise SpotifyMissingTokenError(
                    "No web player cookie stored; friend activity unavailable"
                )
            if self._code_generator is None:
                raise SpotifyAuthError(
                    "Friend activity is not configured (no one-time code secret)"
                )

            now = time.time()
            code = self._code_generator(now)
            params = {
                "reason": "init",
                "productType": "web-player",
                "totp": code,
                "totpServer": code,
                "totpVer": self._totp_version,
                "sTime": int(now),
                "cTime": int(now * 1000),
            }

            try:
                response = self._session.get(
                    self._token_url,
                    params=params,
                    cookies={"sp_dc": cookie},
                    timeout=self._timeout,
                )
            except RequestException as e:
                logger.error("Web player token request failed: %s", e)
                raise SpotifyAPIError(f"Network error: {e}")

            if response.status_code != 200:
                logger.warning(
                    "Web player token request returned %d", response.status_code
                )
                raise SpotifyAuthError(
                    f"Web player token request failed ({response.status_code})"
                )

            try:
                data = response.json()
                token = data["accessToken"]
                expires_ms = int(data["accessTokenExpirationTimestampMs"])
            except (ValueError, KeyError, TypeError) as e:
                raise SpotifyDecodeError(f"Unexpected web player token response: {e}")

            if data.get("isAnonymous"):
                raise SpotifyAuthError(
                    "Web player cookie was rejected (anonymous token issued)"
                )

            self._web_token = token
            self._web_token_expires_at = (
                expires_ms / 1000.0 - _TOKEN_EXPIRY_SLACK_SECONDS
            )
            logger.info("Obtained web player token")
            return token

    # -----------------------------------------------------------------
    # Buddy list
    # -----------------------------------------------------------------

    def get_friend_activity(self) -> List[FriendActivity]:
        """
        Fetch the buddy list, newest activity first.

        Raises:
            SpotifyMissingTokenError: If no web player cookie is stored.
            SpotifyAuthError: If the cookie or code was rejected.
            SpotifyAPIError: On network failure or an error status.
            SpotifyDecodeError: If the response has an unexpected shape.
        """
        token = self._get_web_player_token()

        try:
            response = self._session.get(
                self._buddylist_url,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
        except RequestException as e:
            logger.error("Buddy list request failed: %s", e)
            raise SpotifyAPIError(f"Network error: {e}")

        if response.status_code == 401:
            self.clear_cached_token()
            raise SpotifyAuthError("Web player token rejected by buddy list")
        if response.status_code != 200:
            raise SpotifyAPIError(
                f"Buddy list request failed ({response.status_code})",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SpotifyDecodeError(f"Invalid JSON from buddy list: {e}")

        friends = decode_items(FriendActivity, data, items_key="friends")
        friends.sort(key=lambda activity: activity.timestamp, reverse=True)
        logger.debug("Retrieved activity for %d friends", len(friends))
        return friends
