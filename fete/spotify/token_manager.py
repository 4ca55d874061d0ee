"""
Token lifecycle for the listening session.

TokenManager owns the current access/refresh token pair. It hands out an
access token that is good for at least REFRESH_MARGIN_SECONDS, refreshing
first when needed, and persists every change through a CredentialStore.
A failed refresh signs the session out.
"""

import logging
import threading
from typing import Callable, List, Optional

from fete.enums import AuthEvent

from .auth import SpotifyAuthManager, TokenInfo
from .credential_store import CredentialStore
from .exceptions import (
    SpotifyError,
    SpotifyMissingTokenError,
    SpotifyUnauthenticatedError,
)

logger = logging.getLogger(__name__)

REFRESH_MARGIN_SECONDS = 300

AuthListener = Callable[[AuthEvent, Optional[TokenInfo]], None]


class TokenManager:
    """
    Holds the session's token and refreshes it ahead of expiry.

    Example:
        manager = TokenManager(auth_manager, store)
        manager.add_listener(on_auth_event)

        manager.login(code)
        access_token = manager.get_valid_token()
        manager.sign_out()
    """

    def __init__(
        self,
        auth_manager: SpotifyAuthManager,
        store: CredentialStore,
        refresh_margin: float = REFRESH_MARGIN_SECONDS,
    ):
        self._auth_manager = auth_manager
        self._store = store
        self._refresh_margin = refresh_margin
        self._listeners: List[AuthListener] = []
        self._lock = threading.Lock()

        self._token_info: Optional[TokenInfo] = store.load_token()
        if self._token_info:
            logger.info("Restored persisted session token")

    @property
    def token_info(self) -> Optional[TokenInfo]:
        return self._token_info

    @property
    def is_authenticated(self) -> bool:
        return self._token_info is not None

    @property
    def store(self) -> CredentialStore:
        return self._store

    # -----------------------------------------------------------------
    # Listeners
    # -----------------------------------------------------------------

    def add_listener(self, listener: AuthListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: AuthListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self._token_info)
            except Exception as e:
                logger.warning("Auth listener failed on %s: %s", event, e)

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    def login(self, code: str) -> TokenInfo:
        """
        Exchange an authorization code and start the session.

        Raises:
            SpotifyAuthError: If the exchange fails.
        """
        token_info = self._auth_manager.exchange_code(code)
        with self._lock:
            self._token_info = token_info
            self._store.save_token(token_info)
        logger.info("Signed in, token expires in %ds", token_info.expires_in_seconds)
        self._notify(AuthEvent.SIGNED_IN)
        return token_info

    def get_valid_token(self) -> str:
        """
        Return an access token valid for at least the refresh margin.

        Performs at most one refresh call. No retry.

        Raises:
            SpotifyMissingTokenError: If there is no session.
            SpotifyUnauthenticatedError: If the refresh failed; the
                session has been signed out.
        """
        with self._lock:
            token_info = self._token_info
            if token_info is None:
                raise SpotifyMissingTokenError("No access token available")

            if not token_info.expires_within(self._refresh_margin):
                return token_info.access_token

            logger.info(
                "Token expires in %ds, refreshing",
                token_info.expires_in_seconds,
            )
            try:
                new_token = self._auth_manager.refresh_token(token_info)
            except SpotifyError as e:
                logger.warning("Token refresh failed, signing out: %s", e)
                # Cleared before the lock is released so waiting callers
                # see no session instead of refreshing again.
                self._token_info = None
                self._store.clear()
                failure = e
            else:
                failure = None
                self._token_info = new_token
                self._store.save_token(new_token)

        if failure is not None:
            logger.info("Signed out")
            self._notify(AuthEvent.SIGNED_OUT)
            raise SpotifyUnauthenticatedError(
                f"Session expired: {failure}"
            ) from failure

        self._notify(AuthEvent.REFRESHED)
        return new_token.access_token

    def sign_out(self) -> None:
        """Forget the token and clear all persisted credentials."""
        with self._lock:
            self._token_info = None
            self._store.clear()
        logger.info("Signed out")
        self._notify(AuthEvent.SIGNED_OUT)
