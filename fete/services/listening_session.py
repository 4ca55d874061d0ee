"""
Wiring for the single listening session the app serves.

Builds the credential store, token manager, API clients and feed from a
Flask-style config mapping. Everything is constructed explicitly and
handed to its dependents; nothing is a module-level singleton.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from fete.enums import AuthEvent, TimeRange
from fete.services.feed_service import DEFAULT_PAGE_SIZE, FeedService
from fete.spotify import (
    CredentialStore,
    EncryptedFileCredentialStore,
    FriendActivityClient,
    MemoryCredentialStore,
    SpotifyActivityAPI,
    SpotifyAuthManager,
    SpotifyCredentials,
    SpotifyHTTPClient,
    TokenManager,
    generate_totp,
)
from fete.spotify.friends import DEFAULT_BUDDYLIST_URL, DEFAULT_TOKEN_URL

logger = logging.getLogger(__name__)


@dataclass
class ListeningSession:
    """Every collaborator of the session, already wired together."""

    auth_manager: SpotifyAuthManager
    token_manager: TokenManager
    http_client: SpotifyHTTPClient
    api: SpotifyActivityAPI
    friends: FriendActivityClient
    feed: FeedService

    @property
    def store(self) -> CredentialStore:
        return self.token_manager.store

    def close(self) -> None:
        """Discard in-flight results and release HTTP sessions."""
        self.http_client.cancel()
        self.http_client.close()
        self.friends.close()


def cancel_on_sign_out(http_client: SpotifyHTTPClient):
    """
    Auth listener tying outstanding API requests to the session.

    Signing out cancels whatever is in flight, so pages fetched for the
    old session are dropped; signing in again re-arms the client.
    """
    def on_auth_event(event: AuthEvent, token_info) -> None:
        if event == AuthEvent.SIGNED_OUT:
            http_client.cancel()
        elif event == AuthEvent.SIGNED_IN:
            http_client.reset_cancel()

    return on_auth_event


def build_credential_store(config: Mapping[str, Any]) -> CredentialStore:
    """Encrypted file store when a path is configured, memory otherwise."""
    path = config.get("CREDENTIAL_STORE_PATH")
    if not path:
        logger.warning(
            "CREDENTIAL_STORE_PATH not configured. "
            "Credentials will not survive a restart."
        )
        return MemoryCredentialStore()
    logger.info("Using encrypted credential store at %s", path)
    return EncryptedFileCredentialStore(path, config["SECRET_KEY"])


def build_listening_session(
    config: Mapping[str, Any],
    store: Optional[CredentialStore] = None,
) -> ListeningSession:
    """
    Construct a ListeningSession from configuration.

    Raises:
        ValueError: If Spotify OAuth credentials are missing.
    """
    credentials = SpotifyCredentials.from_flask_config(config)
    timeout = config.get("HTTP_TIMEOUT", 30)

    if store is None:
        store = build_credential_store(config)

    auth_manager = SpotifyAuthManager(credentials, timeout=timeout)
    token_manager = TokenManager(auth_manager, store)
    http_client = SpotifyHTTPClient(token_manager.get_valid_token, timeout=timeout)
    token_manager.add_listener(cancel_on_sign_out(http_client))
    api = SpotifyActivityAPI(http_client)

    secret = config.get("WEB_PLAYER_TOTP_SECRET")
    friends = FriendActivityClient(
        store,
        code_generator=(lambda now: generate_totp(secret, now)) if secret else None,
        token_url=config.get("WEB_PLAYER_TOKEN_URL") or DEFAULT_TOKEN_URL,
        buddylist_url=config.get("WEB_PLAYER_BUDDYLIST_URL") or DEFAULT_BUDDYLIST_URL,
        totp_version=config.get("WEB_PLAYER_TOTP_VERSION", 5),
        timeout=timeout,
    )

    feed = FeedService(
        api,
        token_manager,
        friends=friends,
        page_size=config.get("FEED_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        time_range=config.get("FEED_TIME_RANGE") or TimeRange.MEDIUM_TERM,
    )

    return ListeningSession(
        auth_manager=auth_manager,
        token_manager=token_manager,
        http_client=http_client,
        api=api,
        friends=friends,
        feed=feed,
    )
