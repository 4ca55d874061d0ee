"""
Spotify integration for fete.

Architecture:
    - credentials.py: SpotifyCredentials for config/DI
    - auth.py: SpotifyAuthManager for stateless OAuth operations, TokenInfo
    - credential_store.py: local persistence for tokens and the web player cookie
    - token_manager.py: TokenManager, the session's token lifecycle
    - http_client.py: SpotifyHTTPClient, bearer-authorized requests
    - api.py: SpotifyActivityAPI for profile, history and top items
    - friends.py: FriendActivityClient for the web player buddy list
    - models.py: immutable value records
    - exceptions.py: Exception hierarchy

Usage:
    from fete.spotify import (
        SpotifyCredentials,
        SpotifyAuthManager,
        EncryptedFileCredentialStore,
        TokenManager,
        SpotifyHTTPClient,
        SpotifyActivityAPI,
    )

    credentials = SpotifyCredentials.from_flask_config(app.config)
    store = EncryptedFileCredentialStore(path, app.config['SECRET_KEY'])
    token_manager = TokenManager(SpotifyAuthManager(credentials), store)

    api = SpotifyActivityAPI(SpotifyHTTPClient(token_manager.get_valid_token))
    profile = api.get_current_user()
"""

from .credentials import SpotifyCredentials

from .auth import (
    SpotifyAuthManager,
    TokenInfo,
    DEFAULT_SCOPES,
)

from .credential_store import (
    CredentialStore,
    CredentialStoreError,
    MemoryCredentialStore,
    EncryptedFileCredentialStore,
)

from .token_manager import TokenManager, REFRESH_MARGIN_SECONDS

from .http_client import SpotifyHTTPClient

from .api import SpotifyActivityAPI

from .friends import FriendActivityClient, generate_totp

from .exceptions import (
    SpotifyError,
    SpotifyAuthError,
    SpotifyTokenError,
    SpotifyTokenExpiredError,
    SpotifyMissingTokenError,
    SpotifyUnauthenticatedError,
    SpotifyAPIError,
    SpotifyRateLimitError,
    SpotifyNotFoundError,
    SpotifyDecodeError,
    SpotifyRequestCancelled,
)


__all__ = [
    # Credentials
    'SpotifyCredentials',

    # Auth
    'SpotifyAuthManager',
    'TokenInfo',
    'DEFAULT_SCOPES',

    # Persistence
    'CredentialStore',
    'CredentialStoreError',
    'MemoryCredentialStore',
    'EncryptedFileCredentialStore',

    # Token lifecycle
    'TokenManager',
    'REFRESH_MARGIN_SECONDS',

    # HTTP / API
    'SpotifyHTTPClient',
    'SpotifyActivityAPI',
    'FriendActivityClient',
    'generate_totp',

    # Exceptions
    'SpotifyError',
    'SpotifyAuthError',
    'SpotifyTokenError',
    'SpotifyTokenExpiredError',
    'SpotifyMissingTokenError',
    'SpotifyUnauthenticatedError',
    'SpotifyAPIError',
    'SpotifyRateLimitError',
    'SpotifyNotFoundError',
    'SpotifyDecodeError',
    'SpotifyRequestCancelled',
]
