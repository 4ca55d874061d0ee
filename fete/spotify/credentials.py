"""
OAuth client credentials of the registered Spotify application.
"""

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional, Tuple

_CONFIG_KEYS = {
    "client_id": "SPOTIFY_CLIENT_ID",
    "client_secret": "SPOTIFY_CLIENT_SECRET",
    "redirect_uri": "SPOTIFY_REDIRECT_URI",
}


@dataclass(frozen=True)
class SpotifyCredentials:
    """
    Client id, client secret and the redirect URI registered with Spotify.

    Immutable and validated on creation, so an auth manager never holds
    half-configured credentials.

    Example:
        credentials = SpotifyCredentials.from_flask_config(app.config)
    """

    client_id: str
    client_secret: str
    redirect_uri: str

    def __post_init__(self):
        for f in fields(self):
            if not getattr(self, f.name):
                raise ValueError(f"{f.name} is required")

    @property
    def basic_auth(self) -> Tuple[str, str]:
        """(client_id, client_secret) for HTTP basic auth on the token endpoint."""
        return (self.client_id, self.client_secret)

    @classmethod
    def _from_lookup(cls, lookup) -> "SpotifyCredentials":
        return cls(**{name: lookup(key) or "" for name, key in _CONFIG_KEYS.items()})

    @classmethod
    def from_flask_config(cls, config: Mapping[str, Optional[str]]) -> "SpotifyCredentials":
        """
        Read SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET and
        SPOTIFY_REDIRECT_URI from a Flask config.

        Raises:
            ValueError: If any of them is missing or empty.
        """
        return cls._from_lookup(config.get)

    @classmethod
    def from_env(cls) -> "SpotifyCredentials":
        """Same as from_flask_config, reading the environment."""
        return cls._from_lookup(os.getenv)
