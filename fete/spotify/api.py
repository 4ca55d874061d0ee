"""
Spotify Web API listening-activity operations.

Each method issues exactly one request and decodes the response into
value records. Paging decisions (cursors, exhaustion) belong to the
feed service, not here.
"""

import logging
from typing import Any, Dict, List, Optional

from fete.enums import TimeRange

from .exceptions import SpotifyDecodeError
from .http_client import SpotifyHTTPClient
from .models import (
    Artist,
    CurrentlyPlaying,
    PlayHistoryItem,
    Playlist,
    Track,
    UserProfile,
    decode,
    decode_items,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


def _clamp_limit(limit: int) -> int:
    return max(1, min(int(limit), MAX_PAGE_SIZE))


class SpotifyActivityAPI:
    """
    Read-only client for the current user's listening activity.

    Example:
        http = SpotifyHTTPClient(token_manager.get_valid_token)
        api = SpotifyActivityAPI(http)

        profile = api.get_current_user()
        recent = api.get_recently_played(limit=10)
        tracks = api.get_top_tracks(TimeRange.SHORT_TERM, limit=10, offset=0)
    """

    def __init__(self, http_client: SpotifyHTTPClient):
        self._http = http_client

    @property
    def http_client(self) -> SpotifyHTTPClient:
        return self._http

    # =========================================================================
    # User
    # =========================================================================

    def get_current_user(self) -> UserProfile:
        """Fetch the current user's profile (``GET /me``)."""
        data = self._http.get("/me")
        profile = decode(UserProfile, data)
        logger.debug("Retrieved user: %s", profile.display_name or profile.id)
        return profile

    # =========================================================================
    # Activity
    # =========================================================================

    def get_recently_played(
        self,
        limit: int = 15,
        before: Optional[int] = None,
    ) -> List[PlayHistoryItem]:
        """
        Fetch one page of play history, most recent first.

        Args:
            limit: Page size (1-50).
            before: Unix milliseconds; only plays strictly before it are
                returned. None means "now".

        Returns:
            Play history items, each track tagged with its position in
            this page.
        """
        params: Dict[str, Any] = {"limit": _clamp_limit(limit)}
        if before is not None:
            params["before"] = int(before)

        data = self._http.get("/me/player/recently-played", params=params)
        items = decode_items(PlayHistoryItem, data)
        items = [
            item.model_copy(
                update={"track": item.track.model_copy(update={"position": index})}
            )
            for index, item in enumerate(items)
        ]
        logger.debug("Retrieved %d recently played items", len(items))
        return items

    def get_top_tracks(
        self,
        time_range: TimeRange = TimeRange.MEDIUM_TERM,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Track]:
        """Fetch one page of the user's top tracks."""
        data = self._http.get(
            "/me/top/tracks",
            params=self._top_params(time_range, limit, offset),
        )
        tracks = decode_items(Track, data)
        logger.debug(
            "Retrieved %d top tracks at offset %d (total %s)",
            len(tracks), offset, data.get("total"),
        )
        return tracks

    def get_top_artists(
        self,
        time_range: TimeRange = TimeRange.MEDIUM_TERM,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Artist]:
        """Fetch one page of the user's top artists."""
        data = self._http.get(
            "/me/top/artists",
            params=self._top_params(time_range, limit, offset),
        )
        artists = decode_items(Artist, data)
        logger.debug(
            "Retrieved %d top artists at offset %d (total %s)",
            len(artists), offset, data.get("total"),
        )
        return artists

    @staticmethod
    def _top_params(time_range: TimeRange, limit: int, offset: int) -> Dict[str, Any]:
        return {
            "time_range": TimeRange(time_range).value,
            "limit": _clamp_limit(limit),
            "offset": max(0, int(offset)),
        }

    # =========================================================================
    # Playback and library
    # =========================================================================

    def get_currently_playing(self) -> Optional[CurrentlyPlaying]:
        """
        Fetch what the user is playing right now.

        Returns:
            None when nothing is playing (204). Episodes and ads are
            returned without an ``item``.
        """
        data = self._http.get("/me/player/currently-playing")
        if data is None:
            return None
        if not isinstance(data, dict):
            raise SpotifyDecodeError("Expected an object for currently playing")

        if data.get("currently_playing_type", "track") != "track":
            data = {**data, "item": None}
        return decode(CurrentlyPlaying, data)

    def get_user_playlists(self, limit: int = 50, offset: int = 0) -> List[Playlist]:
        """Fetch one page of the user's playlists."""
        data = self._http.get(
            "/me/playlists",
            params={"limit": _clamp_limit(limit), "offset": max(0, int(offset))},
        )
        playlists = decode_items(Playlist, data)
        logger.debug("Retrieved %d playlists", len(playlists))
        return playlists
