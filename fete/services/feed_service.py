"""
Listening activity feed with paged collections.

Three collections (recently played, top tracks, top artists) page
independently. Each keeps its own cursor, a busy flag so that at most one
"load more" per collection is in flight, and an exhaustion flag that an
empty page sets until the collection is reset.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from fete.enums import AuthEvent, CollectionName, FeedEvent, TimeRange
from fete.spotify.api import SpotifyActivityAPI
from fete.spotify.exceptions import (
    SpotifyAuthError,
    SpotifyDecodeError,
    SpotifyError,
    SpotifyRequestCancelled,
)
from fete.spotify.friends import FriendActivityClient
from fete.spotify.models import FriendActivity, UserProfile, to_json
from fete.spotify.token_manager import TokenManager

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

FeedListener = Callable[[FeedEvent, Optional[CollectionName]], None]


class FeedError(Exception):
    """A feed operation failed. ``message`` is safe to show to the user."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class FeedLoadError(FeedError):
    """One or more collections failed during the initial load."""

    def __init__(self, errors: Dict[CollectionName, FeedError]):
        names = ", ".join(sorted(str(name) for name in errors))
        super().__init__(f"Couldn't load your activity ({names}). Please retry.")
        self.errors = errors


def user_message(error: Exception) -> str:
    """Human-readable message for a failure."""
    if isinstance(error, SpotifyAuthError):
        return "You're signed out. Please log in again."
    if isinstance(error, SpotifyDecodeError):
        return "Spotify sent data we couldn't read. Please retry."
    return "Couldn't reach Spotify. Please retry."


def to_feed_error(error: Exception, action: str) -> FeedError:
    """Wrap a lower-level failure in a FeedError."""
    logger.error("Failed to %s: %s", action, error)
    return FeedError(user_message(error), cause=error)


class PagedCollection:
    """
    One paged list of items.

    Subclasses provide ``_fetch_page`` and ``_advance_cursor``.
    """

    def __init__(
        self,
        name: CollectionName,
        page_size: int = DEFAULT_PAGE_SIZE,
        on_event: Optional[FeedListener] = None,
    ):
        self.name = name
        self.page_size = page_size
        self._on_event = on_event
        self._guard = threading.Lock()
        self._items: List[Any] = []
        self._cursor: Any = None
        self._has_more = True
        self._busy = False
        self._generation = 0
        self.reset(notify=False)

    @property
    def items(self) -> List[Any]:
        return list(self._items)

    @property
    def cursor(self) -> Any:
        return self._cursor

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def is_loading(self) -> bool:
        return self._busy

    def _initial_cursor(self) -> Any:
        return None

    def _fetch_page(self, cursor: Any, limit: int) -> List[Any]:
        raise NotImplementedError

    def _advance_cursor(self, cursor: Any, page: List[Any]) -> Any:
        raise NotImplementedError

    def _emit(self, event: FeedEvent) -> None:
        if self._on_event:
            self._on_event(event, self.name)

    def reset(self, notify: bool = True) -> None:
        """Clear items and cursor; paging starts over on the next load."""
        with self._guard:
            self._items = []
            self._cursor = self._initial_cursor()
            self._has_more = True
            self._generation += 1
        if notify:
            self._emit(FeedEvent.RESET)

    def load_more(self) -> int:
        """
        Fetch the next page and append it.

        Returns:
            Number of items appended. 0 without a request when a load is
            already running or the collection is exhausted.

        Raises:
            FeedError: If the fetch failed. Items and cursor are unchanged.
        """
        with self._guard:
            if self._busy or not self._has_more:
                return 0
            self._busy = True
            cursor = self._cursor
            generation = self._generation

        self._emit(FeedEvent.LOADING)
        try:
            logger.debug("Loading %s from cursor %s", self.name, cursor)
            page = self._fetch_page(cursor, self.page_size)
        except SpotifyRequestCancelled:
            logger.info("Load of %s cancelled", self.name)
            return 0
        except SpotifyError as e:
            error = to_feed_error(e, f"load {self.name}")
            self._emit(FeedEvent.FAILED)
            raise error from e
        else:
            with self._guard:
                # A reset while the request was in flight discards its page.
                if generation != self._generation:
                    return 0
                if not page:
                    self._has_more = False
                else:
                    self._items.extend(page)
                    self._cursor = self._advance_cursor(cursor, page)
                self._busy = False
        finally:
            with self._guard:
                self._busy = False

        if not page:
            logger.info("No more %s available", self.name)
            self._emit(FeedEvent.EXHAUSTED)
            return 0

        logger.info("Loaded %d more %s", len(page), self.name)
        self._emit(FeedEvent.UPDATED)
        return len(page)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": str(self.name),
            "items": [to_json(item) for item in self._items],
            "cursor": self._cursor,
            "has_more": self._has_more,
            "is_loading": self._busy,
        }


class OffsetCollection(PagedCollection):
    """Paged by numeric offset, advanced by the number of items returned."""

    def __init__(
        self,
        name: CollectionName,
        fetch: Callable[[int, int], List[Any]],
        page_size: int = DEFAULT_PAGE_SIZE,
        on_event: Optional[FeedListener] = None,
    ):
        self._fetch = fetch
        super().__init__(name, page_size=page_size, on_event=on_event)

    def _initial_cursor(self) -> int:
        return 0

    def _fetch_page(self, cursor: int, limit: int) -> List[Any]:
        return self._fetch(limit, cursor)

    def _advance_cursor(self, cursor: int, page: List[Any]) -> int:
        return cursor + len(page)


class TimestampCollection(PagedCollection):
    """
    Paged by timestamp: each page asks for plays before the oldest one
    already held. The first page asks for plays before "now".
    """

    def __init__(
        self,
        name: CollectionName,
        fetch: Callable[[int, int], List[Any]],
        timestamp_of: Callable[[Any], int],
        page_size: int = DEFAULT_PAGE_SIZE,
        on_event: Optional[FeedListener] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._fetch = fetch
        self._timestamp_of = timestamp_of
        self._clock = clock
        super().__init__(name, page_size=page_size, on_event=on_event)

    def _fetch_page(self, cursor: Optional[int], limit: int) -> List[Any]:
        before = cursor if cursor is not None else int(self._clock() * 1000)
        return self._fetch(limit, before)

    def _advance_cursor(self, cursor: Optional[int], page: List[Any]) -> int:
        return self._timestamp_of(page[-1])


class FeedService:
    """
    The listening activity feed for one session.

    Example:
        feed = FeedService(api, token_manager, friends=friend_client)
        feed.add_listener(on_feed_event)

        feed.load_initial()
        feed.load_more(CollectionName.TOP_TRACKS)
        feed.refresh(CollectionName.RECENTLY_PLAYED)
    """

    def __init__(
        self,
        api: SpotifyActivityAPI,
        token_manager: TokenManager,
        friends: Optional[FriendActivityClient] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        time_range: TimeRange = TimeRange.MEDIUM_TERM,
    ):
        self._api = api
        self._token_manager = token_manager
        self._friends = friends
        self._time_range = TimeRange(time_range)
        self._listeners: List[FeedListener] = []
        self._profile: Optional[UserProfile] = None
        self._last_error: Optional[FeedError] = None

        self._collections: Dict[CollectionName, PagedCollection] = {
            CollectionName.RECENTLY_PLAYED: TimestampCollection(
                CollectionName.RECENTLY_PLAYED,
                fetch=lambda limit, before: api.get_recently_played(
                    limit=limit, before=before
                ),
                timestamp_of=lambda item: item.played_at_ms,
                page_size=page_size,
                on_event=self._notify,
            ),
            CollectionName.TOP_TRACKS: OffsetCollection(
                CollectionName.TOP_TRACKS,
                fetch=lambda limit, offset: api.get_top_tracks(
                    self._time_range, limit=limit, offset=offset
                ),
                page_size=page_size,
                on_event=self._notify,
            ),
            CollectionName.TOP_ARTISTS: OffsetCollection(
                CollectionName.TOP_ARTISTS,
                fetch=lambda limit, offset: api.get_top_artists(
                    self._time_range, limit=limit, offset=offset
                ),
                page_size=page_size,
                on_event=self._notify,
            ),
        }

        token_manager.add_listener(self._on_auth_event)

    # -----------------------------------------------------------------
    # Listeners
    # -----------------------------------------------------------------

    def add_listener(self, listener: FeedListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: FeedListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: FeedEvent, name: Optional[CollectionName] = None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, name)
            except Exception as e:
                logger.warning("Feed listener failed on %s: %s", event, e)

    def _on_auth_event(self, event: AuthEvent, token_info) -> None:
        if event == AuthEvent.SIGNED_OUT:
            self.reset_all()
            if self._friends:
                self._friends.clear_cached_token()

    # -----------------------------------------------------------------
    # Collections
    # -----------------------------------------------------------------

    @property
    def time_range(self) -> TimeRange:
        return self._time_range

    @property
    def profile(self) -> Optional[UserProfile]:
        return self._profile

    @property
    def last_error(self) -> Optional[FeedError]:
        return self._last_error

    def collection(self, name) -> PagedCollection:
        """
        Look up a collection by name.

        Raises:
            KeyError: If ``name`` is not a collection.
        """
        try:
            return self._collections[CollectionName(name)]
        except ValueError:
            raise KeyError(f"Unknown collection: {name}")

    def load_more(self, name) -> int:
        """Load the next page of one collection. See PagedCollection.load_more."""
        try:
            appended = self.collection(name).load_more()
        except FeedError as e:
            self._last_error = e
            raise
        self._last_error = None
        return appended

    def refresh(self, name) -> int:
        """Reset one collection and load its first page."""
        self.collection(name).reset()
        return self.load_more(name)

    def set_time_range(self, time_range) -> None:
        """Change the top items window; top collections start over."""
        time_range = TimeRange(time_range)
        if time_range == self._time_range:
            return
        self._time_range = time_range
        self.collection(CollectionName.TOP_TRACKS).reset()
        self.collection(CollectionName.TOP_ARTISTS).reset()

    def reset_all(self) -> None:
        for collection in self._collections.values():
            collection.reset()
        self._profile = None
        self._last_error = None

    def load_initial(self) -> Dict[CollectionName, int]:
        """
        Reset everything and load the first page of each collection.

        The three first pages and the profile are fetched concurrently;
        this returns once all of them finished. Collections that loaded
        keep their items even when another one failed.

        Returns:
            Items appended per collection.

        Raises:
            FeedLoadError: If any collection failed.
        """
        for collection in self._collections.values():
            collection.reset(notify=False)
        self._last_error = None

        results: Dict[CollectionName, int] = {}
        errors: Dict[CollectionName, FeedError] = {}

        with ThreadPoolExecutor(max_workers=len(self._collections) + 1) as executor:
            profile_future = executor.submit(self._fetch_profile_quietly)
            futures = {
                name: executor.submit(collection.load_more)
                for name, collection in self._collections.items()
            }
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except FeedError as e:
                    errors[name] = e
            profile_future.result()

        if errors:
            error = FeedLoadError(errors)
            self._last_error = error
            logger.error("Initial load failed for: %s", ", ".join(map(str, errors)))
            raise error

        logger.info("Initial feed load complete: %s", {str(k): v for k, v in results.items()})
        self._notify(FeedEvent.READY)
        return results

    # -----------------------------------------------------------------
    # Profile and friends
    # -----------------------------------------------------------------

    def _fetch_profile_quietly(self) -> None:
        # The profile is decoration: its failure never fails the feed.
        try:
            self._profile = self._api.get_current_user()
        except SpotifyError as e:
            logger.warning("Error fetching user profile: %s", e)

    def get_profile(self, refresh: bool = False) -> UserProfile:
        """
        Return the user's profile, fetching it if not yet known.

        Raises:
            FeedError: If the fetch failed.
        """
        if self._profile is None or refresh:
            try:
                self._profile = self._api.get_current_user()
            except SpotifyError as e:
                raise to_feed_error(e, "fetch user profile") from e
        return self._profile

    def get_friend_activity(self) -> List[FriendActivity]:
        """
        Fetch friends' recent listening.

        Raises:
            FeedError: If friend activity is unavailable or failed.
        """
        if self._friends is None or not self._friends.is_configured:
            raise FeedError("Friend activity isn't set up.")
        try:
            return self._friends.get_friend_activity()
        except SpotifyError as e:
            raise to_feed_error(e, "fetch friend activity") from e

    def snapshot(self) -> Dict[str, Any]:
        """JSON-ready view of the whole feed."""
        return {
            "authenticated": self._token_manager.is_authenticated,
            "time_range": str(self._time_range),
            "profile": to_json(self._profile) if self._profile else None,
            "error": self._last_error.message if self._last_error else None,
            "collections": {
                str(name): collection.to_dict()
                for name, collection in self._collections.items()
            },
        }
