"""
fete services package.

Usage:
    from fete.services import FeedService, FeedError, FeedLoadError

    feed = FeedService(api, token_manager)
    feed.load_initial()
"""

from fete.services.feed_service import (
    FeedService,
    FeedError,
    FeedLoadError,
    PagedCollection,
    OffsetCollection,
    TimestampCollection,
    DEFAULT_PAGE_SIZE,
    user_message,
)

from fete.services.listening_session import (
    ListeningSession,
    build_listening_session,
    cancel_on_sign_out,
    build_credential_store,
)

__all__ = [
    "ListeningSession",
    "build_listening_session",
    "cancel_on_sign_out",
    "build_credential_store",
    "FeedService",
    "FeedError",
    "FeedLoadError",
    "PagedCollection",
    "OffsetCollection",
    "TimestampCollection",
    "DEFAULT_PAGE_SIZE",
    "user_message",
]
