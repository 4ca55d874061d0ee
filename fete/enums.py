"""
Enums for time ranges, feed collections and session events.

Single source of truth for string constants used across the Spotify
client, services, schemas and routes.
"""

from enum import StrEnum


class TimeRange(StrEnum):
    """Affinity windows accepted by the top tracks/artists endpoints."""
    SHORT_TERM = "short_term"    # ~4 weeks
    MEDIUM_TERM = "medium_term"  # ~6 months
    LONG_TERM = "long_term"      # all time


class CollectionName(StrEnum):
    """The three paged collections of the activity feed."""
    RECENTLY_PLAYED = "recently_played"
    TOP_TRACKS = "top_tracks"
    TOP_ARTISTS = "top_artists"


class AuthEvent(StrEnum):
    """Notifications emitted by the token manager."""
    SIGNED_IN = "signed_in"
    REFRESHED = "refreshed"
    SIGNED_OUT = "signed_out"


class FeedEvent(StrEnum):
    """Notifications emitted by the feed service."""
    LOADING = "loading"
    UPDATED = "updated"
    EXHAUSTED = "exhausted"
    FAILED = "failed"
    RESET = "reset"
    READY = "ready"
