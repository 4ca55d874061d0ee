"""
Feed routes: listening activity collections, profile, friends.
"""

import logging

from flask import request

from fete.routes import main, require_auth, json_error, json_success, validate_json
from fete.schemas import FeedQueryParams, WebPlayerCookieRequest
from fete.spotify.models import to_json

logger = logging.getLogger(__name__)


def _apply_time_range(feed, args) -> None:
    """Switch the top items window when the request names one."""
    if "time_range" not in args:
        return
    params = FeedQueryParams(**args.to_dict())
    feed.set_time_range(params.time_range)


def _collection_or_404(feed, name):
    try:
        return feed.collection(name), None
    except KeyError:
        return None, json_error(f"Unknown collection: {name}", 404)


# =============================================================================
# Profile
# =============================================================================


@main.route("/api/me")
@require_auth
def me(listening=None):
    """The signed-in user's profile."""
    profile = listening.feed.get_profile()
    return json_success("Profile loaded.", profile=to_json(profile))


# =============================================================================
# Feed
# =============================================================================


@main.route("/api/feed")
@require_auth
def feed_snapshot(listening=None):
    """Everything loaded so far."""
    return json_success("Feed loaded.", feed=listening.feed.snapshot())


@main.route("/api/feed/load", methods=["POST"])
@require_auth
def feed_load(listening=None):
    """Start over: first page of every collection, fetched concurrently."""
    feed = listening.feed
    _apply_time_range(feed, request.args)
    counts = feed.load_initial()
    logger.info("Initial load served: %s", {str(k): v for k, v in counts.items()})
    return json_success(
        "Feed loaded.",
        loaded={str(name): count for name, count in counts.items()},
        feed=feed.snapshot(),
    )


@main.route("/api/feed/<collection_name>")
@require_auth
def feed_collection(collection_name, listening=None):
    """One collection's items and paging state."""
    collection, err = _collection_or_404(listening.feed, collection_name)
    if err:
        return err
    return json_success("Collection loaded.", collection=collection.to_dict())


@main.route("/api/feed/<collection_name>/more", methods=["POST"])
@require_auth
def feed_load_more(collection_name, listening=None):
    """Append the next page of one collection."""
    feed = listening.feed
    collection, err = _collection_or_404(feed, collection_name)
    if err:
        return err

    appended = feed.load_more(collection.name)
    message = "Loaded more." if appended else "Nothing more to load."
    return json_success(message, appended=appended, collection=collection.to_dict())


@main.route("/api/feed/<collection_name>/refresh", methods=["POST"])
@require_auth
def feed_refresh(collection_name, listening=None):
    """Reset one collection and load its first page again."""
    feed = listening.feed
    collection, err = _collection_or_404(feed, collection_name)
    if err:
        return err

    _apply_time_range(feed, request.args)
    appended = feed.refresh(collection.name)
    return json_success("Refreshed.", appended=appended, collection=collection.to_dict())


# =============================================================================
# Playback and playlists
# =============================================================================


@main.route("/api/now-playing")
@require_auth
def now_playing(listening=None):
    """What the user is playing right now, if anything."""
    current = listening.api.get_currently_playing()
    return json_success(
        "Playback state loaded.",
        now_playing=to_json(current) if current else None,
    )


@main.route("/api/playlists")
@require_auth
def playlists(listening=None):
    """The user's playlists."""
    items = listening.api.get_user_playlists()
    return json_success(
        "Playlists loaded.",
        playlists=[to_json(playlist) for playlist in items],
    )


# =============================================================================
# Friends
# =============================================================================


@main.route("/api/friends")
@require_auth
def friends(listening=None):
    """Friends' recent listening from the web player buddy list."""
    if not listening.friends.is_configured:
        return json_error("Friend activity isn't set up.", 409)
    if not listening.store.get_web_player_cookie():
        return json_error("Save your web player cookie first.", 409)

    activity = listening.feed.get_friend_activity()
    return json_success(
        "Friend activity loaded.",
        friends=[to_json(item) for item in activity],
    )


@main.route("/api/session/cookie", methods=["POST"])
@require_auth
def save_web_player_cookie(listening=None):
    """Store the web player ``sp_dc`` cookie used for friend activity."""
    parsed, err = validate_json(WebPlayerCookieRequest)
    if err:
        return err

    listening.store.save_web_player_cookie(parsed.sp_dc)
    listening.friends.clear_cached_token()
    logger.info("Web player cookie updated")
    return json_success("Web player cookie saved.")
