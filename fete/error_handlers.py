"""
Global Flask error handlers.

Every failure reaches the client as the same JSON shape with a
human-readable message; the client offers a retry.
"""

import logging
from flask import jsonify, request
from pydantic import ValidationError

from fete.services import FeedError, FeedLoadError
from fete.spotify import (
    SpotifyAuthError,
    SpotifyError,
    SpotifyMissingTokenError,
    SpotifyUnauthenticatedError,
)

logger = logging.getLogger(__name__)


def json_error_response(message: str, status_code: int, category: str = "error", **extra):
    """The JSON error envelope every failing request answers with."""
    return (
        jsonify({"success": False, "message": message, "category": category, **extra}),
        status_code,
    )


def register_error_handlers(app):
    """Install app-wide handlers mapping exceptions and HTTP codes to JSON."""

    # =========================================================================
    # Invalid input (400)
    # =========================================================================

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        parts = [
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
            for err in error.errors()
        ]
        message = "; ".join(parts) or "Validation failed"
        logger.warning("Validation error: %s", message)
        return json_error_response(message, 400)

    # =========================================================================
    # Not signed in, or no longer (401)
    # =========================================================================

    @app.errorhandler(SpotifyMissingTokenError)
    def handle_missing_token(error: SpotifyMissingTokenError):
        """Handle requests made without a session."""
        logger.info("Missing token: %s", error)
        return json_error_response("Please log in first.", 401)

    @app.errorhandler(SpotifyUnauthenticatedError)
    def handle_unauthenticated(error: SpotifyUnauthenticatedError):
        """Handle sessions signed out by a failed refresh."""
        logger.warning("Session signed out: %s", error)
        return json_error_response("Session expired. Please log in again.", 401)

    @app.errorhandler(SpotifyAuthError)
    def handle_auth_error(error: SpotifyAuthError):
        """Handle other authentication failures."""
        logger.warning("Authentication error: %s", error)
        return json_error_response("Authentication failed. Please log in again.", 401)

    # =========================================================================
    # Upstream failures (502)
    # =========================================================================

    @app.errorhandler(FeedLoadError)
    def handle_feed_load_error(error: FeedLoadError):
        """Handle a partially failed initial load."""
        logger.error("Feed load error: %s", error)
        return json_error_response(
            error.message,
            502,
            failed=sorted(str(name) for name in error.errors),
        )

    @app.errorhandler(FeedError)
    def handle_feed_error(error: FeedError):
        """Handle feed failures; the message is already user-facing."""
        if isinstance(error.cause, SpotifyAuthError):
            return json_error_response(error.message, 401)
        logger.error("Feed error: %s", error)
        return json_error_response(error.message, 502)

    @app.errorhandler(SpotifyError)
    def handle_spotify_error(error: SpotifyError):
        """Handle Spotify failures not wrapped by a service."""
        logger.error("Spotify error: %s", error)
        return json_error_response("Couldn't reach Spotify. Please retry.", 502)

    # =========================================================================
    # Plain HTTP errors
    # =========================================================================

    @app.errorhandler(400)
    def handle_bad_request(error):
        return json_error_response("Bad request.", 400)

    @app.errorhandler(401)
    def handle_unauthorized(error):
        return json_error_response("Please log in first.", 401)

    @app.errorhandler(404)
    def handle_not_found(error):
        # Non-API paths keep Flask's default page.
        if request.path.startswith("/api/") or request.is_json:
            return json_error_response("Resource not found.", 404)
        return error

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return json_error_response("Method not allowed.", 405)

    @app.errorhandler(500)
    def handle_internal_error(error):
        logger.error("Internal server error: %s", error, exc_info=True)
        return json_error_response("An unexpected error occurred.", 500)

    logger.info("Global error handlers registered")
