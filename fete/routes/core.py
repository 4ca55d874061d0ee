"""
Core routes: status, health check, authentication.
"""

import logging
import secrets
from datetime import datetime, timezone

from flask import jsonify, redirect, request, session, url_for

from fete import get_listening_session
from fete.routes import main, is_authenticated, json_error, json_success
from fete.spotify import SpotifyAuthError

logger = logging.getLogger(__name__)

OAUTH_STATE_KEY = "oauth_state"


# =============================================================================
# Public Routes
# =============================================================================


@main.route("/")
def index():
    """Session status; the client decides between login and feed."""
    return jsonify({
        "authenticated": is_authenticated(),
        "login_url": url_for("main.login"),
    })


@main.route("/health")
def health():
    """Health check endpoint for monitoring."""
    return (
        jsonify({
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }),
        200,
    )


# =============================================================================
# Authentication Routes
# =============================================================================


@main.route("/login")
def login():
    """Initiate Spotify OAuth flow."""
    state = secrets.token_urlsafe(16)
    session[OAUTH_STATE_KEY] = state

    auth_url = get_listening_session().auth_manager.get_auth_url(state=state)
    logger.debug("Redirecting to Spotify auth: %s", auth_url)
    return redirect(auth_url)


@main.route("/callback")
def callback():
    """Handle OAuth callback from Spotify."""
    logger.debug("Callback received with args: %s", sorted(request.args.keys()))

    expected_state = session.pop(OAUTH_STATE_KEY, None)
    if not expected_state or request.args.get("state") != expected_state:
        logger.error("OAuth state mismatch")
        return json_error("Login expired. Please try again.", 400)

    error = request.args.get("error")
    if error:
        logger.error("OAuth error: %s", error)
        return json_error(
            f"OAuth Error: "
            f"{request.args.get('error_description', error)}",
            400,
        )

    code = request.args.get("code")
    if not code:
        logger.error("No authorization code in callback")
        return json_error(
            "No authorization code received from Spotify. "
            "Please try again.",
            400,
        )

    try:
        get_listening_session().token_manager.login(code)
    except SpotifyAuthError as e:
        logger.error("Error during OAuth callback: %s", e)
        return json_error(
            "Error completing authentication. Please try again.", 401
        )

    logger.info("User signed in")
    return redirect(url_for("main.index"))


@main.route("/logout", methods=["POST"])
def logout():
    """Sign out and forget every stored credential."""
    get_listening_session().token_manager.sign_out()
    session.clear()
    logger.info("User signed out")
    return json_success("Signed out.")
