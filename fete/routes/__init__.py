"""
HTTP surface of fete: one `main` Blueprint, spread over feature modules.

Views translate requests into calls on the app's ListeningSession and
turn the results into JSON. Feature modules import `main` from here.
"""

import functools
import logging

from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from fete import get_listening_session
from fete.error_handlers import json_error_response

logger = logging.getLogger(__name__)
main = Blueprint("main", __name__)


# =============================================================================
# Shared view helpers
# =============================================================================


def is_authenticated() -> bool:
    """Check whether the session holds a Spotify token."""
    return get_listening_session().token_manager.is_authenticated


def require_auth(f):
    """
    Decorator that returns 401 unless the session is signed in.

    Injects ``listening`` (the ListeningSession) as a keyword argument.
    """
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        listening = get_listening_session()
        if not listening.token_manager.is_authenticated:
            return json_error("Please log in first.", 401)
        kwargs["listening"] = listening
        return f(*args, **kwargs)

    return wrapper


def json_error(message: str, status_code: int = 400) -> tuple:
    """Error envelope, same shape as the global error handlers use."""
    return json_error_response(message, status_code)


def json_success(message: str, **extra) -> dict:
    """Success envelope; extra keyword arguments become top-level keys."""
    return jsonify({
        "success": True,
        "message": message,
        "category": "success",
        **extra,
    })


def validate_json(schema_class):
    """
    Validate the JSON body of the current request with a pydantic model.

    Returns a ``(model, error)`` pair where exactly one side is None.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not payload:
        return None, json_error("Request body must be JSON.", 400)

    try:
        return schema_class(**payload), None
    except ValidationError as exc:
        problems = exc.errors()
        detail = problems[0]["msg"] if problems else "Invalid input"
        return None, json_error(f"Validation error: {detail}", 400)


# =============================================================================
# Feature modules register their views on `main` at import time, so they
# are imported last.
# =============================================================================

from fete.routes import (  # noqa: E402, F401
    core,
    feed,
)
