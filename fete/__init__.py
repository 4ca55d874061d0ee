import atexit
import os
import logging
from typing import Optional

from flask import Flask, current_app

from config import config, validate_required_env_vars, REQUIRED_ENV_VARS

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

EXTENSION_KEY = "fete"


def get_listening_session(app: Optional[Flask] = None):
    """
    Get the ListeningSession wired up for this app.

    Args:
        app: Flask app; defaults to ``current_app``.
    """
    app = app or current_app
    return app.extensions[EXTENSION_KEY]


def create_app(config_name=None, store=None, config_overrides=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Key into ``config.config``; defaults to FLASK_ENV.
        store: Optional CredentialStore, overriding CREDENTIAL_STORE_PATH.
        config_overrides: Optional mapping applied on top of the config
            class before any service is built.
    """
    if config_name is None:
        config_name = os.getenv("FLASK_ENV", "production")

    if not isinstance(config_name, str) or config_name not in config:
        config_name = "production"

    logger.info("Creating app with config: %s", config_name)

    # The session cannot be wired without OAuth credentials, so this is
    # fatal in every mode.
    try:
        validate_required_env_vars()
        logger.info("Environment validation passed")
    except ValueError as e:
        logger.error("Environment validation failed: %s", str(e))
        raise

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    # Config class attributes are read at import time; pick up variables
    # set since then.
    for name in REQUIRED_ENV_VARS:
        if not app.config.get(name):
            app.config[name] = os.getenv(name)
    if config_overrides:
        app.config.update(config_overrides)

    if app.debug:
        logging.getLogger("fete").setLevel(logging.DEBUG)

    logger.info("SPOTIFY_REDIRECT_URI: %s", app.config.get("SPOTIFY_REDIRECT_URI"))

    from fete.services import build_listening_session

    session = build_listening_session(app.config, store=store)
    app.extensions[EXTENSION_KEY] = session
    atexit.register(session.close)
    logger.info(
        "Listening session ready (authenticated=%s)",
        session.token_manager.is_authenticated,
    )

    from fete.routes import main as main_blueprint

    app.register_blueprint(main_blueprint)

    from fete.error_handlers import register_error_handlers

    register_error_handlers(app)

    return app
