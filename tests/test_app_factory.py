"""
Tests for the Flask app factory.

Tests cover config selection, environment validation, and wiring of the
listening session.
"""

import os
from unittest.mock import patch

import pytest

from fete import EXTENSION_KEY, create_app, get_listening_session
from fete.services import ListeningSession
from fete.spotify import EncryptedFileCredentialStore, MemoryCredentialStore


class TestCreateApp:
    """Tests for create_app function."""

    def test_development_config(self):
        app = create_app('development', store=MemoryCredentialStore())
        assert app.config['DEBUG'] is True

    def test_uses_flask_env_default(self):
        with patch.dict(os.environ, {'FLASK_ENV': 'testing'}):
            app = create_app(store=MemoryCredentialStore())
        assert app.config['TESTING'] is True

    def test_unknown_config_falls_back_to_production(self):
        app = create_app('staging', store=MemoryCredentialStore())
        assert app.config['DEBUG'] is False
        assert app.config['SESSION_COOKIE_SECURE'] is True

    def test_missing_env_vars_fatal(self):
        with patch.dict(os.environ, {'SPOTIFY_CLIENT_ID': ''}):
            with pytest.raises(ValueError, match='SPOTIFY_CLIENT_ID'):
                create_app('development')

    def test_config_overrides(self):
        app = create_app(
            'testing',
            store=MemoryCredentialStore(),
            config_overrides={'FEED_PAGE_SIZE': 25},
        )
        feed = get_listening_session(app).feed
        assert feed.collection('top_tracks').page_size == 25

    def test_registers_blueprint_and_handlers(self):
        app = create_app('testing', store=MemoryCredentialStore())
        assert 'main' in app.blueprints
        rules = {rule.rule for rule in app.url_map.iter_rules()}
        assert {'/health', '/login', '/callback', '/logout', '/api/feed'} <= rules


class TestListeningSessionWiring:
    """Tests for the session stored on the app."""

    def test_session_available(self):
        store = MemoryCredentialStore()
        app = create_app('testing', store=store)
        with app.app_context():
            listening = get_listening_session()
        assert isinstance(listening, ListeningSession)
        assert app.extensions[EXTENSION_KEY] is listening
        assert listening.store is store
        assert not listening.token_manager.is_authenticated

    def test_encrypted_store_from_config(self, tmp_path):
        app = create_app(
            'testing',
            config_overrides={'CREDENTIAL_STORE_PATH': str(tmp_path / 'creds.bin')},
        )
        store = get_listening_session(app).store
        assert isinstance(store, EncryptedFileCredentialStore)
        assert store.path == str(tmp_path / 'creds.bin')

    def test_friend_activity_needs_totp_secret(self):
        app = create_app('testing', store=MemoryCredentialStore())
        assert not get_listening_session(app).friends.is_configured

        app = create_app(
            'testing',
            store=MemoryCredentialStore(),
            config_overrides={'WEB_PLAYER_TOTP_SECRET': 'GEZDGNBVGY3TQOJQ'},
        )
        assert get_listening_session(app).friends.is_configured

    def test_restores_signed_in_session(self, signed_in_store):
        app = create_app('testing', store=signed_in_store)
        assert get_listening_session(app).token_manager.is_authenticated
