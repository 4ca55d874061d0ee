"""
Pytest configuration and shared fixtures for fete tests.

This module provides common fixtures used across all test modules,
including sample Spotify payloads, credential stores, and Flask app
contexts.
"""

import os
import time
from datetime import datetime, timedelta, timezone

import pytest

# config.py reads these at import time.
os.environ.setdefault('SPOTIFY_CLIENT_ID', 'test_client_id')
os.environ.setdefault('SPOTIFY_CLIENT_SECRET', 'test_client_secret')
os.environ.setdefault('SPOTIFY_REDIRECT_URI', 'http://localhost:8000/callback')
os.environ.setdefault('SECRET_KEY', 'test-secret-key-for-testing')


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def sample_token():
    """A valid Spotify OAuth token."""
    return {
        'access_token': 'test_access_token_12345',
        'token_type': 'Bearer',
        'expires_in': 3600,
        'expires_at': time.time() + 3600,
        'refresh_token': 'test_refresh_token_67890',
        'scope': 'user-read-recently-played user-top-read',
    }


@pytest.fixture
def expired_token():
    """An expired Spotify OAuth token."""
    return {
        'access_token': 'expired_access_token',
        'token_type': 'Bearer',
        'expires_in': 3600,
        'expires_at': time.time() - 100,  # Expired
        'refresh_token': 'test_refresh_token',
    }


@pytest.fixture
def sample_user():
    """Sample Spotify user data."""
    return {
        'id': 'user123',
        'display_name': 'Test User',
        'email': 'test@example.com',
        'images': [{'url': 'https://example.com/avatar.jpg', 'height': 64, 'width': 64}],
        'country': 'US',
        'product': 'premium',
        'uri': 'spotify:user:user123',
    }


def make_track(i):
    """A Spotify track object."""
    return {
        'id': f'track{i}',
        'name': f'Track {i}',
        'uri': f'spotify:track:track{i}',
        'duration_ms': 180000 + (i * 1000),
        'popularity': 50,
        'explicit': False,
        'artists': [{'id': f'artist{i}', 'name': f'Artist {i}', 'uri': f'spotify:artist:artist{i}'}],
        'album': {
            'id': f'album{i}',
            'name': f'Album {i}',
            'uri': f'spotify:album:album{i}',
            'images': [{'url': f'https://example.com/album{i}.jpg'}],
        },
    }


def make_artist(i):
    """A Spotify artist object."""
    return {
        'id': f'artist{i}',
        'name': f'Artist {i}',
        'uri': f'spotify:artist:artist{i}',
        'genres': ['indie'],
        'popularity': 60,
        'images': [{'url': f'https://example.com/artist{i}.jpg'}],
    }


def make_play(i, played_at_ms):
    """A recently played item; ``played_at_ms`` is Unix milliseconds."""
    played_at = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=played_at_ms)
    return {
        'track': make_track(i),
        'played_at': played_at.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z',
        'context': {'type': 'playlist', 'uri': 'spotify:playlist:abc'},
    }


@pytest.fixture
def sample_tracks():
    """Sample top tracks."""
    return [make_track(i) for i in range(1, 11)]


@pytest.fixture
def sample_artists():
    """Sample top artists."""
    return [make_artist(i) for i in range(1, 6)]


@pytest.fixture
def sample_recently_played():
    """Recently played payload, newest first, one minute apart."""
    start = 1_700_000_000_000
    return {
        'items': [make_play(i, start - i * 60_000) for i in range(1, 4)],
        'cursors': {'before': str(start - 3 * 60_000)},
    }


@pytest.fixture
def sample_friend_activity():
    """Buddy list payload as returned by the web player."""
    return {
        'friends': [
            {
                'timestamp': 1_700_000_000_000,
                'user': {'uri': 'spotify:user:alice', 'name': 'Alice'},
                'track': {
                    'uri': 'spotify:track:t1',
                    'name': 'Song One',
                    'imageUrl': 'https://example.com/t1.jpg',
                    'album': {'uri': 'spotify:album:a1', 'name': 'Album One'},
                    'artist': {'uri': 'spotify:artist:r1', 'name': 'Artist One'},
                    'context': {'uri': 'spotify:playlist:p1', 'name': 'Mix', 'index': 0},
                },
            },
            {
                'timestamp': 1_700_000_500_000,
                'user': {'uri': 'spotify:user:bob', 'name': 'Bob', 'imageUrl': 'https://example.com/bob.jpg'},
                'track': {
                    'uri': 'spotify:track:t2',
                    'name': 'Song Two',
                    'album': {'uri': 'spotify:album:a2', 'name': 'Album Two'},
                    'artist': {'uri': 'spotify:artist:r2', 'name': 'Artist Two'},
                },
            },
        ]
    }


# =============================================================================
# Flask App Fixtures
# =============================================================================

@pytest.fixture
def memory_store():
    """An empty in-memory credential store."""
    from fete.spotify import MemoryCredentialStore
    return MemoryCredentialStore()


@pytest.fixture
def signed_in_store(sample_token):
    """An in-memory credential store holding a fresh token."""
    from fete.spotify import MemoryCredentialStore, TokenInfo
    store = MemoryCredentialStore()
    store.save_token(TokenInfo.from_dict(sample_token))
    return store


@pytest.fixture
def app(memory_store):
    """Create a Flask application for testing."""
    from fete import create_app
    app = create_app('testing', store=memory_store)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def signed_in_app(signed_in_store):
    """Flask application whose session already holds a token."""
    from fete import create_app
    app = create_app('testing', store=signed_in_store)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def app_context(app):
    """Provide Flask application context."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    """Provide Flask test client."""
    return app.test_client()


@pytest.fixture
def authenticated_client(signed_in_app):
    """Flask test client for a signed-in session."""
    with signed_in_app.test_client() as test_client:
        yield test_client


@pytest.fixture
def track_payload():
    """Factory for Spotify track objects."""
    return make_track


@pytest.fixture
def artist_payload():
    """Factory for Spotify artist objects."""
    return make_artist


@pytest.fixture
def play_payload():
    """Factory for recently played items."""
    return make_play
