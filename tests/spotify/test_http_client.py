"""Tests for SpotifyHTTPClient."""

import pytest
import requests
from unittest.mock import MagicMock, Mock, patch

from fete.spotify.http_client import BASE_URL, SpotifyHTTPClient
from fete.spotify.exceptions import (
    SpotifyAPIError,
    SpotifyDecodeError,
    SpotifyMissingTokenError,
    SpotifyNotFoundError,
    SpotifyRateLimitError,
    SpotifyRequestCancelled,
    SpotifyTokenExpiredError,
)


# =========================================================================
# Helpers
# =========================================================================


def _mock_response(status_code=200, json_data=None, headers=None):
    """Create a mock response object."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = json_data or {}
    resp.headers = headers or {}
    resp.text = str(json_data) if json_data else ""
    return resp


@pytest.fixture
def session():
    with patch("fete.spotify.http_client.requests.Session") as mock_cls:
        mock_session = MagicMock()
        mock_session.headers = {}
        mock_cls.return_value = mock_session
        yield mock_session


@pytest.fixture
def token_provider():
    return Mock(return_value="test-token")


@pytest.fixture
def client(session, token_provider):
    return SpotifyHTTPClient(token_provider, timeout=5)


# =========================================================================
# Requests
# =========================================================================


class TestRequest:
    """Tests for the request path."""

    def test_get_builds_url_and_auth_header(self, client, session, token_provider):
        session.request.return_value = _mock_response(200, {"id": "me"})

        result = client.get("/me", params={"limit": 5})

        assert result == {"id": "me"}
        session.request.assert_called_once_with(
            "GET",
            f"{BASE_URL}/me",
            params={"limit": 5},
            headers={"Authorization": "Bearer test-token"},
            timeout=5,
        )

    def test_token_fetched_per_request(self, client, session, token_provider):
        """Every request asks the provider, so refreshed tokens are used."""
        token_provider.side_effect = ["first", "second"]
        session.request.return_value = _mock_response(200, {"ok": True})

        client.get("/me")
        client.get("/me")

        headers = [c.kwargs["headers"]["Authorization"] for c in session.request.call_args_list]
        assert headers == ["Bearer first", "Bearer second"]

    def test_token_provider_errors_propagate(self, client, session, token_provider):
        token_provider.side_effect = SpotifyMissingTokenError("signed out")
        with pytest.raises(SpotifyMissingTokenError):
            client.get("/me")
        session.request.assert_not_called()

    def test_extra_headers_merged(self, client, session):
        session.request.return_value = _mock_response(200, {"ok": True})
        client.request("GET", "https://example.com/x", headers={"App-Platform": "WebPlayer"})
        sent = session.request.call_args.kwargs["headers"]
        assert sent == {"Authorization": "Bearer test-token", "App-Platform": "WebPlayer"}

    def test_no_content(self, client, session):
        session.request.return_value = _mock_response(204)
        assert client.get("/me/player/currently-playing") is None

    def test_network_error(self, client, session):
        session.request.side_effect = requests.ConnectionError("unreachable")
        with pytest.raises(SpotifyAPIError, match="Network error"):
            client.get("/me")

    def test_close(self, client, session):
        client.close()
        session.close.assert_called_once()


# =========================================================================
# Response mapping
# =========================================================================


class TestResponseMapping:
    """Tests for status code to exception mapping."""

    def test_unauthorized(self, client, session):
        session.request.return_value = _mock_response(401)
        with pytest.raises(SpotifyTokenExpiredError):
            client.get("/me")

    def test_not_found(self, client, session):
        session.request.return_value = _mock_response(404)
        with pytest.raises(SpotifyNotFoundError) as exc_info:
            client.get("/me/nothing")
        assert exc_info.value.status_code == 404

    def test_rate_limited(self, client, session):
        session.request.return_value = _mock_response(429, headers={"Retry-After": "7"})
        with pytest.raises(SpotifyRateLimitError) as exc_info:
            client.get("/me")
        assert exc_info.value.retry_after == 7

    def test_rate_limited_default_retry_after(self, client, session):
        session.request.return_value = _mock_response(429)
        with pytest.raises(SpotifyRateLimitError) as exc_info:
            client.get("/me")
        assert exc_info.value.retry_after == 60

    def test_server_error_message(self, client, session):
        session.request.return_value = _mock_response(
            502, {"error": {"status": 502, "message": "Bad gateway"}}
        )
        with pytest.raises(SpotifyAPIError, match="Bad gateway") as exc_info:
            client.get("/me")
        assert exc_info.value.status_code == 502

    def test_invalid_json(self, client, session):
        resp = _mock_response(200)
        resp.json.side_effect = ValueError("Expecting value")
        session.request.return_value = resp
        with pytest.raises(SpotifyDecodeError):
            client.get("/me")


# =========================================================================
# Cancellation
# =========================================================================


class TestCancellation:
    """Tests for cancel and reset_cancel."""

    def test_cancelled_before_request(self, client, session):
        client.cancel()
        assert client.is_cancelled
        with pytest.raises(SpotifyRequestCancelled):
            client.get("/me")
        session.request.assert_not_called()

    def test_cancelled_while_in_flight(self, client, session):
        """A response that arrives after cancel() is discarded."""
        def respond(*args, **kwargs):
            client.cancel()
            return _mock_response(200, {"id": "me"})

        session.request.side_effect = respond
        with pytest.raises(SpotifyRequestCancelled):
            client.get("/me")

    def test_reset_cancel(self, client, session):
        session.request.return_value = _mock_response(200, {"id": "me"})
        client.cancel()
        client.reset_cancel()
        assert client.get("/me") == {"id": "me"}
