"""
Tests for the Spotify value records and decode helpers.
"""

from datetime import datetime, timezone

import pytest

from fete.spotify.exceptions import SpotifyDecodeError
from fete.spotify.models import (
    Artist,
    FriendActivity,
    PlayHistoryItem,
    Track,
    UserProfile,
    decode,
    decode_items,
    to_json,
)


class TestTrack:
    """Tests for Track."""

    def test_decodes_and_ignores_unknown_fields(self, track_payload):
        payload = {**track_payload(1), 'available_markets': ['US'], 'is_local': False}
        track = decode(Track, payload)
        assert track.id == 'track1'
        assert track.album.name == 'Album 1'

    def test_display_helpers(self, track_payload):
        track = decode(Track, track_payload(1))
        assert track.artist_names == 'Artist 1'
        assert track.image_url == 'https://example.com/album1.jpg'
        assert track.formatted_duration == '3:01'

    def test_unique_id_uses_position(self, track_payload):
        track = decode(Track, track_payload(2))
        assert track.unique_id == 'track2'
        assert track.model_copy(update={'position': 4}).unique_id == 'track2_4'

    def test_frozen(self, track_payload):
        track = decode(Track, track_payload(1))
        with pytest.raises(Exception):
            track.name = 'changed'

    def test_null_images_become_empty(self, track_payload):
        payload = track_payload(1)
        payload['album']['images'] = None
        assert decode(Track, payload).image_url is None


class TestPlayHistoryItem:
    """Tests for PlayHistoryItem."""

    def test_played_at_ms(self, play_payload):
        item = decode(PlayHistoryItem, play_payload(1, 1_700_000_000_123))
        assert item.played_at_ms == 1_700_000_000_123
        assert item.played_at_datetime.tzinfo is not None

    def test_id_combines_track_and_time(self, track_payload):
        item = decode(PlayHistoryItem, {
            'track': track_payload(3),
            'played_at': '2024-01-01T12:00:00Z',
        })
        assert item.id == 'track3_2024-01-01T12:00:00Z'
        assert item.played_at_datetime == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        assert item.context is None

    def test_to_json_includes_derived_fields(self, play_payload):
        data = to_json(decode(PlayHistoryItem, play_payload(2, 1_700_000_000_123)))
        assert data['played_at_ms'] == 1_700_000_000_123
        assert data['id'] == f"track2_{data['played_at']}"
        assert data['track']['unique_id'] == 'track2'
        assert data['track']['artist_names'] == 'Artist 2'
        assert data['track']['formatted_duration'] == '3:02'
        assert data['track']['image_url'] == 'https://example.com/album2.jpg'


class TestOtherRecords:
    """Tests for profile, artist and friend activity records."""

    def test_user_profile(self, sample_user):
        profile = decode(UserProfile, sample_user)
        assert profile.display_name == 'Test User'
        assert profile.image_url == 'https://example.com/avatar.jpg'

    def test_artist_defaults(self):
        artist = decode(Artist, {'id': 'a', 'uri': 'spotify:artist:a', 'name': 'A'})
        assert artist.genres == []
        assert artist.image_url is None

    def test_friend_activity_aliases(self, sample_friend_activity):
        entry = decode(FriendActivity, sample_friend_activity['friends'][0])
        assert entry.track.image_url == 'https://example.com/t1.jpg'
        assert entry.track.context.name == 'Mix'
        assert entry.user.image_url is None
        assert entry.played_at == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)

    def test_to_json(self, sample_user):
        data = to_json(decode(UserProfile, sample_user))
        assert data['id'] == 'user123'
        assert data['images'][0]['url'] == 'https://example.com/avatar.jpg'
        assert data['image_url'] == 'https://example.com/avatar.jpg'


class TestDecodeHelpers:
    """Tests for decode and decode_items."""

    def test_decode_missing_field(self):
        with pytest.raises(SpotifyDecodeError, match='UserProfile'):
            decode(UserProfile, {'display_name': 'No id'})

    def test_decode_items(self, artist_payload):
        artists = decode_items(Artist, {'items': [artist_payload(1), artist_payload(2)]})
        assert [a.id for a in artists] == ['artist1', 'artist2']

    def test_decode_items_custom_key(self, sample_friend_activity):
        entries = decode_items(FriendActivity, sample_friend_activity, items_key='friends')
        assert len(entries) == 2

    @pytest.mark.parametrize('payload', [None, [], {'items': None}, {'total': 0}])
    def test_decode_items_requires_list(self, payload):
        with pytest.raises(SpotifyDecodeError):
            decode_items(Artist, payload)
