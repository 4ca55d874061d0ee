"""
Value records decoded from Spotify responses.

All models are frozen pydantic models: decoded once, displayed, never
mutated. Unknown fields are ignored so additions on Spotify's side do
not break decoding.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, computed_field, field_validator

from .exceptions import SpotifyDecodeError

ModelT = TypeVar("ModelT", bound=BaseModel)

_MODEL_CONFIG = {"extra": "ignore", "frozen": True, "populate_by_name": True}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Image(BaseModel):
    model_config = _MODEL_CONFIG

    url: str
    height: Optional[int] = None
    width: Optional[int] = None


class _WithImages(BaseModel):
    """Base for records carrying an ``images`` list (Spotify may send null)."""

    model_config = _MODEL_CONFIG

    images: List[Image] = Field(default_factory=list)

    @field_validator("images", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @computed_field
    @property
    def image_url(self) -> Optional[str]:
        """First (largest) image, if any."""
        return self.images[0].url if self.images else None


class Artist(_WithImages):
    id: str
    uri: str
    name: str
    genres: List[str] = Field(default_factory=list)
    popularity: Optional[int] = None


class Album(_WithImages):
    id: str
    uri: str
    name: str
    release_date: Optional[str] = None
    total_tracks: Optional[int] = None
    album_type: Optional[str] = None


class Context(BaseModel):
    """Where playback happened: a playlist, album, artist or show."""

    model_config = _MODEL_CONFIG

    uri: str
    type: Optional[str] = None
    name: Optional[str] = None
    index: Optional[int] = None


class Track(BaseModel):
    model_config = _MODEL_CONFIG

    id: str
    uri: str
    name: str
    artists: List[Artist] = Field(default_factory=list)
    album: Album
    duration_ms: Optional[int] = None
    popularity: Optional[int] = None
    explicit: Optional[bool] = None
    preview_url: Optional[str] = None
    # Position within the page it was fetched in (recently played only).
    position: Optional[int] = None

    @computed_field
    @property
    def image_url(self) -> Optional[str]:
        return self.album.image_url

    @computed_field
    @property
    def unique_id(self) -> str:
        """Stable id that tells repeated plays of one track apart."""
        if self.position is not None:
            return f"{self.id}_{self.position}"
        return self.id

    @computed_field
    @property
    def artist_names(self) -> str:
        return ", ".join(artist.name for artist in self.artists)

    @computed_field
    @property
    def formatted_duration(self) -> Optional[str]:
        """Duration as ``m:ss``."""
        if self.duration_ms is None:
            return None
        total_seconds = self.duration_ms // 1000
        return f"{total_seconds // 60}:{total_seconds % 60:02d}"


class PlayHistoryItem(BaseModel):
    model_config = _MODEL_CONFIG

    track: Track
    played_at: str
    context: Optional[Context] = None

    @computed_field
    @property
    def id(self) -> str:
        return f"{self.track.id}_{self.played_at}"

    @property
    def played_at_datetime(self) -> datetime:
        played = datetime.fromisoformat(self.played_at.replace("Z", "+00:00"))
        if played.tzinfo is None:
            played = played.replace(tzinfo=timezone.utc)
        return played

    @computed_field
    @property
    def played_at_ms(self) -> int:
        """Play time as Unix milliseconds, the unit of the ``before`` cursor."""
        return (self.played_at_datetime - _EPOCH) // timedelta(milliseconds=1)


class UserProfile(_WithImages):
    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    product: Optional[str] = None
    country: Optional[str] = None


class CurrentlyPlaying(BaseModel):
    model_config = _MODEL_CONFIG

    is_playing: bool
    progress_ms: Optional[int] = None
    item: Optional[Track] = None
    currently_playing_type: Optional[str] = None


class PlaylistOwner(BaseModel):
    model_config = _MODEL_CONFIG

    id: str
    display_name: Optional[str] = None


class Playlist(_WithImages):
    id: str
    name: str
    description: Optional[str] = None
    owner: PlaylistOwner
    collaborative: bool = False


# =========================================================================
# Friend activity (web player buddy list)
# =========================================================================


class FriendUser(BaseModel):
    model_config = _MODEL_CONFIG

    uri: str
    name: str
    image_url: Optional[str] = Field(default=None, alias="imageUrl")


class FriendEntity(BaseModel):
    """Album or artist reference inside a buddy list entry."""

    model_config = _MODEL_CONFIG

    uri: str
    name: str


class FriendContext(BaseModel):
    model_config = _MODEL_CONFIG

    uri: str
    name: str
    index: Optional[int] = None


class FriendTrack(BaseModel):
    model_config = _MODEL_CONFIG

    uri: str
    name: str
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    album: FriendEntity
    artist: FriendEntity
    context: Optional[FriendContext] = None


class FriendActivity(BaseModel):
    model_config = _MODEL_CONFIG

    # Unix milliseconds
    timestamp: int
    user: FriendUser
    track: FriendTrack

    @property
    def played_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)


# =========================================================================
# Decoding helpers
# =========================================================================


def decode(model: Type[ModelT], payload: Any) -> ModelT:
    """
    Validate a payload into ``model``.

    Raises:
        SpotifyDecodeError: If the payload does not match the model.
    """
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise SpotifyDecodeError(
            f"Failed to decode {model.__name__}: {e.error_count()} error(s), "
            f"first: {e.errors()[0].get('msg')}"
        )


def decode_items(
    model: Type[ModelT],
    payload: Any,
    items_key: str = "items",
) -> List[ModelT]:
    """
    Decode ``payload[items_key]`` as a list of ``model``.

    Raises:
        SpotifyDecodeError: If the key is missing or an item is malformed.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get(items_key), list):
        raise SpotifyDecodeError(
            f"Expected an object with an '{items_key}' list"
        )
    return [decode(model, item) for item in payload[items_key]]


def to_json(model: BaseModel) -> Dict[str, Any]:
    """Serialize a record for JSON responses."""
    return model.model_dump(mode="json")
