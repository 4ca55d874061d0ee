"""
Request validation schemas using Pydantic.
"""

from pydantic import BaseModel, Field, field_validator

from fete.enums import TimeRange


class FeedQueryParams(BaseModel):
    """Query parameters for the feed endpoints."""

    time_range: TimeRange = Field(
        default=TimeRange.MEDIUM_TERM,
        description="Affinity window for top tracks and artists",
    )

    model_config = {"extra": "ignore"}

    @field_validator("time_range", mode="before")
    @classmethod
    def normalize_time_range(cls, v):
        """Accept any casing and surrounding whitespace."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


class WebPlayerCookieRequest(BaseModel):
    """Schema for storing the web player ``sp_dc`` session cookie."""

    sp_dc: str = Field(
        ..., min_length=1, max_length=1000, description="Web player session cookie"
    )

    model_config = {"extra": "ignore"}

    @field_validator("sp_dc")
    @classmethod
    def validate_cookie(cls, v: str) -> str:
        """Ensure the cookie is a single non-empty token."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Cookie cannot be empty or whitespace")
        if any(ch in stripped for ch in ";\r\n "):
            raise ValueError("Cookie must be the bare sp_dc value")
        return stripped
