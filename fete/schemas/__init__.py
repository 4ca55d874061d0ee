"""
Pydantic schemas for request validation.
"""

from pydantic import ValidationError

from .requests import (
    FeedQueryParams,
    WebPlayerCookieRequest,
)

__all__ = [
    "ValidationError",
    "FeedQueryParams",
    "WebPlayerCookieRequest",
]
