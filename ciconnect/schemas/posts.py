"""Pydantic schemas for feed posts, likes and comments."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .profiles import ProfileSnapshot


class PostLikeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID


class PostCommentCreate(BaseModel):
    content: str = Field(..., max_length=1000)


class PostCommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    author_id: UUID
    author_name: str
    content: str
    created_at: datetime


class PostResponse(BaseModel):
    """Serialized feed entry with everything a card renders."""

    id: UUID
    author_id: UUID
    content: str
    image_url: str | None = None
    post_type: str = "general"
    created_at: datetime
    author: ProfileSnapshot | None = None
    author_name: str
    comments: list[PostCommentResponse] = Field(default_factory=list)
    likes: list[PostLikeResponse] = Field(default_factory=list)
    like_count: int = 0
    comment_count: int = 0
    user_has_liked: bool = False


class PostFeedResponse(BaseModel):
    items: list[PostResponse]


class PostEngagementResponse(BaseModel):
    """Like/comment counters used by interactive UI."""

    post_id: UUID
    like_count: int
    comment_count: int
    user_has_liked: bool


__all__ = [
    "PostLikeResponse",
    "PostCommentCreate",
    "PostCommentResponse",
    "PostResponse",
    "PostFeedResponse",
    "PostEngagementResponse",
]
