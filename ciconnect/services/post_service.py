"""Business logic for the post feed, likes and comments."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from fastapi import HTTPException, UploadFile, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..config import get_settings
from ..models import UNKNOWN_USER, Post, PostComment, PostLike
from .profile_service import require_profile
from .storage_service import ObjectStorage, StoredObject, discard_image, image_object_key, read_image_upload, store_image

logger = logging.getLogger(__name__)


def _author_name(profile: Any | None) -> str:
    if profile is None:
        return UNKNOWN_USER
    return profile.full_name or profile.email or UNKNOWN_USER


def _profile_record(profile: Any | None) -> dict[str, Any] | None:
    if profile is None:
        return None
    return {
        "id": profile.id,
        "email": profile.email,
        "full_name": profile.full_name,
        "avatar_url": profile.avatar_url,
    }


def _comment_record(comment: PostComment) -> dict[str, Any]:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "author_id": comment.author_id,
        "author_name": _author_name(comment.author_profile),
        "content": comment.content,
        "created_at": comment.created_at,
    }


def _post_record(post: Post, viewer_id: UUID | None) -> dict[str, Any]:
    likes = list(post.likes)
    comments = sorted(post.comments, key=lambda item: item.created_at)
    return {
        "id": post.id,
        "author_id": post.author_id,
        "content": post.content,
        "image_url": post.image_url,
        "post_type": post.post_type,
        "created_at": post.created_at,
        "author": _profile_record(post.author_profile),
        "author_name": _author_name(post.author_profile),
        "comments": [_comment_record(comment) for comment in comments],
        "likes": [{"id": like.id, "user_id": like.user_id} for like in likes],
        "like_count": len(likes),
        "comment_count": len(comments),
        "user_has_liked": viewer_id is not None and any(like.user_id == viewer_id for like in likes),
    }


def list_feed(db: Session, *, viewer_id: UUID | None = None) -> list[dict[str, Any]]:
    """Return every post newest first with author, comments and likes attached."""

    stmt = (
        select(Post)
        .options(
            selectinload(Post.author_profile),
            selectinload(Post.likes),
            selectinload(Post.comments).selectinload(PostComment.author_profile),
        )
        .order_by(Post.created_at.desc())
    )
    try:
        posts = list(db.scalars(stmt))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error fetching the post feed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load posts") from exc
    return [_post_record(post, viewer_id) for post in posts]


def _get_post_or_404(db: Session, post_id: UUID) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


async def create_post(
    db: Session,
    *,
    author_id: UUID,
    content: str,
    image: UploadFile | None = None,
    storage: ObjectStorage | None = None,
) -> dict[str, Any]:
    """Create a post, uploading the optional image to the post-images bucket first."""

    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Post content is required")

    stored: StoredObject | None = None
    if image is not None:
        settings = get_settings()
        data, content_type = await read_image_upload(image, max_bytes=settings.post_image_max_bytes)
        if storage is None:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Object storage unavailable")
        stored = await store_image(
            storage,
            bucket=settings.post_images_bucket,
            key=image_object_key(author_id, image.filename),
            data=data,
            content_type=content_type,
        )
    post = Post(
        author_id=author_id,
        content=text,
        image_url=stored.url if stored is not None else None,
        post_type="general",
        created_at=datetime.now(timezone.utc),
    )
    try:
        db.add(post)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error creating post for %s", author_id)
        if stored is not None and storage is not None:
            await discard_image(storage, stored)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error creating post") from exc

    db.refresh(post)
    return _post_record(post, author_id)


def _engagement_snapshot(db: Session, post_id: UUID, viewer_id: UUID) -> dict[str, Any]:
    like_count = db.scalar(select(func.count(PostLike.id)).where(PostLike.post_id == post_id)) or 0
    comment_count = db.scalar(select(func.count(PostComment.id)).where(PostComment.post_id == post_id)) or 0
    user_has_liked = (
        db.scalar(select(PostLike.id).where(PostLike.post_id == post_id, PostLike.user_id == viewer_id).limit(1))
        is not None
    )
    return {
        "post_id": post_id,
        "like_count": int(like_count),
        "comment_count": int(comment_count),
        "user_has_liked": user_has_liked,
    }


def toggle_like(db: Session, *, post_id: UUID, user_id: UUID) -> dict[str, Any]:
    """Unlike when the member already liked the post, like it otherwise."""

    require_profile(db, user_id)
    _get_post_or_404(db, post_id)

    existing = db.scalar(select(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id))
    if existing is not None:
        db.delete(existing)
    else:
        db.add(PostLike(post_id=post_id, user_id=user_id))

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error toggling like on %s for %s", post_id, user_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to toggle like") from exc

    return _engagement_snapshot(db, post_id, user_id)


def add_comment(db: Session, *, post_id: UUID, author_id: UUID, content: str) -> dict[str, Any]:
    post = _get_post_or_404(db, post_id)
    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Comment cannot be empty")

    comment = PostComment(
        post_id=post.id,
        author_id=author_id,
        content=text,
        created_at=datetime.now(timezone.utc),
    )
    try:
        db.add(comment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error adding comment on %s", post_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add comment") from exc

    db.refresh(comment)
    return _comment_record(comment)


__all__ = ["list_feed", "create_post", "toggle_like", "add_comment"]
