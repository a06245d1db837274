"""Profile lookups, edits and avatar uploads."""
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, UploadFile, status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..models import Message, NetworkingRequest, Post, Profile, User
from ..schemas import ProfileUpdateRequest
from .storage_service import ObjectStorage, discard_image, image_object_key, read_image_upload, store_image

logger = logging.getLogger(__name__)


def get_or_create_profile(db: Session, user: User) -> Profile:
    """Return the member's profile, creating a blank one on first visit."""

    profile = db.get(Profile, user.id)
    if profile is not None:
        return profile

    profile = Profile(id=user.id, email=user.email, full_name="", avatar_url=None, program_type="fundamental")
    try:
        db.add(profile)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error creating profile for %s", user.id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create profile") from exc

    db.refresh(profile)
    logger.info("Created profile for %s", user.id)
    return profile


def require_profile(db: Session, user_id: UUID) -> Profile:
    """Actions that show the member to others need a profile first."""

    profile = db.get(Profile, user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Please complete your profile setup first")
    return profile


def update_profile(db: Session, *, user: User, payload: ProfileUpdateRequest) -> Profile:
    """Apply the fields the client actually sent."""

    profile = get_or_create_profile(db, user)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "program_type" and value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
        setattr(profile, field, value)

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error updating profile for %s", user.id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update profile") from exc

    db.refresh(profile)
    return profile


async def upload_avatar(db: Session, *, user: User, file: UploadFile, storage: ObjectStorage) -> Profile:
    """Validate and store a new avatar, then point the profile at its public URL."""

    settings = get_settings()
    data, content_type = await read_image_upload(file, max_bytes=settings.avatar_max_bytes, label="Avatar")
    profile = get_or_create_profile(db, user)

    key = image_object_key(user.id, file.filename, prefix=f"avatar-{user.id}-")
    stored = await store_image(
        storage,
        bucket=settings.avatars_bucket,
        key=key,
        data=data,
        content_type=content_type,
    )

    profile.avatar_url = stored.url
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error saving avatar for %s", user.id)
        await discard_image(storage, stored)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update profile") from exc

    db.refresh(profile)
    return profile


def get_member_stats(db: Session, user_id: UUID) -> dict[str, int]:
    """Dashboard counters: authored posts, accepted connections and messages sent or received."""

    posts = select(func.count()).select_from(Post).where(Post.author_id == user_id)
    connections = (
        select(func.count())
        .select_from(NetworkingRequest)
        .where(
            NetworkingRequest.status == "accepted",
            or_(NetworkingRequest.sender_id == user_id, NetworkingRequest.receiver_id == user_id),
        )
    )
    messages = (
        select(func.count())
        .select_from(Message)
        .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
    )
    try:
        return {
            "posts": int(db.scalar(posts) or 0),
            "connections": int(db.scalar(connections) or 0),
            "messages": int(db.scalar(messages) or 0),
        }
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error counting dashboard stats for %s", user_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load stats") from exc


__all__ = ["get_or_create_profile", "require_profile", "update_profile", "upload_avatar", "get_member_stats"]
