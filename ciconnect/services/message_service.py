"""Direct messaging services backed by PostgreSQL."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..models import Message, Profile, User
from .change_feed import INSERT, UPDATE, schedule_change

logger = logging.getLogger(__name__)

MESSAGES_TABLE = Message.__tablename__


def _message_record(message: Message) -> dict[str, Any]:
    return {
        "id": str(message.id),
        "sender_id": str(message.sender_id),
        "receiver_id": str(message.receiver_id),
        "read": bool(message.read),
    }


def send_message(db: Session, *, sender_id: UUID, receiver_id: UUID, content: str) -> Message:
    """Persist a direct message from ``sender_id`` to ``receiver_id``."""

    text = (content or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Message cannot be empty")
    if sender_id == receiver_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot message yourself")

    if db.get(User, receiver_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found")

    message = Message(
        content=text,
        sender_id=sender_id,
        receiver_id=receiver_id,
        created_at=datetime.now(timezone.utc),
        read=False,
    )
    try:
        db.add(message)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error sending message from %s to %s", sender_id, receiver_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to send message") from exc

    db.refresh(message)
    schedule_change(MESSAGES_TABLE, INSERT, _message_record(message))
    return message


def list_thread(db: Session, *, actor_id: UUID, partner_id: UUID) -> list[Message]:
    """Return both directions of the conversation ordered chronologically."""

    stmt = (
        select(Message)
        .where(
            or_(
                and_(Message.sender_id == actor_id, Message.receiver_id == partner_id),
                and_(Message.sender_id == partner_id, Message.receiver_id == actor_id),
            )
        )
        .options(selectinload(Message.sender_profile))
        .order_by(Message.created_at.asc())
    )
    try:
        return list(db.scalars(stmt))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error fetching thread between %s and %s", actor_id, partner_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load messages") from exc


def mark_thread_read(db: Session, *, actor_id: UUID, partner_id: UUID) -> int:
    """Flip the read flag on everything ``partner_id`` sent to ``actor_id``."""

    stmt = (
        update(Message)
        .where(
            Message.sender_id == partner_id,
            Message.receiver_id == actor_id,
            Message.read.is_(False),
        )
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    try:
        result = db.execute(stmt)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error marking messages from %s as read for %s", partner_id, actor_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update messages") from exc

    updated = int(result.rowcount or 0)
    if updated:
        schedule_change(
            MESSAGES_TABLE,
            UPDATE,
            {"sender_id": str(partner_id), "receiver_id": str(actor_id), "read": True, "count": updated},
        )
    return updated


def count_unread_messages(db: Session, actor_id: UUID) -> int:
    """Return the exact number of unread messages addressed to ``actor_id``."""

    stmt = (
        select(func.count())
        .select_from(Message)
        .where(Message.receiver_id == actor_id, Message.read.is_(False))
    )
    return int(db.scalar(stmt) or 0)


def get_partner_profile(db: Session, *, partner_id: UUID) -> Profile:
    """Load the profile shown when opening a conversation with no history yet."""

    profile = db.get(Profile, partner_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return profile


__all__ = [
    "MESSAGES_TABLE",
    "send_message",
    "list_thread",
    "mark_thread_read",
    "count_unread_messages",
    "get_partner_profile",
]
