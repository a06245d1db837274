"""Direct message inbox: one conversation summary per partner."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..models import UNKNOWN_USER, Message

logger = logging.getLogger(__name__)


@dataclass
class Conversation:
    """Derived per-partner summary; recomputed from scratch on every fetch."""

    user_id: UUID
    user_profile: Any | None
    last_message: Any
    unread_count: int = 0

    @property
    def display_name(self) -> str:
        if self.user_profile is None:
            return UNKNOWN_USER
        return self.user_profile.display_name


def _is_unread_from(message: Any, partner_id: UUID) -> bool:
    return message.sender_id == partner_id and not message.read


def aggregate_conversations(messages: Iterable[Any], actor_id: UUID) -> list[Conversation]:
    """Group ``messages`` by partner, keeping the newest message and the unread tally.

    Every message must involve ``actor_id``. The partner profile is taken from the
    message's ``sender_profile``/``receiver_profile`` snapshot and may be ``None``.
    The result is ordered by ``last_message.created_at`` descending; ties keep the
    order in which partners were first seen.
    """

    conversations: dict[UUID, Conversation] = {}
    for message in messages:
        sent_by_actor = message.sender_id == actor_id
        partner_id = message.receiver_id if sent_by_actor else message.sender_id
        existing = conversations.get(partner_id)
        if existing is None:
            partner_profile = getattr(message, "receiver_profile" if sent_by_actor else "sender_profile", None)
            conversations[partner_id] = Conversation(
                user_id=partner_id,
                user_profile=partner_profile,
                last_message=message,
                unread_count=1 if _is_unread_from(message, partner_id) else 0,
            )
            continue

        if message.created_at > existing.last_message.created_at:
            existing.last_message = message
        if _is_unread_from(message, partner_id):
            existing.unread_count += 1

    return sorted(conversations.values(), key=lambda item: item.last_message.created_at, reverse=True)


def list_conversations(db: Session, *, actor_id: UUID) -> list[Conversation]:
    """Fetch every message the actor took part in and aggregate it into conversations."""

    stmt = (
        select(Message)
        .where(or_(Message.sender_id == actor_id, Message.receiver_id == actor_id))
        .options(selectinload(Message.sender_profile), selectinload(Message.receiver_profile))
        .order_by(Message.created_at.desc())
    )
    try:
        rows = list(db.scalars(stmt))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error fetching conversations for %s", actor_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load conversations") from exc
    conversations = aggregate_conversations(rows, actor_id)
    logger.debug("Aggregated %d messages into %d conversations for %s", len(rows), len(conversations), actor_id)
    return conversations


__all__ = ["Conversation", "aggregate_conversations", "list_conversations"]
