"""Messaging API routes."""
from __future__ import annotations

import logging
from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import UNKNOWN_USER, Message, Profile, User
from ..schemas import (
    ConversationListResponse,
    ConversationResponse,
    MarkReadResponse,
    MessageResponse,
    MessageSendRequest,
    MessageThreadResponse,
    ProfileSnapshot,
    UnreadCountResponse,
)
from ..services import (
    Conversation,
    count_unread_messages,
    get_current_user,
    get_partner_profile,
    list_conversations,
    list_thread,
    mark_thread_read,
    send_message,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])
unread_router = APIRouter(prefix="/api/messages", tags=["messages"])


def _snapshot(profile: Profile | None) -> ProfileSnapshot | None:
    if profile is None:
        return None
    return ProfileSnapshot.model_validate(profile)


def _message_response(message: Message) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        content=message.content,
        sender_id=message.sender_id,
        receiver_id=message.receiver_id,
        created_at=message.created_at,
        read=bool(message.read),
        sender_profile=_snapshot(message.sender_profile),
    )


def _conversation_response(conversation: Conversation) -> ConversationResponse:
    return ConversationResponse(
        user_id=conversation.user_id,
        user_profile=_snapshot(conversation.user_profile),
        display_name=conversation.display_name,
        last_message=_message_response(conversation.last_message),
        unread_count=conversation.unread_count,
    )


@router.get("/conversations", response_model=ConversationListResponse)
async def conversations_endpoint(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ConversationListResponse:
    conversations = list_conversations(db, actor_id=cast(UUID, current_user.id))
    return ConversationListResponse(items=[_conversation_response(item) for item in conversations])


@router.get("/partners/{partner_id}", response_model=ProfileSnapshot)
async def partner_profile_endpoint(
    partner_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ProfileSnapshot:
    return ProfileSnapshot.model_validate(get_partner_profile(db, partner_id=partner_id))


@router.post("/send", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message_endpoint(
    payload: MessageSendRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> MessageResponse:
    message = send_message(
        db,
        sender_id=cast(UUID, current_user.id),
        receiver_id=payload.receiver_id,
        content=payload.content,
    )
    return _message_response(message)


@router.post("/{partner_id}/read", response_model=MarkReadResponse)
async def mark_read_endpoint(
    partner_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> MarkReadResponse:
    updated = mark_thread_read(db, actor_id=cast(UUID, current_user.id), partner_id=partner_id)
    return MarkReadResponse(partner_id=partner_id, updated=updated)


@router.get("/{partner_id}", response_model=MessageThreadResponse)
async def thread_endpoint(
    partner_id: UUID,
    mark_read: bool = Query(default=True, description="Mark the partner's messages as read"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> MessageThreadResponse:
    actor_id = cast(UUID, current_user.id)
    if mark_read:
        mark_thread_read(db, actor_id=actor_id, partner_id=partner_id)
    messages = list_thread(db, actor_id=actor_id, partner_id=partner_id)
    partner = db.get(Profile, partner_id)
    return MessageThreadResponse(
        partner_id=partner_id,
        partner_profile=_snapshot(partner),
        display_name=partner.display_name if partner is not None else UNKNOWN_USER,
        messages=[_message_response(message) for message in messages],
    )


@unread_router.get("/unread", response_model=UnreadCountResponse)
async def unread_count_endpoint(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> UnreadCountResponse:
    """Exact number of unread messages addressed to the caller."""

    try:
        count = count_unread_messages(db, cast(UUID, current_user.id))
    except SQLAlchemyError as exc:
        logger.exception("Error fetching unread messages for %s", current_user.id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error") from exc
    return UnreadCountResponse(count=count)


__all__ = ["router", "unread_router"]
