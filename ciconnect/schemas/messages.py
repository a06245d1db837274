"""Schemas used by messaging endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .profiles import ProfileSnapshot


class MessageSendRequest(BaseModel):
    receiver_id: UUID = Field(..., description="Member receiving the direct message")
    content: str = Field(..., max_length=2000)


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    content: str
    sender_id: UUID
    receiver_id: UUID
    created_at: datetime
    read: bool = False
    sender_profile: ProfileSnapshot | None = None


class ConversationResponse(BaseModel):
    user_id: UUID
    user_profile: ProfileSnapshot | None = None
    display_name: str
    last_message: MessageResponse
    unread_count: int = 0


class ConversationListResponse(BaseModel):
    items: List[ConversationResponse]


class MessageThreadResponse(BaseModel):
    partner_id: UUID
    partner_profile: ProfileSnapshot | None = None
    display_name: str
    messages: List[MessageResponse]


class MarkReadResponse(BaseModel):
    partner_id: UUID
    updated: int


class UnreadCountResponse(BaseModel):
    count: int


__all__ = [
    "MessageSendRequest",
    "MessageResponse",
    "ConversationResponse",
    "ConversationListResponse",
    "MessageThreadResponse",
    "MarkReadResponse",
    "UnreadCountResponse",
]
