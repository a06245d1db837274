"""Schemas for the member directory and connection requests."""
from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .profiles import ProfileSnapshot


class MemberListResponse(BaseModel):
    query: str | None = None
    items: list[ProfileSnapshot]


class ConnectionRequestCreate(BaseModel):
    receiver_id: UUID = Field(..., description="Member the request is addressed to")


class ConnectionRequestUpdate(BaseModel):
    status: Literal["accepted", "rejected"]


class ConnectionRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    status: str
    created_at: datetime
    sender_profile: ProfileSnapshot | None = None


class PendingRequestListResponse(BaseModel):
    items: list[ConnectionRequestResponse]


class ConnectionResponse(BaseModel):
    request_id: UUID
    user_id: UUID
    profile: ProfileSnapshot | None = None
    display_name: str


class ConnectionListResponse(BaseModel):
    items: list[ConnectionResponse]


__all__ = [
    "MemberListResponse",
    "ConnectionRequestCreate",
    "ConnectionRequestUpdate",
    "ConnectionRequestResponse",
    "PendingRequestListResponse",
    "ConnectionResponse",
    "ConnectionListResponse",
]
