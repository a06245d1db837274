"""Schemas for profile endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProfileSnapshot(BaseModel):
    """Compact profile embedded in messages, posts and connection requests."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: str | None = None
    avatar_url: str | None = None


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    institution: str | None = None
    degree_program: str | None = None
    graduation_year: int | None = None
    program_type: Literal["executive", "fundamental"] = "fundamental"
    status: Literal["pending", "approved", "rejected"] = "pending"
    created_at: datetime
    updated_at: datetime


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = Field(default=None, max_length=150)
    bio: str | None = Field(default=None, max_length=1000)
    institution: str | None = Field(default=None, max_length=255)
    degree_program: str | None = Field(default=None, max_length=255)
    graduation_year: int | None = Field(default=None, ge=1900, le=2100)
    program_type: Literal["executive", "fundamental"] | None = None


class MemberStatsResponse(BaseModel):
    posts: int = 0
    connections: int = 0
    messages: int = 0


__all__ = ["ProfileSnapshot", "ProfileResponse", "ProfileUpdateRequest", "MemberStatsResponse"]
