"""Profile API routes backed by PostgreSQL."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import MemberStatsResponse, ProfileResponse, ProfileUpdateRequest
from ..services import (
    ObjectStorage,
    get_current_user,
    get_member_stats,
    get_object_storage,
    get_or_create_profile,
    update_profile,
    upload_avatar,
)

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileResponse)
async def retrieve_my_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ProfileResponse:
    """Fetch the caller's profile, creating an empty one on first visit."""

    return ProfileResponse.model_validate(get_or_create_profile(db, current_user))


@router.get("/me/stats", response_model=MemberStatsResponse)
async def retrieve_my_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> MemberStatsResponse:
    return MemberStatsResponse(**get_member_stats(db, current_user.id))


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ProfileResponse:
    updated = update_profile(db, user=current_user, payload=payload)
    return ProfileResponse.model_validate(updated)


@router.post("/me/avatar", response_model=ProfileResponse)
async def upload_my_avatar(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    storage: ObjectStorage = Depends(get_object_storage),
) -> ProfileResponse:
    """Upload a new avatar to the avatars bucket and point the profile at it."""

    profile = await upload_avatar(db, user=current_user, file=file, storage=storage)
    return ProfileResponse.model_validate(profile)


__all__ = ["router"]
