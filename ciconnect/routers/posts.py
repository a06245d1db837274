"""Post related API routes backed by PostgreSQL and S3-compatible storage."""
from __future__ import annotations

import logging
from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import (
    PostCommentCreate,
    PostCommentResponse,
    PostEngagementResponse,
    PostFeedResponse,
    PostResponse,
)
from ..services import (
    ObjectStorage,
    add_comment,
    create_post,
    get_current_user,
    get_object_storage,
    get_optional_user,
    list_feed,
    toggle_like,
)

router = APIRouter(prefix="/posts", tags=["posts"])

logger = logging.getLogger(__name__)


@router.get("/", response_model=PostFeedResponse)
async def feed_endpoint(
    current_user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_session),
) -> PostFeedResponse:
    viewer_id = cast(UUID, current_user.id) if current_user is not None else None
    records = list_feed(db, viewer_id=viewer_id)
    return PostFeedResponse(items=[PostResponse.model_validate(record) for record in records])


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    content: str = Form(...),
    image: UploadFile | None = File(None),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    storage: ObjectStorage = Depends(get_object_storage),
) -> PostResponse:
    """Create a new post, optionally storing an uploaded image first.

    Expects ``multipart/form-data``; the image field may be omitted for text-only posts.
    """

    record = await create_post(
        db,
        author_id=cast(UUID, current_user.id),
        content=content,
        image=image,
        storage=storage,
    )
    logger.info("Post %s created by %s", record["id"], current_user.id)
    return PostResponse.model_validate(record)


@router.post("/{post_id}/like", response_model=PostEngagementResponse)
async def toggle_like_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostEngagementResponse:
    snapshot = toggle_like(db, post_id=post_id, user_id=cast(UUID, current_user.id))
    return PostEngagementResponse.model_validate(snapshot)


@router.post("/{post_id}/comments", response_model=PostCommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment_endpoint(
    post_id: UUID,
    payload: PostCommentCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> PostCommentResponse:
    comment = add_comment(db, post_id=post_id, author_id=cast(UUID, current_user.id), content=payload.content)
    return PostCommentResponse.model_validate(comment)


__all__ = ["router"]
