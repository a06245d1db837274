"""Member directory and connection request routes."""
from __future__ import annotations

from typing import cast
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import UNKNOWN_USER, NetworkingRequest, User
from ..schemas import (
    ConnectionListResponse,
    ConnectionRequestCreate,
    ConnectionRequestResponse,
    ConnectionRequestUpdate,
    ConnectionResponse,
    MemberListResponse,
    PendingRequestListResponse,
    ProfileSnapshot,
)
from ..services import (
    get_current_user,
    list_connections,
    list_members,
    list_pending_requests,
    respond_to_request,
    send_connection_request,
)

router = APIRouter(prefix="/networking", tags=["networking"])


def _request_response(request: NetworkingRequest) -> ConnectionRequestResponse:
    profile = request.sender_profile
    return ConnectionRequestResponse(
        id=request.id,
        sender_id=request.sender_id,
        receiver_id=request.receiver_id,
        status=str(request.status),
        created_at=request.created_at,
        sender_profile=ProfileSnapshot.model_validate(profile) if profile is not None else None,
    )


@router.get("/members", response_model=MemberListResponse)
async def members_endpoint(
    search: str | None = Query(default=None, max_length=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> MemberListResponse:
    profiles = list_members(db, viewer_id=cast(UUID, current_user.id), search=search)
    return MemberListResponse(query=search, items=[ProfileSnapshot.model_validate(item) for item in profiles])


@router.get("/requests", response_model=PendingRequestListResponse)
async def pending_requests_endpoint(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> PendingRequestListResponse:
    requests = list_pending_requests(db, user_id=cast(UUID, current_user.id))
    return PendingRequestListResponse(items=[_request_response(item) for item in requests])


@router.post("/requests", response_model=ConnectionRequestResponse, status_code=status.HTTP_201_CREATED)
async def send_request_endpoint(
    payload: ConnectionRequestCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ConnectionRequestResponse:
    request = send_connection_request(db, sender_id=cast(UUID, current_user.id), receiver_id=payload.receiver_id)
    return _request_response(request)


@router.post("/requests/{request_id}", response_model=ConnectionRequestResponse)
async def respond_request_endpoint(
    request_id: UUID,
    payload: ConnectionRequestUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ConnectionRequestResponse:
    request = respond_to_request(
        db,
        request_id=request_id,
        recipient_id=cast(UUID, current_user.id),
        status_value=payload.status,
    )
    return _request_response(request)


@router.get("/connections", response_model=ConnectionListResponse)
async def connections_endpoint(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ConnectionListResponse:
    items = [
        ConnectionResponse(
            request_id=request.id,
            user_id=user_id,
            profile=ProfileSnapshot.model_validate(profile) if profile is not None else None,
            display_name=profile.display_name if profile is not None else UNKNOWN_USER,
        )
        for request, user_id, profile in list_connections(db, user_id=cast(UUID, current_user.id))
    ]
    return ConnectionListResponse(items=items)


__all__ = ["router"]
