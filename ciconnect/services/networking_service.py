"""Business logic for the member directory and connection requests."""
from __future__ import annotations

import logging
from typing import cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..models import NetworkingRequest, Profile, User
from .change_feed import INSERT, UPDATE, schedule_change
from .profile_service import require_profile

logger = logging.getLogger(__name__)

REQUESTS_TABLE = NetworkingRequest.__tablename__

_EXISTING_REQUEST_DETAILS = {
    "accepted": "You are already connected with this user",
    "pending": "Connection request already sent or received",
    "rejected": "Connection request was previously rejected",
}


def _request_record(request: NetworkingRequest) -> dict[str, str]:
    return {
        "id": str(request.id),
        "sender_id": str(request.sender_id),
        "receiver_id": str(request.receiver_id),
        "status": str(request.status),
    }


def list_members(db: Session, *, viewer_id: UUID, search: str | None = None) -> list[Profile]:
    """Every profile except the viewer's, optionally filtered by name or email."""

    stmt = select(Profile).where(Profile.id != viewer_id)
    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(
            or_(
                func.lower(func.coalesce(Profile.full_name, "")).like(pattern),
                func.lower(Profile.email).like(pattern),
            )
        )
    stmt = stmt.order_by(Profile.full_name.asc(), Profile.email.asc())
    try:
        return list(db.scalars(stmt))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error searching members for %s", viewer_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load members") from exc


def list_pending_requests(db: Session, *, user_id: UUID) -> list[NetworkingRequest]:
    stmt = (
        select(NetworkingRequest)
        .where(NetworkingRequest.receiver_id == user_id, NetworkingRequest.status == "pending")
        .options(selectinload(NetworkingRequest.sender_profile))
        .order_by(NetworkingRequest.created_at.desc())
    )
    try:
        return list(db.scalars(stmt))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error fetching pending requests for %s", user_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load requests") from exc


def list_connections(db: Session, *, user_id: UUID) -> list[tuple[NetworkingRequest, UUID, Profile | None]]:
    """Accepted requests in either direction, paired with the other member's profile."""

    stmt = (
        select(NetworkingRequest)
        .where(
            NetworkingRequest.status == "accepted",
            or_(NetworkingRequest.sender_id == user_id, NetworkingRequest.receiver_id == user_id),
        )
        .options(selectinload(NetworkingRequest.sender_profile), selectinload(NetworkingRequest.receiver_profile))
        .order_by(NetworkingRequest.updated_at.desc())
    )
    try:
        accepted = list(db.scalars(stmt))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error fetching connections for %s", user_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load connections") from exc

    connections: list[tuple[NetworkingRequest, UUID, Profile | None]] = []
    for request in accepted:
        if request.sender_id == user_id:
            connections.append((request, cast(UUID, request.receiver_id), request.receiver_profile))
        else:
            connections.append((request, cast(UUID, request.sender_id), request.sender_profile))
    return connections


def _existing_request(db: Session, first: UUID, second: UUID) -> NetworkingRequest | None:
    stmt = select(NetworkingRequest).where(
        or_(
            and_(NetworkingRequest.sender_id == first, NetworkingRequest.receiver_id == second),
            and_(NetworkingRequest.sender_id == second, NetworkingRequest.receiver_id == first),
        )
    )
    return db.scalars(stmt).first()


def send_connection_request(db: Session, *, sender_id: UUID, receiver_id: UUID) -> NetworkingRequest:
    if sender_id == receiver_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot send a connection request to yourself",
        )

    require_profile(db, sender_id)
    if db.get(User, receiver_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    existing = _existing_request(db, sender_id, receiver_id)
    if existing is not None:
        detail = _EXISTING_REQUEST_DETAILS.get(str(existing.status), "Connection request already exists")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    request = NetworkingRequest(sender_id=sender_id, receiver_id=receiver_id, status="pending")
    try:
        db.add(request)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error inserting connection request from %s to %s", sender_id, receiver_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to send connection request") from exc

    db.refresh(request)
    logger.info("Connection request %s sent from %s to %s", request.id, sender_id, receiver_id)
    schedule_change(REQUESTS_TABLE, INSERT, _request_record(request))
    return request


def respond_to_request(db: Session, *, request_id: UUID, recipient_id: UUID, status_value: str) -> NetworkingRequest:
    if status_value not in {"accepted", "rejected"}:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Status must be accepted or rejected")

    request = db.get(NetworkingRequest, request_id)
    if request is None or request.receiver_id != recipient_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    if request.status != "pending":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Request already processed")

    request.status = status_value
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error updating connection request %s", request_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update request") from exc

    db.refresh(request)
    schedule_change(REQUESTS_TABLE, UPDATE, _request_record(request))
    return request


__all__ = [
    "list_members",
    "list_pending_requests",
    "list_connections",
    "send_connection_request",
    "respond_to_request",
]
