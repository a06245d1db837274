"""Authentication related API routes backed by PostgreSQL."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import AccountResponse, AuthResponse, LoginRequest, RegisterRequest
from ..services import authenticate_user, create_access_token, get_current_user, register_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_endpoint(
    payload: RegisterRequest,
    db: Session = Depends(get_session),
) -> AuthResponse:
    user, token = register_user(db, payload)
    return AuthResponse(access_token=token, user_id=user.id)


@router.post("/login", response_model=AuthResponse)
async def login_endpoint(
    payload: LoginRequest,
    db: Session = Depends(get_session),
) -> AuthResponse:
    user = authenticate_user(db, str(payload.email), payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    token = create_access_token(user.id)
    return AuthResponse(access_token=token, user_id=user.id)


@router.get("/me", response_model=AccountResponse)
async def me_endpoint(current_user: User = Depends(get_current_user)) -> AccountResponse:
    return AccountResponse.model_validate(current_user)


__all__ = ["router"]
