"""Authentication router for /api/v1/auth/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tcgp.auth.jwt import create_access_token
from tcgp.auth.schemas import LoginRequest, RegisterRequest, TokenResponse
from tcgp.auth.service import authenticate_user, register_user
from tcgp.config import get_settings
from tcgp.database import get_session
from tcgp.db.models import User
from tcgp.users.schemas import UserResponse

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def _issue_token(user: User) -> TokenResponse:
    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(user.id, user.email),
        token_type="bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=UserResponse.from_user(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Create an account and return an access token."""
    user = await register_user(db, body.email, body.password, body.tcg_pocket_username)
    await db.commit()
    return _issue_token(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Login with email + password."""
    try:
        user = await authenticate_user(db, body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return _issue_token(user)
