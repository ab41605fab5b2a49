"""
Authentication endpoints for signup, login and the current user.

Provides:
- Email/password signup for every role (one admin per installation)
- Email/password login returning a bearer token
- Current user lookup
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, EmailStr, Field

from api.dependencies import require_identity
from api.services import users as user_service
from core.config import settings
from core.middleware.authorization import Identity
from core.security import create_access_token
from database.engine import get_db
from database.models.users import UserRole

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


# ==================== Request/Response Models ==================== #

class SignupRequest(BaseModel):
    """User signup request."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: UserRole = UserRole.CANDIDATE
    phone: Optional[str] = Field(None, max_length=50)


class LoginRequest(BaseModel):
    """User login request."""
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    """Authentication response."""
    access_token: str
    token_type: str
    expires_in: int
    user: dict


# ==================== Endpoints ==================== #

@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    db: AsyncSession = Depends(get_db),
):
    """Register a new account."""
    return await user_service.signup(
        db,
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        role=request.role,
        phone=request.phone,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange credentials for a bearer token."""
    user = await user_service.login(db, request.email, request.password)
    access_token = create_access_token(user["user_id"], user["role"])
    return AuthResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60,
        user=user,
    )


@router.get("/me")
async def get_me(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Get the authenticated user's account."""
    user = await user_service.get_current_user(db, identity.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
