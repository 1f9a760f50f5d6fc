"""
Public account endpoints.

Endpoints:
    - POST /api/register: Create an account and receive a token
    - POST /api/login: Exchange credentials for a token
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from foodhub.core.security import create_access_token
from foodhub.database import get_db
from foodhub.schemas import AuthResponse, LoginRequest, RegisterRequest, UserSummary
from foodhub.services import accounts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """
    Create an account.

    Customers can use the returned token right away; restaurant and admin
    accounts stay pending until an admin approves them.
    """
    try:
        user = await accounts.register_user(db, data)
        return AuthResponse(
            message="Registration successful",
            user=UserSummary.model_validate(user),
            token=create_access_token(user.id, user.user_type),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Registration error: {e}")
        raise HTTPException(status_code=500, detail="Server error during registration")


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Log in",
)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    try:
        user = await accounts.authenticate(db, data.email, data.password)
        logger.info(f"User #{user.id} logged in")
        return AuthResponse(
            message="Login successful",
            user=UserSummary.model_validate(user),
            token=create_access_token(user.id, user.user_type),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Login error: {e}")
        raise HTTPException(status_code=500, detail="Server error during login")
