"""
Auth API routes — register, login, logout, current user.

Route prefix: ``config.api_prefix`` (empty by default)
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import AuthContext, db_session, require_user
from auth.schemas import (
    AuthResponse,
    CurrentUserResponse,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
)
from auth.service import AuthResult, AuthService
from auth.tokens import TOKEN_TYPE

router = APIRouter(tags=["auth"])

_UNAUTHENTICATED = {401: {"model": ErrorResponse}}
_INVALID = {422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def _auth_payload(result: AuthResult, message: str) -> Dict[str, Any]:
    return {
        "status": "success",
        "message": message,
        "user": result.user.public_fields(),
        "access_token": result.access_token,
        "token_type": TOKEN_TYPE,
    }


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
    responses=_INVALID,
)
async def register(
    req: RegisterRequest,
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Register a new user."""
    result = await AuthService(session).register(req)
    return _auth_payload(result, "User successfully registered.")


@router.post("/login", response_model=AuthResponse, responses=_INVALID)
async def login(
    req: LoginRequest,
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Login with email + password; revokes the user's earlier tokens."""
    result = await AuthService(session).login(req)
    return _auth_payload(result, "Login successful.")


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={**_UNAUTHENTICATED, 400: {"model": ErrorResponse}},
)
async def logout(
    auth: AuthContext = Depends(require_user),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    await AuthService(session).logout(auth.token)
    return {"status": "success", "message": "Successfully logged out and token revoked."}


@router.get("/user", response_model=CurrentUserResponse, responses=_UNAUTHENTICATED)
async def current_user(
    auth: AuthContext = Depends(require_user),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Return the authenticated user's details."""
    user = await AuthService(session).current_user(auth.token)
    return {"status": "success", "user": user.public_fields(with_created_at=True)}
