import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_admin_user, get_current_user, refresh_header
from app.api.schemas.auth import (
    LoginRequest,
    PasswordResetRequest,
    RefreshRequest,
    SignupRequest,
    SuspensionRequest,
    TokenPair,
)
from app.core.db import get_session
from app.core.security import decode_refresh_token
from app.models.user import User, UserPublic
from app.services.auth_service import (
    login_user,
    refresh_tokens,
    reset_password,
    revoke_refresh_token,
    set_suspension,
    signup_user,
    user_to_public,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_pair(bundle: tuple) -> TokenPair:
    _, access, refresh, expires_in = bundle
    return TokenPair(access_token=access, refresh_token=refresh, expires_in=expires_in)


@router.post("/login", response_model=TokenPair)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> TokenPair:
    bundle = await login_user(session, body.email, body.password)
    if not bundle:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return _token_pair(bundle)


@router.post("/signup", response_model=TokenPair)
async def signup(
    body: SignupRequest,
    session: AsyncSession = Depends(get_session),
) -> TokenPair:
    bundle = await signup_user(session, body.email, body.password, body.name, body.department)
    if not bundle:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )
    return _token_pair(bundle)


@router.post("/refresh", response_model=TokenPair)
async def refresh(
    session: AsyncSession = Depends(get_session),
    x_refresh_token: str | None = Depends(refresh_header),
    body: RefreshRequest | None = None,
) -> TokenPair:
    token = x_refresh_token or (body.refresh_token if body else None)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required (header X-Refresh-Token or body refresh_token)",
        )
    bundle = await refresh_tokens(session, token)
    if not bundle:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )
    return _token_pair(bundle)


@router.post("/logout")
async def logout(
    session: AsyncSession = Depends(get_session),
    x_refresh_token: str | None = Depends(refresh_header),
    body: RefreshRequest | None = None,
) -> dict:
    token = x_refresh_token or (body.refresh_token if body else None)
    if token:
        _, jti = decode_refresh_token(token)
        if jti:
            await revoke_refresh_token(session, jti)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserPublic)
async def me(current_user: User = Depends(get_current_user)) -> UserPublic:
    return user_to_public(current_user)


@router.post("/users/{user_id}/password")
async def admin_reset_password(
    user_id: UUID,
    body: PasswordResetRequest,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(get_admin_user),
) -> dict:
    if not await reset_password(session, user_id, body.new_password):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    logger.info("Admin %s reset password of user %s", admin.id, user_id)
    return {"message": "Password updated"}


@router.put("/users/{user_id}/suspension", response_model=UserPublic)
async def admin_set_suspension(
    user_id: UUID,
    body: SuspensionRequest,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(get_admin_user),
) -> UserPublic:
    """Suspend a user from booking until suspended_until. Existing appointments stay."""
    user = await set_suspension(session, user_id, body.suspended_until)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user_to_public(user)
