import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    verify_password,
)
from app.models.common import as_utc, utc_now
from app.models.refresh_token import RefreshToken
from app.models.user import User, UserCreate, UserPublic

logger = logging.getLogger(__name__)

TokenBundle = tuple[User, str, str, int]


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def get_user(session: AsyncSession, user_id: UUID) -> User | None:
    return await session.get(User, user_id)


async def create_user(session: AsyncSession, data: UserCreate) -> User:
    user = User(
        email=normalize_email(data.email),
        name=data.name.strip() or data.email,
        department=data.department,
        role=data.role.value,
        hashed_password=hash_password(data.password),
    )
    session.add(user)
    await session.flush()
    return user


def user_to_public(user: User) -> UserPublic:
    return UserPublic(
        id=user.id,
        email=user.email,
        name=user.name,
        department=user.department,
        role=user.role,
        suspended_until=user.suspended_until,
    )


def make_token_pair(user: User) -> tuple[str, str, int]:
    access = create_access_token(user.id, role=user.role)
    refresh = create_refresh_token(user.id)
    expires_in = settings.access_token_expire_minutes * 60
    return access, refresh, expires_in


async def store_refresh_token(session: AsyncSession, user_id: UUID, refresh_token: str) -> None:
    user_id_str, jti = decode_refresh_token(refresh_token)
    if not user_id_str or not jti:
        return
    expires_at = utc_now() + timedelta(days=settings.refresh_token_expire_days)
    session.add(RefreshToken(user_id=user_id, jti=jti, expires_at=expires_at))
    await session.flush()


async def _issue_tokens(session: AsyncSession, user: User) -> TokenBundle:
    access, refresh, expires_in = make_token_pair(user)
    await store_refresh_token(session, user_id=user.id, refresh_token=refresh)
    return user, access, refresh, expires_in


async def login_user(session: AsyncSession, email: str, password: str) -> TokenBundle | None:
    user = await get_user_by_email(session, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return await _issue_tokens(session, user)


async def signup_user(
    session: AsyncSession,
    email: str,
    password: str,
    name: str,
    department: str | None = None,
) -> TokenBundle | None:
    if await get_user_by_email(session, email):
        return None
    user = await create_user(
        session, UserCreate(email=email, password=password, name=name, department=department)
    )
    logger.info("User %s signed up", user.id)
    return await _issue_tokens(session, user)


async def revoke_refresh_token(session: AsyncSession, jti: str) -> None:
    result = await session.execute(select(RefreshToken).where(RefreshToken.jti == jti))
    row = result.scalar_one_or_none()
    if row:
        row.revoke()
        session.add(row)


async def refresh_tokens(session: AsyncSession, refresh_token: str) -> TokenBundle | None:
    user_id_str, jti = decode_refresh_token(refresh_token)
    if not user_id_str or not jti:
        return None
    result = await session.execute(
        select(RefreshToken).where(
            RefreshToken.jti == jti,
            RefreshToken.revoked == False,  # noqa: E712
            RefreshToken.expires_at > utc_now(),
        )
    )
    token_row = result.scalar_one_or_none()
    if not token_row:
        return None
    try:
        user = await get_user(session, UUID(user_id_str))
    except ValueError:
        return None
    if not user:
        return None
    token_row.revoke()
    session.add(token_row)
    return await _issue_tokens(session, user)


async def reset_password(session: AsyncSession, user_id: UUID, new_password: str) -> bool:
    """Admin password reset. Revokes the user's outstanding refresh tokens."""
    user = await get_user(session, user_id)
    if not user:
        return False
    user.hashed_password = hash_password(new_password)
    session.add(user)
    result = await session.execute(
        select(RefreshToken).where(RefreshToken.user_id == user_id, RefreshToken.revoked == False)  # noqa: E712
    )
    for row in result.scalars().all():
        row.revoke()
        session.add(row)
    await session.flush()
    logger.info("Password reset for user %s", user_id)
    return True


async def set_suspension(session: AsyncSession, user_id: UUID, until: datetime | None) -> User | None:
    """Admin suspension. The user cannot book until `until`; None lifts it."""
    user = await get_user(session, user_id)
    if not user:
        return None
    user.suspended_until = as_utc(until) if until else None
    session.add(user)
    await session.flush()
    logger.info("User %s suspended until %s", user_id, until)
    return user
