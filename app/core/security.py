from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _encode(subject: str | UUID, token_type: str, lifetime: timedelta, **extra: Any) -> str:
    claims = {
        "sub": str(subject),
        "exp": datetime.now(UTC) + lifetime,
        "type": token_type,
        **extra,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def _decode(token: str, token_type: str) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def create_access_token(subject: str | UUID, role: str | None = None) -> str:
    extra = {"role": role} if role else {}
    return _encode(subject, ACCESS, timedelta(minutes=settings.access_token_expire_minutes), **extra)


def create_refresh_token(subject: str | UUID) -> str:
    return _encode(
        subject,
        REFRESH,
        timedelta(days=settings.refresh_token_expire_days),
        jti=str(uuid4()),
    )


def decode_access_token(token: str) -> str | None:
    payload = _decode(token, ACCESS)
    if not payload or not payload.get("sub"):
        return None
    return str(payload["sub"])


def decode_refresh_token(token: str) -> tuple[str | None, str | None]:
    """Returns (user_id_str, jti) or (None, None)."""
    payload = _decode(token, REFRESH)
    if not payload:
        return None, None
    return payload.get("sub"), payload.get("jti")
