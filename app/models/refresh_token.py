import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from app.models.common import Timestamp, utc_now


class RefreshToken(SQLModel, table=True):
    """One issued refresh token. Rotation, logout and password resets revoke it."""

    __tablename__ = "refresh_tokens"
    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    jti: str = Field(unique=True, index=True)
    expires_at: datetime = Field(index=True, sa_type=Timestamp)
    created_at: datetime = Field(default_factory=utc_now, sa_type=Timestamp)
    revoked: bool = False
    revoked_at: datetime | None = Field(default=None, sa_type=Timestamp)

    def revoke(self) -> None:
        if not self.revoked:
            self.revoked = True
            self.revoked_at = utc_now()
