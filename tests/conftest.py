import os
from datetime import UTC, datetime
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENV", "test")

import httpx  # noqa: E402
import pytest  # noqa: E402

from app.core import db  # noqa: E402
from app.core.db import create_engine_for, create_session_maker, get_session, init_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Professional, ProfessionalSpecialty, Specialty, User, UserRole  # noqa: E402
from app.services import calendar_service  # noqa: E402

# Monday morning; the dates tests book (2025-06-09 to 2025-06-13) are open weekdays
FROZEN_NOW = datetime(2025, 6, 9, 8, 0, tzinfo=UTC)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def clinic_clock(monkeypatch):
    monkeypatch.setattr(calendar_service, "clinic_now", lambda: FROZEN_NOW)
    return FROZEN_NOW


@pytest.fixture
async def engine(tmp_path):
    # A file database so concurrent sessions get their own connections
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'booking.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


@pytest.fixture
async def seed(session_maker):
    u1 = User(email="u1@example.com", name="User One", hashed_password="!")
    u2 = User(email="u2@example.com", name="User Two", hashed_password="!")
    admin = User(email="admin@example.com", name="Admin", role=UserRole.ADMIN.value, hashed_password="!")
    pro_user = User(
        email="silva@example.com", name="Dr. Silva", role=UserRole.PROFESSIONAL.value, hashed_password="!"
    )
    massage = Specialty(name="Massagem")
    p1 = Professional(name="Dr. Silva", user_id=pro_user.id)
    p2 = Professional(name="Dra. Santos")
    async with session_maker() as s:
        s.add_all([u1, u2, admin, pro_user, massage])
        await s.flush()
        s.add_all([p1, p2])
        await s.flush()
        s.add(ProfessionalSpecialty(professional_id=p1.id, specialty_id=massage.id))
        await s.commit()
    return SimpleNamespace(u1=u1, u2=u2, admin=admin, pro_user=pro_user, specialty=massage, p1=p1, p2=p2)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, role=user.role)}"}


@pytest.fixture
async def client(session_maker, monkeypatch):
    async def override_get_session():
        async with session_maker() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    # Background notifications open their own sessions
    monkeypatch.setattr(db, "async_session_maker", session_maker)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
