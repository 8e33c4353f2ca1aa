import pytest
from sqlalchemy import select

from app.core.security import create_refresh_token, decode_access_token, decode_refresh_token
from app.models import RefreshToken
from tests.conftest import auth_headers

pytestmark = pytest.mark.anyio

SIGNUP = {"email": "Ana@Example.com", "password": "s3cret-pass", "name": "Ana", "department": "Finance"}


def test_token_types_are_not_interchangeable():
    refresh = create_refresh_token("abc")
    assert decode_access_token(refresh) is None
    sub, jti = decode_refresh_token(refresh)
    assert sub == "abc"
    assert jti


async def test_signup_login_and_me(client):
    resp = await client.post("/api/v1/auth/signup", json=SIGNUP)
    assert resp.status_code == 200
    tokens = resp.json()
    assert tokens["token_type"] == "bearer"

    resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert resp.status_code == 200
    me = resp.json()
    assert me["email"] == "ana@example.com"
    assert me["role"] == "user"

    resp = await client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "s3cret-pass"})
    assert resp.status_code == 200

    resp = await client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "wrong-pass"})
    assert resp.status_code == 401


async def test_duplicate_signup_conflicts(client):
    await client.post("/api/v1/auth/signup", json=SIGNUP)
    resp = await client.post("/api/v1/auth/signup", json={**SIGNUP, "email": "ana@example.com"})
    assert resp.status_code == 409


async def test_refresh_rotates_and_logout_revokes(client, session_maker):
    tokens = (await client.post("/api/v1/auth/signup", json=SIGNUP)).json()

    resp = await client.post("/api/v1/auth/refresh", headers={"X-Refresh-Token": tokens["refresh_token"]})
    assert resp.status_code == 200
    rotated = resp.json()

    resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 401

    await client.post("/api/v1/auth/logout", headers={"X-Refresh-Token": rotated["refresh_token"]})
    resp = await client.post("/api/v1/auth/refresh", headers={"X-Refresh-Token": rotated["refresh_token"]})
    assert resp.status_code == 401

    async with session_maker() as s:
        rows = (await s.execute(select(RefreshToken))).scalars().all()
    assert len(rows) == 2
    assert all(r.revoked and r.revoked_at is not None for r in rows)


async def test_admin_password_reset(client, seed):
    tokens = (await client.post("/api/v1/auth/signup", json=SIGNUP)).json()
    me = (await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})).json()
    url = f"/api/v1/auth/users/{me['id']}/password"

    resp = await client.post(url, json={"new_password": "another-pass"}, headers=auth_headers(seed.u1))
    assert resp.status_code == 403

    resp = await client.post(url, json={"new_password": "another-pass"}, headers=auth_headers(seed.admin))
    assert resp.status_code == 200

    resp = await client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "another-pass"})
    assert resp.status_code == 200
    resp = await client.post("/api/v1/auth/refresh", headers={"X-Refresh-Token": tokens["refresh_token"]})
    assert resp.status_code == 401

    resp = await client.post(
        f"/api/v1/auth/users/{seed.p1.id}/password",
        json={"new_password": "another-pass"},
        headers=auth_headers(seed.admin),
    )
    assert resp.status_code == 404
