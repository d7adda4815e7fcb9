import time

import pytest

from config import settings
from models.admin_user import AdminUser
from routers import rate_limit
from services.accounts import ensure_bootstrap_admin


@pytest.mark.asyncio
async def test_officer_login_by_email_or_mobile(portal_client, seed):
    officer_id = await seed.officer(email="rao@police.example", mobile="9847000001")

    by_email = await portal_client.post(
        "/auth/officer/login", json={"identifier": "RAO@police.example", "password": seed.officer_password}
    )
    by_mobile = await portal_client.post(
        "/auth/officer/login", json={"identifier": "+91 98470 00001", "password": seed.officer_password}
    )

    assert by_email.status_code == 200
    assert by_mobile.status_code == 200
    body = by_mobile.json()
    assert body["role"] == "officer"
    assert body["user_id"] == officer_id

    me = await portal_client.get("/auth/me", headers={"Authorization": f"Bearer {body['session_token']}"})
    assert me.status_code == 200
    assert me.json()["role"] == "officer"
    assert me.json()["email"] == "rao@police.example"
    assert "password_hash" not in me.json()


@pytest.mark.asyncio
async def test_officer_login_rejects_bad_password_and_suspended_accounts(portal_client, seed):
    await seed.officer(email="active@police.example")
    await seed.officer(email="suspended@police.example", status="Suspended")

    wrong = await portal_client.post(
        "/auth/officer/login", json={"identifier": "active@police.example", "password": "not-the-password"}
    )
    unknown = await portal_client.post(
        "/auth/officer/login", json={"identifier": "nobody@police.example", "password": seed.officer_password}
    )
    suspended = await portal_client.post(
        "/auth/officer/login", json={"identifier": "suspended@police.example", "password": seed.officer_password}
    )

    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.json()["detail"] == unknown.json()["detail"]
    assert suspended.status_code == 403


@pytest.mark.asyncio
async def test_admin_login_and_identity(portal_client, seed):
    admin_id = await seed.admin("chief@portal.example")

    response = await portal_client.post(
        "/auth/admin/login", json={"email": "Chief@portal.example", "password": seed.admin_password}
    )
    assert response.status_code == 200
    token = response.json()["session_token"]

    me = await portal_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json() == {"role": "admin", "user_id": admin_id, "email": "chief@portal.example", "name": "Admin"}

    denied = await portal_client.post(
        "/auth/officer/login", json={"identifier": "chief@portal.example", "password": seed.admin_password}
    )
    assert denied.status_code == 401


@pytest.mark.asyncio
async def test_missing_or_tampered_token_is_unauthorized(portal_client):
    missing = await portal_client.get("/auth/me")
    tampered = await portal_client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})

    assert missing.status_code == 401
    assert tampered.status_code == 401


@pytest.mark.asyncio
async def test_bootstrap_admin_is_created_once(session_maker, seed, monkeypatch):
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_EMAIL", "Root@Portal.example")
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_PASSWORD", "bootstrap-pass-123")

    async with session_maker() as session:
        assert await ensure_bootstrap_admin(session) is True
    async with session_maker() as session:
        assert await ensure_bootstrap_admin(session) is False

    admins = await seed.rows(AdminUser)
    assert [admin.email for admin in admins] == ["root@portal.example"]


@pytest.mark.asyncio
async def test_bootstrap_admin_skipped_without_configuration(session_maker, seed, monkeypatch):
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_EMAIL", "")

    async with session_maker() as session:
        assert await ensure_bootstrap_admin(session) is False
    assert await seed.count(AdminUser) == 0


@pytest.mark.asyncio
async def test_local_rate_limit_drops_expired_windows():
    rate_limit._local_windows["ip:203.0.113.7"] = (4, time.time() - 1)

    allowed = await rate_limit._take_local("ip:198.51.100.2", limit=2, window_seconds=60)

    assert allowed is True
    assert "ip:203.0.113.7" not in rate_limit._local_windows
    assert rate_limit._local_windows["ip:198.51.100.2"][0] == 1
