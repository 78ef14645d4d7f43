# tests/test_auth.py
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from app.core.config import settings
from app.db.session import AsyncSessionLocal
from app.models.enums import TokenType, WorkspaceMemberRole
from app.models.tokens import Token
from app.models.workspaces import Workspace, WorkspaceMember
from app.services import auth as auth_service
from app.services.mailer import VERIFY_EMAIL
from app.services.tokens import decode_token
from tests.helpers import (
    API,
    PASSWORD,
    auth_headers,
    register,
    signin,
    signup,
    token_from_mail,
)

pytestmark = pytest.mark.asyncio


async def _access_token_count(uid: str) -> int:
    async with AsyncSessionLocal() as db:
        q = select(func.count()).select_from(Token).where(
            Token.tokenable_id == uid, Token.type == TokenType.ACCESS
        )
        return int((await db.execute(q)).scalar_one())


# === Signup ===
async def test_signup_creates_user_workspace_and_verification_mail(client: AsyncClient, mailer):
    r = await signup(client, "Alice", "alice@gmail.com")
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["user"]["email"] == "alice@gmail.com"
    assert body["user"]["verified_at"] is None
    assert "password" not in body["user"] and "password_hash" not in body["user"]
    assert body["meta"]["email"]["verification_required"] is True

    mails = mailer.sent_to("alice@gmail.com", VERIFY_EMAIL)
    assert len(mails) == 1
    assert mails[0].variables["url"].startswith(settings.FRONTEND_URL + settings.EMAIL_VERIFICATION_PATH)

    async with AsyncSessionLocal() as db:
        rows = (
            await db.execute(
                select(Workspace, WorkspaceMember).join(
                    WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id
                ).where(WorkspaceMember.user_id == body["user"]["id"])
            )
        ).all()
    assert len(rows) == 1
    workspace, member = rows[0]
    assert workspace.name == "Alice's Workspace"
    assert member.role == WorkspaceMemberRole.OWNER
    assert member.is_active


async def test_signup_duplicate_email(client: AsyncClient):
    assert (await signup(client, "Alice", "alice@gmail.com")).status_code == 201
    r = await signup(client, "Alice2", "alice@gmail.com")
    assert r.status_code == 400
    assert r.json()["source"] == "email"


async def test_signup_same_email_race_returns_400(client: AsyncClient, monkeypatch):
    """兩個請求都通過 email 檢查後才寫入：第二筆撞 unique index，仍回 400 而不是 500"""
    assert (await signup(client, "Alice", "alice@gmail.com")).status_code == 201

    async def _not_found(db, email):
        return None

    monkeypatch.setattr(auth_service, "get_user_by_email", _not_found)
    r = await signup(client, "Alice2", "alice@gmail.com")
    assert r.status_code == 400, r.text
    assert r.json()["source"] == "email"
    assert r.json()["message"] == auth_service.EMAIL_TAKEN

    async with AsyncSessionLocal() as db:
        assert int((await db.execute(select(func.count()).select_from(Workspace))).scalar_one()) == 1


async def test_signup_password_mismatch(client: AsyncClient):
    r = await client.post(
        f"{API}/auth/signup",
        json={"name": "Bob", "email": "bob@gmail.com", "password": PASSWORD, "confirm_password": "Different1"},
    )
    assert r.status_code == 422


async def test_signup_disabled(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "SIGNUP_ACTIVE", False)
    r = await signup(client, "Alice", "alice@gmail.com")
    assert r.status_code == 403


async def test_signup_without_verification_marks_user_verified(client: AsyncClient, mailer, monkeypatch):
    monkeypatch.setattr(settings, "EMAIL_VERIFICATION_ENABLED", False)
    r = await signup(client, "Alice", "alice@gmail.com")
    assert r.status_code == 201
    assert r.json()["meta"]["email"]["verification_required"] is False
    assert r.json()["user"]["verified_at"] is not None
    assert mailer.outbox == []

    assert (await signin(client, "alice@gmail.com")).status_code == 200


# === Verification ===
async def test_verify_email_is_single_use(client: AsyncClient, mailer):
    await signup(client, "Alice", "alice@gmail.com")
    token = token_from_mail(mailer.sent_to("alice@gmail.com", VERIFY_EMAIL)[0])

    r = await client.post(f"{API}/auth/verify", json={"token": token})
    assert r.status_code == 200, r.text
    assert r.json()["user"]["verified_at"] is not None

    r = await client.post(f"{API}/auth/verify", json={"token": token})
    assert r.status_code == 403


async def test_verify_email_rejects_garbage(client: AsyncClient):
    r = await client.post(f"{API}/auth/verify", json={"token": "at_definitely-not-valid"})
    assert r.status_code == 403


async def test_resend_verification_replaces_previous_token(client: AsyncClient, mailer):
    await signup(client, "Alice", "alice@gmail.com")
    first = token_from_mail(mailer.sent_to("alice@gmail.com", VERIFY_EMAIL)[0])

    r = await client.post(f"{API}/auth/verify/resend", json={"email": "alice@gmail.com"})
    assert r.status_code == 200
    second = token_from_mail(mailer.sent_to("alice@gmail.com", VERIFY_EMAIL)[-1])
    assert first != second

    assert (await client.post(f"{API}/auth/verify", json={"token": first})).status_code == 403
    assert (await client.post(f"{API}/auth/verify", json={"token": second})).status_code == 200


async def test_resend_verification_does_not_leak_accounts(client: AsyncClient, mailer):
    known = await client.post(f"{API}/auth/verify/resend", json={"email": "ghost@gmail.com"})
    await register(client, mailer, "Alice", "alice@gmail.com")
    verified = await client.post(f"{API}/auth/verify/resend", json={"email": "alice@gmail.com"})

    assert known.status_code == verified.status_code == 200
    assert known.json()["message"] == verified.json()["message"]
    assert len(mailer.sent_to("alice@gmail.com", VERIFY_EMAIL)) == 1


# === Signin ===
async def test_signin_returns_opaque_bearer_token(client: AsyncClient, mailer):
    token = await register(client, mailer, "Alice", "alice@gmail.com")
    assert token.startswith("at_")
    assert decode_token(token) is not None

    r = await client.get(f"{API}/auth/profile", headers=auth_headers(token))
    assert r.status_code == 200
    assert r.json()["user"]["email"] == "alice@gmail.com"


async def test_signin_unverified_user(client: AsyncClient):
    await signup(client, "Alice", "alice@gmail.com")
    r = await signin(client, "alice@gmail.com")
    assert r.status_code == 400
    assert r.json()["code"] == "EMAIL_NOT_VERIFIED"


async def test_signin_wrong_password_and_unknown_email_look_alike(client: AsyncClient, mailer):
    await register(client, mailer, "Alice", "alice@gmail.com")
    wrong = await signin(client, "alice@gmail.com", "WrongPass123")
    unknown = await signin(client, "nobody@gmail.com")
    assert wrong.status_code == unknown.status_code == 400
    assert wrong.json()["message"] == unknown.json()["message"]


async def test_signin_disabled(client: AsyncClient, mailer, monkeypatch):
    await register(client, mailer, "Alice", "alice@gmail.com")
    monkeypatch.setattr(settings, "SIGNIN_ACTIVE", False)
    assert (await signin(client, "alice@gmail.com")).status_code == 403


async def test_session_cap_evicts_oldest(client: AsyncClient, mailer):
    first = await register(client, mailer, "Alice", "alice@gmail.com")
    r = await client.get(f"{API}/auth/profile", headers=auth_headers(first))
    uid = r.json()["user"]["id"]

    tokens = [first]
    for _ in range(3):
        r = await signin(client, "alice@gmail.com")
        assert r.status_code == 200
        tokens.append(r.json()["token"]["value"])

    assert await _access_token_count(uid) == settings.SESSION_MAX

    for old in tokens[:-settings.SESSION_MAX]:
        r = await client.get(f"{API}/auth/profile", headers=auth_headers(old))
        assert r.status_code == 401
    for fresh in tokens[-settings.SESSION_MAX:]:
        r = await client.get(f"{API}/auth/profile", headers=auth_headers(fresh))
        assert r.status_code == 200


# === Signout / auth guard ===
async def test_signout_revokes_only_current_token(client: AsyncClient, mailer):
    first = await register(client, mailer, "Alice", "alice@gmail.com")
    second = (await signin(client, "alice@gmail.com")).json()["token"]["value"]

    r = await client.post(f"{API}/auth/signout", headers=auth_headers(first))
    assert r.status_code == 200

    assert (await client.get(f"{API}/auth/profile", headers=auth_headers(first))).status_code == 401
    assert (await client.get(f"{API}/auth/profile", headers=auth_headers(second))).status_code == 200


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer"},
        {"Authorization": "Basic abc"},
        {"Authorization": "Bearer at_bogus.token"},
        {"Authorization": "Bearer not-even-prefixed"},
    ],
)
async def test_unauthorized_is_generic(client: AsyncClient, headers):
    r = await client.get(f"{API}/auth/profile", headers=headers)
    assert r.status_code == 401
    assert r.json()["message"] == "Unauthorized access"
    assert r.headers.get("WWW-Authenticate") == "Bearer"


async def test_rate_limited_signin_via_monkeypatch(client: AsyncClient, mailer, monkeypatch):
    await register(client, mailer, "Alice", "alice@gmail.com")

    # patch 到路由實際引用的位置，且路由端以 await 呼叫 -> 假函式必須是 async
    async def _deny(*args, **kwargs):
        return False, 60

    monkeypatch.setattr("app.api.v1.endpoints.auth.check_limit_and_hit", _deny, raising=True)

    r = await signin(client, "alice@gmail.com")
    assert r.status_code == 429, r.text
    assert r.headers["Retry-After"] == "60"

    r = await signup(client, "Bob", "bob@gmail.com")
    assert r.status_code == 429


async def test_rate_limit_checked_before_business_logic(client: AsyncClient, monkeypatch):
    calls = []

    async def _record(action, ip, email):
        calls.append((action, email))
        return False, 10

    monkeypatch.setattr("app.api.v1.endpoints.auth.check_limit_and_hit", _record)

    # 帳號不存在也一樣先扣配額
    r = await signin(client, "ghost@gmail.com")
    assert r.status_code == 429
    assert calls == [("customer_sign_in", "ghost@gmail.com")]
