# tests/helpers.py
from typing import Dict, Optional
from urllib.parse import parse_qs, urlparse

from httpx import AsyncClient

from app.services.mailer import VERIFY_EMAIL, MemoryMailer, QueuedMail

API = "/api/v1/customer"
PASSWORD = "MyStrongPass1"


def token_from_mail(mail: QueuedMail) -> str:
    return parse_qs(urlparse(mail.variables["url"]).query)["token"][0]


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def signup(client: AsyncClient, name: str, email: str, password: str = PASSWORD):
    return await client.post(
        f"{API}/auth/signup",
        json={"name": name, "email": email, "password": password, "confirm_password": password},
    )


async def signin(client: AsyncClient, email: str, password: str = PASSWORD):
    return await client.post(f"{API}/auth/signin", json={"email": email, "password": password})


async def register(
    client: AsyncClient,
    mailer: MemoryMailer,
    name: str,
    email: str,
    password: str = PASSWORD,
    verify: bool = True,
) -> Optional[str]:
    """註冊（可選擇是否完成 email 驗證），驗證時回傳登入後的 access token。"""
    r = await signup(client, name, email, password)
    assert r.status_code == 201, r.text
    if not verify:
        return None

    mail = mailer.sent_to(email, VERIFY_EMAIL)[-1]
    r = await client.post(f"{API}/auth/verify", json={"token": token_from_mail(mail)})
    assert r.status_code == 200, r.text

    r = await signin(client, email, password)
    assert r.status_code == 200, r.text
    return r.json()["token"]["value"]


async def first_workspace_id(client: AsyncClient, token: str) -> str:
    r = await client.get(f"{API}/workspace", headers=auth_headers(token))
    assert r.status_code == 200, r.text
    return r.json()["data"][0]["id"]


async def user_id(client: AsyncClient, token: str) -> str:
    r = await client.get(f"{API}/auth/profile", headers=auth_headers(token))
    assert r.status_code == 200, r.text
    return r.json()["user"]["id"]
