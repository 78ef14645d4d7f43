# tests/test_basic_endpoints.py
import pytest
from httpx import AsyncClient

from app.core.config import Settings, settings
from app.main import create_app
from tests.helpers import API

pytestmark = pytest.mark.asyncio


async def test_ping_health(client: AsyncClient):
    r = await client.get("/api/v1/ping/")
    assert r.status_code == 200
    assert r.json().get("message") == "pong"

    r = await client.get("/api/v1/health/")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "database": "ok"}


async def test_metrics_and_ops(client: AsyncClient):
    """/metrics, /healthz, /readyz 都能正確回應"""
    r = await client.get("/metrics")
    assert r.status_code == 200
    assert "# HELP" in r.text

    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json().get("ok") is True

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json().get("ready") is True


async def test_security_headers(client: AsyncClient):
    r = await client.get("/healthz")
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"


async def test_validation_error_shape(client: AsyncClient):
    r = await client.post(f"{API}/auth/signin", json={"email": "not-an-email"})
    assert r.status_code == 422
    body = r.json()
    assert body["message"] == "Validation error"
    assert {tuple(e["loc"]) for e in body["errors"]} >= {("body", "email"), ("body", "password")}


async def test_create_app_in_production_without_signing_key(monkeypatch):
    """token 不靠簽章金鑰，正式環境不需要額外設定 key 也能啟動"""
    monkeypatch.setattr(settings, "ENV", "production")
    monkeypatch.delenv("SECRET_KEY", raising=False)

    prod_app = create_app()
    assert prod_app.title == settings.APP_NAME
    assert "SECRET_KEY" not in Settings.model_fields
