# tests/conftest.py
import os
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ---- 測試期環境變數（先於 app 載入）----
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("ENV", "test")

from app.main import app  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import engine  # noqa: E402
from app.services.cache import InMemoryCache, set_cache  # noqa: E402
from app.services.mailer import MemoryMailer, set_mailer  # noqa: E402


@pytest_asyncio.fixture(autouse=True)
async def reset_db():
    """每個測試都從空的 schema 開始。"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield


@pytest.fixture(autouse=True)
def member_cache():
    cache = InMemoryCache()
    set_cache(cache)
    yield cache
    set_cache(None)


@pytest.fixture(autouse=True)
def mailer():
    outbox = MemoryMailer()
    set_mailer(outbox)
    yield outbox


@pytest_asyncio.fixture
async def client():
    """使用 ASGITransport 直接掛載 app，不需啟動伺服器。"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

