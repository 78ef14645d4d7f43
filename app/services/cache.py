# app/services/cache.py
"""
成員快取：workspace 的 active members 是「衍生資料」，以 workspace id 為 key。
正確性不靠 TTL：每一個會改動 membership 的路徑都必須在回傳前呼叫 invalidate。
"""
from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable

from redis.asyncio import Redis
from redis.exceptions import WatchError

from app.core.config import settings as _settings


@runtime_checkable
class MemberCache(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def version(self, key: str) -> int: ...

    async def set(self, key: str, value: Any, version: Optional[int] = None) -> bool: ...

    async def invalidate(self, key: str) -> None: ...

    async def aclose(self) -> None: ...


class InMemoryCache:
    """單一行程用（開發 / 測試）。值以 JSON 存，避免呼叫端改到快取內容。"""

    def __init__(self, ttl_sec: int = 3600) -> None:
        self.ttl_sec = ttl_sec
        self._store: Dict[str, Tuple[float, str]] = {}
        self._versions: Dict[str, int] = {}

    async def get(self, key: str) -> Optional[Any]:
        item = self._store.get(key)
        if item is None:
            return None
        expires_at, raw = item
        if expires_at < time.monotonic():
            self._store.pop(key, None)
            return None
        return json.loads(raw)

    async def version(self, key: str) -> int:
        return self._versions.get(key, 0)

    async def set(self, key: str, value: Any, version: Optional[int] = None) -> bool:
        # 讀 DB 期間若有人 invalidate，版本號已變，這筆舊資料不寫入
        if version is not None and self._versions.get(key, 0) != version:
            return False
        self._store[key] = (time.monotonic() + self.ttl_sec, json.dumps(value))
        return True

    async def invalidate(self, key: str) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1
        self._store.pop(key, None)

    async def aclose(self) -> None:
        self.clear()

    def clear(self) -> None:
        self._store.clear()
        self._versions.clear()


class RedisCache:
    """多個 worker 共用；aioredis>=2 已合併到 redis-py（redis.asyncio）。"""

    def __init__(self, url: str, ttl_sec: int = 3600, prefix: str = "cache:") -> None:
        self.url = url
        self.ttl_sec = ttl_sec
        self.prefix = prefix
        self._redis: Optional[Redis] = None

    def _client(self) -> Redis:
        if self._redis is None:
            self._redis = Redis.from_url(self.url, encoding="utf-8", decode_responses=True)
        return self._redis

    def _version_key(self, key: str) -> str:
        return f"{self.prefix}{key}:version"

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._client().get(self.prefix + key)
        return json.loads(raw) if raw is not None else None

    async def version(self, key: str) -> int:
        raw = await self._client().get(self._version_key(key))
        return int(raw) if raw is not None else 0

    async def set(self, key: str, value: Any, version: Optional[int] = None) -> bool:
        if version is None:
            await self._client().set(self.prefix + key, json.dumps(value), ex=self.ttl_sec)
            return True

        # WATCH 版本號：檢查與寫入之間若被 invalidate，EXEC 會失敗
        async with self._client().pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(self._version_key(key))
                current = await pipe.get(self._version_key(key))
                if int(current or 0) != version:
                    await pipe.unwatch()
                    return False
                pipe.multi()
                pipe.set(self.prefix + key, json.dumps(value), ex=self.ttl_sec)
                await pipe.execute()
            except WatchError:
                return False
        return True

    async def invalidate(self, key: str) -> None:
        async with self._client().pipeline(transaction=True) as pipe:
            pipe.incr(self._version_key(key))
            pipe.delete(self.prefix + key)
            await pipe.execute()

    async def aclose(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def active_members_key(workspace_id: str) -> str:
    return f"workspaces:{workspace_id}:active-members"


def _build_cache() -> MemberCache:
    if _settings.CACHE_BACKEND == "redis":
        return RedisCache(_settings.REDIS_URL, ttl_sec=_settings.MEMBER_CACHE_TTL_SEC)
    return InMemoryCache(ttl_sec=_settings.MEMBER_CACHE_TTL_SEC)


_cache: Optional[MemberCache] = None


def get_cache() -> MemberCache:
    global _cache
    if _cache is None:
        _cache = _build_cache()
    return _cache


def set_cache(cache: Optional[MemberCache]) -> None:
    """測試時替換快取實作；傳 None 會在下次 get_cache() 時依設定重建。"""
    global _cache
    _cache = cache


async def close_cache() -> None:
    global _cache
    if _cache is not None:
        await _cache.aclose()
        _cache = None
