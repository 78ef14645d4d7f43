# app/services/rate_limit.py
from __future__ import annotations

import secrets
import time
from typing import Optional, Tuple

from redis.asyncio import Redis
from app.core.config import settings as _settings

# 單例 Redis（lazy-init）
_redis: Optional[Redis] = None


def _enabled() -> bool:
    # 每次呼叫時讀設定，測試可以直接 monkeypatch settings.RATE_LIMIT_ENABLED
    return bool(getattr(_settings, "RATE_LIMIT_ENABLED", True))


def get_redis() -> Redis:
    """Lazy 初始化 Redis 連線。aioredis>=2 已合併到 redis-py（redis.asyncio）。"""
    if not _enabled():
        # 停用時理論上不應呼叫；若被誤用，明確拋錯幫助定位
        raise RuntimeError("Rate limit is disabled in current environment")
    global _redis
    if _redis is None:
        _redis = Redis.from_url(
            _settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,  # 用字串便於除錯
        )
    return _redis


def _key(action: str, ip: str, email: Optional[str]) -> str:
    return f"rl:{action}:{ip or 'unknown'}:{(email or '').lower()}"


async def _prune(redis: Redis, key: str, now_s: float, window: int) -> None:
    """移除滑動視窗外的紀錄（score < now - window）。"""
    await redis.zremrangebyscore(key, "-inf", now_s - window)


async def _oldest_ts(redis: Redis, key: str) -> Optional[float]:
    """取得窗口內最舊嘗試的時間戳（若無則 None）。"""
    data = await redis.zrange(key, 0, 0, withscores=True)
    if data:
        # 形式 [(member, score)]，score 為 epoch 秒
        return float(data[0][1])
    return None


async def _hit(redis: Redis, key: str, now_s: float, window: int) -> None:
    """記錄一次嘗試（ZSET，score=now），並讓整個 key 在視窗後自動過期。"""
    # 同一微秒內的兩次嘗試也要各算一筆
    member = f"{now_s:.6f}:{secrets.token_hex(4)}"
    await redis.zadd(key, {member: now_s})
    await redis.expire(key, window)


async def check_limit_and_hit(action: str, ip: str, email: Optional[str]) -> Tuple[bool, int]:
    """
    consume-or-fail：檢查 action+ip+email 的配額；若允許，會「順便記一次嘗試」。
    回傳：(allowed, retry_after_seconds)
      若超出，retry_after = 距離最舊紀錄出窗的剩餘秒數（>=1）。
    """
    # 測試或停用狀態：直接放行，不碰 Redis
    if not _enabled():
        return True, 0

    window = int(_settings.RATE_LIMIT_WINDOW_SEC)
    max_attempts = int(_settings.RATE_LIMIT_MAX_ATTEMPTS)

    r = get_redis()
    now_s = time.time()
    key = _key(action, ip, email)

    await _prune(r, key, now_s, window)
    count = int(await r.zcard(key))
    if count >= max_attempts:
        oldest = await _oldest_ts(r, key)
        retry_after = max(1, int(window - (now_s - (oldest or now_s))))
        return False, retry_after

    await _hit(r, key, now_s, window)
    return True, 0


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
