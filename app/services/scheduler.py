# app/services/scheduler.py
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from fastapi import FastAPI

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from app.core.config import settings
from app.db.session import AsyncSessionLocal
from app.services.cache import close_cache
from app.services.rate_limit import close_redis
from app.services.token_cleanup import cleanup_expired_tokens

scheduler: Optional[AsyncIOScheduler] = None


@asynccontextmanager
async def lifespan_scheduler(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan：啟動 / 關閉 APScheduler。
    需接受 app 參數（FastAPI 會注入），否則會出現 TypeError。
    """
    global scheduler
    interval = settings.TOKEN_CLEANUP_INTERVAL_MINUTES
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(run_cleanup_job, IntervalTrigger(minutes=interval))
    scheduler.start()
    logger.info("APScheduler started: token cleanup every {} minutes", interval)
    try:
        yield
    finally:
        if scheduler:
            scheduler.shutdown(wait=False)
            logger.info("APScheduler shutdown")
        await close_redis()
        await close_cache()


async def run_cleanup_job() -> int:
    """排程作業：建立一次性 DB session 來清理過期 token。"""
    async with AsyncSessionLocal() as db:
        try:
            deleted = await cleanup_expired_tokens(db)
        except Exception:
            await db.rollback()
            logger.exception("Token cleanup failed")
            return 0
    logger.info("Token cleanup done", deleted=deleted)
    return deleted
