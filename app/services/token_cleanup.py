# app/services/token_cleanup.py
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import utcnow
from app.models.tokens import Token


async def cleanup_expired_tokens(db: AsyncSession) -> int:
    """刪除已過期的 token（access / 驗證 / 重設），回傳刪除數量。"""
    stmt = delete(Token).where(Token.expires_at.is_not(None), Token.expires_at < utcnow())
    res = await db.execute(stmt)
    await db.commit()
    return res.rowcount or 0
