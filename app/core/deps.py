# app/core/deps.py
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Path
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, UnauthorizedError
from app.db.session import get_db
from app.models.enums import Role, TokenType
from app.models.users import User
from app.models.workspaces import Workspace
from app.services.tokens import TokenHolder, token_module
from app.services.workspaces import get_workspace_or_404

# 沒帶 Authorization 時不由 FastAPI 回 403，統一在下面轉成 401
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthSession:
    user: User
    token: TokenHolder


async def get_auth_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthSession:
    """
    從 Bearer access token 解析目前使用者：
      1️⃣ Token Module 驗證（格式 / 存在 / hash / 過期，任何失敗都是 None）
      2️⃣ 寫回 last_used_at
      3️⃣ 依 tokenable_id 取得 User
    不區分「過期」與「不存在」，一律回同一個 401。
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    token = await token_module.verify(db, credentials.credentials, TokenType.ACCESS)
    # 找得到紀錄就會更新 last_used_at（比對結果不影響），這裡一併 commit
    await db.commit()
    if token is None:
        raise UnauthorizedError()

    user = await db.get(User, token.tokenable_id)
    if user is None:
        raise UnauthorizedError()
    return AuthSession(user=user, token=token)


async def get_customer_session(session: AuthSession = Depends(get_auth_session)) -> AuthSession:
    if session.user.role != Role.CUSTOMER:
        raise ForbiddenError()
    return session


async def get_current_customer(session: AuthSession = Depends(get_customer_session)) -> User:
    return session.user


async def get_workspace(
    workspace_id: str = Path(min_length=1, max_length=32),
    db: AsyncSession = Depends(get_db),
) -> Workspace:
    return await get_workspace_or_404(db, workspace_id)
