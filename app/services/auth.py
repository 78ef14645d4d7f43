# app/services/auth.py
"""
Customer 帳號流程：註冊 / 登入 / 登出 / email 驗證 / 密碼重設與變更。
回應格式在 endpoint 組；這裡只處理資料與規則。
"""
from datetime import timedelta
from typing import Tuple

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import BadRequestError, ForbiddenError
from app.core.security import hash_password, utcnow, verify_password
from app.db.session import atomic
from app.models.enums import Role, TokenType
from app.models.tokens import Token
from app.models.users import User
from app.services.mailer import send_password_reset_email, send_verification_email
from app.services.tokens import TokenHolder, token_module
from app.services.workspaces import add_owned_workspace

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_TOKEN = "The token is invalid or has expired"
EMAIL_TAKEN = "The email has already been taken."
VERIFICATION_SENT = "If the email exists and is not verified, a verification link has been sent."
RESET_SENT = "If the email exists, a password reset link has been sent."


async def get_user_by_email(db: AsyncSession, email: str):
    return (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()


def _verification_expiry() -> timedelta:
    return timedelta(minutes=settings.EMAIL_VERIFICATION_EXPIRE_MINUTES)


def _reset_expiry() -> timedelta:
    return timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)


# === Signup ===
async def signup(db: AsyncSession, name: str, email: str, password: str) -> User:
    """
    建立 user + 預設 workspace（owner）+ 驗證 token，整筆同一個交易。
    驗證信在 commit 之後才排進佇列。
    """
    if not settings.SIGNUP_ACTIVE:
        raise ForbiddenError("Sign up is currently disabled")

    if await get_user_by_email(db, email) is not None:
        raise BadRequestError(EMAIL_TAKEN, source="email")

    verification_required = settings.EMAIL_VERIFICATION_ENABLED
    token = None
    try:
        async with atomic(db):
            user = User(
                name=name,
                email=email,
                password_hash=hash_password(password),
                role=Role.CUSTOMER,
                verified_at=None if verification_required else utcnow(),
            )
            db.add(user)
            await db.flush()

            await add_owned_workspace(db, user, f"{name}'s Workspace")

            if verification_required:
                token = await token_module.create(
                    db,
                    user=user,
                    type=TokenType.EMAIL_VERIFICATION,
                    expires_in=_verification_expiry(),
                )
    except IntegrityError:
        # 同一 email 同時註冊：檢查通過後仍可能撞到 unique index
        raise BadRequestError(EMAIL_TAKEN, source="email") from None

    if token is not None:
        await send_verification_email(user.name, user.email, token)

    logger.info("User signed up", user_id=user.id)
    return user


# === Signin / Signout ===
async def signin(db: AsyncSession, email: str, password: str) -> Tuple[User, TokenHolder]:
    """
    驗證帳密後簽發 access token。
    同一 user 的 access token 最多 SESSION_MAX 個：先刪最舊的，再簽新的（同一交易）。
    """
    if not settings.SIGNIN_ACTIVE:
        raise ForbiddenError("Sign in is currently disabled")

    user = await get_user_by_email(db, email)
    if user is None:
        # 帳號不存在也算一次雜湊，回應時間不洩漏帳號是否存在
        hash_password(password)
        raise BadRequestError(INVALID_CREDENTIALS)

    if not verify_password(password, user.password_hash):
        raise BadRequestError(INVALID_CREDENTIALS)

    if settings.EMAIL_VERIFICATION_ENABLED and not user.is_verified:
        raise BadRequestError(
            "Please verify your email address before signing in.",
            source="email",
            code="EMAIL_NOT_VERIFIED",
        )

    async with atomic(db):
        evicted = await _evict_oldest_sessions(db, user)
        token = await token_module.create(
            db,
            user=user,
            type=TokenType.ACCESS,
            expires_in=timedelta(minutes=settings.SESSION_EXPIRE_MINUTES),
        )

    logger.info("User signed in", user_id=user.id, evicted_sessions=evicted)
    return user, token


async def _evict_oldest_sessions(db: AsyncSession, user: User) -> int:
    q = select(func.count()).select_from(Token).where(
        Token.tokenable_id == user.id, Token.type == TokenType.ACCESS
    )
    count = int((await db.execute(q)).scalar_one())

    excess = max(0, count - settings.SESSION_MAX + 1)
    if excess == 0:
        return 0

    q = (
        select(Token)
        .where(Token.tokenable_id == user.id, Token.type == TokenType.ACCESS)
        .order_by(Token.created_at.asc(), Token.id.asc())
        .limit(excess)
    )
    for record in (await db.execute(q)).scalars().all():
        await db.delete(record)
    await db.flush()
    return excess


async def signout(db: AsyncSession, token: TokenHolder) -> None:
    await token.delete(db)
    await db.commit()


# === Email verification ===
async def verify_email(db: AsyncSession, value: str) -> User:
    if not settings.EMAIL_VERIFICATION_ENABLED:
        raise ForbiddenError("Email verification is disabled")

    token = await token_module.verify(db, value, TokenType.EMAIL_VERIFICATION)
    if token is None:
        raise ForbiddenError(INVALID_TOKEN)

    user = await db.get(User, token.tokenable_id)
    if user is None:
        raise ForbiddenError(INVALID_TOKEN)
    if user.is_verified:
        raise ForbiddenError("Email is already verified")

    async with atomic(db):
        user.verified_at = utcnow()
        await token.delete(db)

    logger.info("Email verified", user_id=user.id)
    return user


async def resend_verification(db: AsyncSession, email: str) -> str:
    """不論帳號是否存在都回同一句，避免被拿來探測 email。"""
    user = await get_user_by_email(db, email)
    if not settings.EMAIL_VERIFICATION_ENABLED or user is None or user.is_verified:
        return VERIFICATION_SENT

    async with atomic(db):
        token = await token_module.create(
            db,
            user=user,
            type=TokenType.EMAIL_VERIFICATION,
            expires_in=_verification_expiry(),
            delete_if_exists=True,
        )

    await send_verification_email(user.name, user.email, token)
    return VERIFICATION_SENT


# === Password ===
async def forgot_password(db: AsyncSession, email: str) -> str:
    user = await get_user_by_email(db, email)
    if user is None:
        return RESET_SENT

    async with atomic(db):
        token = await token_module.create(
            db,
            user=user,
            type=TokenType.PASSWORD_RESET,
            expires_in=_reset_expiry(),
            delete_if_exists=True,
        )

    await send_password_reset_email(user.name, user.email, token)
    return RESET_SENT


async def reset_password(db: AsyncSession, value: str, new_password: str) -> User:
    token = await token_module.verify(db, value, TokenType.PASSWORD_RESET)
    if token is None:
        raise ForbiddenError(INVALID_TOKEN)

    user = await db.get(User, token.tokenable_id)
    if user is None:
        raise ForbiddenError(INVALID_TOKEN)

    async with atomic(db):
        user.password_hash = hash_password(new_password)
        await token.delete(db)

    logger.info("Password reset", user_id=user.id)
    return user


async def update_password(db: AsyncSession, user: User, old_password: str, new_password: str) -> User:
    if not verify_password(old_password, user.password_hash):
        raise BadRequestError("The old password is incorrect.", source="old_password")

    user.password_hash = hash_password(new_password)
    await db.commit()
    return user
