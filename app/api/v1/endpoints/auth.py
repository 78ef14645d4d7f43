# app/api/v1/endpoints/auth.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.deps import AuthSession, get_customer_session
from app.core.errors import TooManyRequestsError
from app.db.session import get_db
from app.schemas.auth import (
    EmailMeta,
    EmailRequest,
    MessageResponse,
    PasswordResetRequest,
    PasswordUpdateRequest,
    ProfileResponse,
    SignInRequest,
    SignInResponse,
    SignUpMeta,
    SignUpRequest,
    SignUpResponse,
    Token,
    TokenRequest,
    UserMessageResponse,
)
from app.schemas.user import UserRead
from app.services import auth as auth_service
from app.services.rate_limit import check_limit_and_hit

router = APIRouter(tags=["auth"])


def _client_ip(request: Request) -> str:
    return (request.client.host if request.client else "unknown") or "unknown"


async def _rate_limit(action: str, request: Request, email: str) -> None:
    """在任何業務邏輯之前先扣配額；超過就 429。"""
    allowed, retry_after = await check_limit_and_hit(action, _client_ip(request), email)
    if not allowed:
        raise TooManyRequestsError(
            "Too many attempts. Please try again later.",
            retry_after=retry_after,
        )


# === 註冊（含 Redis Rate Limit） ===
@router.post("/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignUpRequest, request: Request, db: AsyncSession = Depends(get_db)):
    await _rate_limit("customer_sign_up", request, payload.email)

    user = await auth_service.signup(db, payload.name, payload.email, payload.password)
    verification_required = settings.EMAIL_VERIFICATION_ENABLED
    message = (
        "Account created. Please check your email to verify your address."
        if verification_required
        else "Account created successfully."
    )
    return SignUpResponse(
        user=UserRead.model_validate(user),
        message=message,
        meta=SignUpMeta(email=EmailMeta(verification_required=verification_required)),
    )


# === 登入（含 Redis Rate Limit） ===
@router.post("/signin", response_model=SignInResponse)
async def signin(payload: SignInRequest, request: Request, db: AsyncSession = Depends(get_db)):
    await _rate_limit("customer_sign_in", request, payload.email)

    _, token = await auth_service.signin(db, payload.email, payload.password)
    return SignInResponse(token=Token(**token.serialize()), message="Signed in successfully.")


@router.post("/signout", response_model=MessageResponse)
async def signout(
    session: AuthSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.signout(db, session.token)
    return MessageResponse(message="Signed out successfully.")


# === Email 驗證 ===
@router.post("/verify", response_model=UserMessageResponse)
async def verify_email(payload: TokenRequest, db: AsyncSession = Depends(get_db)):
    user = await auth_service.verify_email(db, payload.token)
    return UserMessageResponse(user=UserRead.model_validate(user), message="Email verified successfully.")


@router.post("/verify/resend", response_model=MessageResponse)
async def resend_verification(payload: EmailRequest, db: AsyncSession = Depends(get_db)):
    message = await auth_service.resend_verification(db, payload.email)
    return MessageResponse(message=message)


@router.get("/profile", response_model=ProfileResponse)
async def profile(session: AuthSession = Depends(get_customer_session)):
    return ProfileResponse(user=UserRead.model_validate(session.user))


# === 密碼 ===
@router.post("/password/update", response_model=UserMessageResponse)
async def update_password(
    payload: PasswordUpdateRequest,
    session: AuthSession = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.update_password(db, session.user, payload.old_password, payload.new_password)
    return UserMessageResponse(user=UserRead.model_validate(user), message="Password updated successfully.")


@router.post("/password/forgot", response_model=MessageResponse)
async def forgot_password(payload: EmailRequest, db: AsyncSession = Depends(get_db)):
    message = await auth_service.forgot_password(db, payload.email)
    return MessageResponse(message=message)


@router.post("/password/reset", response_model=UserMessageResponse)
async def reset_password(payload: PasswordResetRequest, db: AsyncSession = Depends(get_db)):
    user = await auth_service.reset_password(db, payload.token, payload.new_password)
    return UserMessageResponse(user=UserRead.model_validate(user), message="Password reset successfully.")
