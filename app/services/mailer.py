# app/services/mailer.py
"""
寄信只到「排進佇列」為止：模板渲染與重送不在這個服務內。
預設實作只寫 log；正式環境可替換成送進外部 mail queue 的實作。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import urlencode

from loguru import logger

from app.core.config import settings
from app.services.tokens import TokenHolder

VERIFY_EMAIL = "verify_email"
PASSWORD_RESET = "password_reset"

SUBJECTS = {
    VERIFY_EMAIL: "Verify your email",
    PASSWORD_RESET: "Reset your password",
}


@dataclass
class QueuedMail:
    template: str
    to: str
    subject: str
    variables: Dict[str, Any] = field(default_factory=dict)


class Mailer(Protocol):
    async def queue(self, template: str, to: str, variables: Dict[str, Any]) -> None: ...


class LogMailer:
    async def queue(self, template: str, to: str, variables: Dict[str, Any]) -> None:
        # 不把連結（含 token）寫進 log
        logger.info("Mail queued", template=template, to=to)


class MemoryMailer:
    """測試用：把信件留在 outbox 供斷言。"""

    def __init__(self) -> None:
        self.outbox: List[QueuedMail] = []

    async def queue(self, template: str, to: str, variables: Dict[str, Any]) -> None:
        self.outbox.append(
            QueuedMail(template=template, to=to, subject=SUBJECTS.get(template, ""), variables=dict(variables))
        )

    def sent_to(self, email: str, template: Optional[str] = None) -> List[QueuedMail]:
        return [m for m in self.outbox if m.to == email and (template is None or m.template == template)]


_mailer: Mailer = LogMailer()


def get_mailer() -> Mailer:
    return _mailer


def set_mailer(mailer: Mailer) -> None:
    global _mailer
    _mailer = mailer


def _link(path: str, token: TokenHolder) -> str:
    return f"{settings.FRONTEND_URL}{path}?{urlencode({'token': token.get_value_or_fail()})}"


async def send_verification_email(name: Optional[str], email: str, token: TokenHolder) -> None:
    await get_mailer().queue(
        VERIFY_EMAIL,
        email,
        {
            "name": name,
            "email": email,
            "url": _link(settings.EMAIL_VERIFICATION_PATH, token),
            "expires_in_minutes": settings.EMAIL_VERIFICATION_EXPIRE_MINUTES,
        },
    )


async def send_password_reset_email(name: Optional[str], email: str, token: TokenHolder) -> None:
    await get_mailer().queue(
        PASSWORD_RESET,
        email,
        {
            "name": name,
            "email": email,
            "url": _link(settings.PASSWORD_RESET_PATH, token),
            "expires_in_minutes": settings.PASSWORD_RESET_EXPIRE_MINUTES,
        },
    )
