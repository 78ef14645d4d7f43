# app/models/tokens.py
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base, TimestampMixin
from app.models.enums import TokenType


class Token(TimestampMixin, Base):
    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # token 的擁有者（目前只有 users）
    tokenable_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    # access / email_verification / password_reset
    type: Mapped[TokenType] = mapped_column(
        SAEnum(TokenType, native_enum=False, length=32, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # 只存 secret 的 sha256，不存 secret 本身
    hash: Mapped[str] = mapped_column(String(64), nullable=False)
    abilities: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
