# app/models/users.py
from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base, TimestampMixin, new_id
from app.models.enums import Role


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    # bcrypt 雜湊；不會出現在任何輸出 schema
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, native_enum=False, length=16, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=Role.CUSTOMER,
    )
    # 只會被 email 驗證設定一次，之後不會清除
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    @property
    def is_verified(self) -> bool:
        return self.verified_at is not None
