# app/models/workspaces.py
from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.core.security import utcnow
from app.models.base import Base, TimestampMixin, new_id
from app.models.enums import WorkspaceMemberRole


class Workspace(TimestampMixin, Base):
    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class WorkspaceMember(TimestampMixin, Base):
    """
    User <-> Workspace 的關聯。
    active = joined_at 有值且 left_at 為 NULL；離開只設定 left_at，不刪除資料列。
    """

    __tablename__ = "workspace_members"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    workspace_id: Mapped[str] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), index=True, nullable=False
    )
    role: Mapped[WorkspaceMemberRole] = mapped_column(
        SAEnum(
            WorkspaceMemberRole,
            native_enum=False,
            length=16,
            values_callable=lambda e: [x.value for x in e],
        ),
        nullable=False,
        default=WorkspaceMemberRole.VIEWER,
    )
    joined_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, default=utcnow)
    left_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "workspace_id", name="uq_workspace_members_user_workspace"),
    )

    @property
    def is_active(self) -> bool:
        return self.joined_at is not None and self.left_at is None
