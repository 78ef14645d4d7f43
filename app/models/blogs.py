# app/models/blogs.py
from typing import Optional
from sqlalchemy import String, Text, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base, TimestampMixin, new_id
from app.models.enums import BlogStatus


class Blog(TimestampMixin, Base):
    __tablename__ = "blogs"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    workspace_id: Mapped[str] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), index=True, nullable=False
    )
    # 作者是 workspace_members.id，而不是 users.id
    author_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("workspace_members.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[BlogStatus] = mapped_column(
        SAEnum(BlogStatus, native_enum=False, length=16, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=BlogStatus.DRAFT,
    )
