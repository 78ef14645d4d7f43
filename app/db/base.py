# app/db/base.py
# 匯入所有模型，讓 Base.metadata 完整（Alembic / 測試 create_all 用）
from app.models.base import Base  # noqa: F401
from app.models.users import User  # noqa: F401
from app.models.tokens import Token  # noqa: F401
from app.models.workspaces import Workspace, WorkspaceMember  # noqa: F401
from app.models.blogs import Blog  # noqa: F401
