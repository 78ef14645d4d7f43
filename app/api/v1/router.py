# app/api/v1/router.py
from fastapi import APIRouter

from .endpoints import auth, blogs, health, members, ping, workspaces

# === API v1 主路由 ===
api_router = APIRouter()

# 系統健康檢查
api_router.include_router(health.router, prefix="/health", tags=["health"])

# ping 用於連線測試
api_router.include_router(ping.router, prefix="/ping", tags=["ping"])

# Customer：註冊 / 登入 / email 驗證 / 密碼
api_router.include_router(auth.router, prefix="/customer/auth")

# Customer：workspace 與成員
api_router.include_router(workspaces.router, prefix="/customer/workspace")
api_router.include_router(members.router, prefix="/customer/workspace")

# Customer：workspace 底下的 blog
api_router.include_router(blogs.router, prefix="/customer/workspace/{workspace_id}/blog")
