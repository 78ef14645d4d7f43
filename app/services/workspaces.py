# app/services/workspaces.py
from typing import List, Optional

from loguru import logger
from sqlalchemy import Select, delete as sa_delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import NotFoundError
from app.core.security import utcnow
from app.db.session import atomic
from app.models.blogs import Blog
from app.models.enums import BlogStatus, Direction, WorkspaceMemberRole
from app.models.users import User
from app.models.workspaces import Workspace, WorkspaceMember
from app.policies import workspace as workspace_policy
from app.policies.base import authorize
from app.schemas.common import Page, PageMeta
from app.schemas.workspace import (
    WorkspaceListQuery,
    WorkspaceMemberRead,
    WorkspaceRead,
    WorkspaceWithMember,
)
from app.services.cache import active_members_key, get_cache


# === Queries ===
def active_member_query(workspace_id: str) -> Select:
    return select(WorkspaceMember).where(
        WorkspaceMember.workspace_id == workspace_id,
        WorkspaceMember.joined_at.is_not(None),
        WorkspaceMember.left_at.is_(None),
    )


async def get_workspace_or_404(db: AsyncSession, workspace_id: str) -> Workspace:
    workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found")
    return workspace


async def owned_workspace_count(db: AsyncSession, user_id: str) -> int:
    q = select(func.count()).select_from(WorkspaceMember).where(
        WorkspaceMember.user_id == user_id,
        WorkspaceMember.role == WorkspaceMemberRole.OWNER,
        WorkspaceMember.left_at.is_(None),
    )
    return int((await db.execute(q)).scalar_one())


async def published_blog_count(db: AsyncSession, workspace_id: str) -> int:
    q = select(func.count()).select_from(Blog).where(
        Blog.workspace_id == workspace_id, Blog.status == BlogStatus.PUBLISHED
    )
    return int((await db.execute(q)).scalar_one())


async def blog_count(db: AsyncSession, workspace_id: str) -> int:
    q = select(func.count()).select_from(Blog).where(Blog.workspace_id == workspace_id)
    return int((await db.execute(q)).scalar_one())


# === Active members（快取）===
async def get_active_members(db: AsyncSession, workspace_id: str) -> List[WorkspaceMemberRead]:
    cache = get_cache()
    key = active_members_key(workspace_id)

    cached = await cache.get(key)
    if cached is not None:
        return [WorkspaceMemberRead.model_validate(m) for m in cached]

    # 先記版本再讀 DB：讀取期間若被 invalidate，舊資料不會寫回快取
    version = await cache.version(key)
    rows = (await db.execute(active_member_query(workspace_id))).scalars().all()
    members = [WorkspaceMemberRead.model_validate(m) for m in rows]
    await cache.set(key, [m.model_dump(mode="json") for m in members], version=version)
    return members


async def invalidate_active_members(workspace_id: str) -> None:
    await get_cache().invalidate(active_members_key(workspace_id))


async def get_member(db: AsyncSession, workspace: Workspace, user: User) -> Optional[WorkspaceMemberRead]:
    members = await get_active_members(db, workspace.id)
    return next((m for m in members if m.user_id == user.id), None)


# === Workspace CRUD ===
async def add_owned_workspace(db: AsyncSession, user: User, name: str) -> Workspace:
    """建立 workspace + owner 成員（只 flush，交易由呼叫端負責）。"""
    workspace = Workspace(name=name)
    db.add(workspace)
    await db.flush()

    db.add(
        WorkspaceMember(
            user_id=user.id,
            workspace_id=workspace.id,
            role=WorkspaceMemberRole.OWNER,
            joined_at=utcnow(),
        )
    )
    await db.flush()
    return workspace


async def create_workspace(db: AsyncSession, user: User, name: str) -> Workspace:
    owned = await owned_workspace_count(db, user.id)
    authorize(workspace_policy.create(owned_workspace_count=owned, workspace_max=settings.WORKSPACE_MAX))

    async with atomic(db):
        workspace = await add_owned_workspace(db, user, name)

    logger.info("Workspace created", workspace_id=workspace.id, user_id=user.id)
    return workspace


async def list_workspaces(db: AsyncSession, user: User, query: WorkspaceListQuery) -> Page[WorkspaceWithMember]:
    """只列出自己是 active member 的 workspace，每筆附上自己的 membership。"""
    conditions = [
        WorkspaceMember.user_id == user.id,
        WorkspaceMember.joined_at.is_not(None),
        WorkspaceMember.left_at.is_(None),
    ]
    if query.filter:
        conditions.append(func.lower(Workspace.name).like(f"%{query.filter.lower()}%"))

    joined = WorkspaceMember.workspace_id == Workspace.id
    total_q = select(func.count()).select_from(Workspace).join(WorkspaceMember, joined).where(*conditions)
    total = int((await db.execute(total_q)).scalar_one())

    base = select(Workspace, WorkspaceMember).join(WorkspaceMember, joined).where(*conditions)

    column = getattr(Workspace, query.order_by)
    ordering = column.asc() if query.order_dir == Direction.ASC else column.desc()
    rows = (
        await db.execute(
            base.order_by(ordering, Workspace.id).offset((query.page - 1) * query.limit).limit(query.limit)
        )
    ).all()

    data = [
        WorkspaceWithMember(
            **WorkspaceRead.model_validate(workspace).model_dump(),
            member=WorkspaceMemberRead.model_validate(member),
        )
        for workspace, member in rows
    ]
    return Page[WorkspaceWithMember](data=data, meta=PageMeta.build(total, query.page, query.limit))


async def show_workspace(db: AsyncSession, user: User, workspace: Workspace) -> Workspace:
    authorize(workspace_policy.view(await get_member(db, workspace, user)))
    return workspace


async def update_workspace(db: AsyncSession, user: User, workspace: Workspace, name: Optional[str]) -> Workspace:
    authorize(workspace_policy.update(await get_member(db, workspace, user)))

    if name:
        workspace.name = name
    await db.commit()
    return workspace


async def delete_workspace(db: AsyncSession, user: User, workspace: Workspace) -> None:
    member = await get_member(db, workspace, user)
    decision = workspace_policy.delete(
        member,
        published_blog_count=await published_blog_count(db, workspace.id),
        owned_workspace_count=await owned_workspace_count(db, user.id),
    )
    authorize(decision)

    workspace_id = workspace.id
    async with atomic(db):
        await db.execute(sa_delete(Blog).where(Blog.workspace_id == workspace_id))
        await db.execute(sa_delete(WorkspaceMember).where(WorkspaceMember.workspace_id == workspace_id))
        await db.delete(workspace)

    await invalidate_active_members(workspace_id)
    logger.info("Workspace deleted", workspace_id=workspace_id, user_id=user.id)
