# app/services/members.py
"""
Workspace membership 的生命週期：加入 / 移除 / 改角色 / 離開 / 轉移擁有權。
每一條改動 membership 的路徑，commit 之後都要讓 active members 快取失效。
"""
from typing import Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import BadRequestError, NotFoundError
from app.core.security import utcnow
from app.db.session import atomic
from app.models.enums import WorkspaceMemberRole
from app.models.users import User
from app.models.workspaces import Workspace, WorkspaceMember
from app.policies import workspace as workspace_policy
from app.policies.base import authorize
from app.services.workspaces import (
    active_member_query,
    get_member,
    invalidate_active_members,
    owned_workspace_count,
)


async def _active_member_row(db: AsyncSession, workspace_id: str, user_id: str) -> Optional[WorkspaceMember]:
    q = active_member_query(workspace_id).where(WorkspaceMember.user_id == user_id)
    return (await db.execute(q)).scalar_one_or_none()


async def _set_role(db: AsyncSession, member: WorkspaceMember, role: WorkspaceMemberRole) -> None:
    member.role = role
    await db.flush()


async def add_member(
    db: AsyncSession,
    actor: User,
    workspace: Workspace,
    email: str,
    role: Optional[WorkspaceMemberRole] = None,
) -> WorkspaceMember:
    """
    加入成員：
      - 只能加已驗證 email 的 user（否則 404）
      - 已是 active member -> 400
      - 曾經離開 -> 重新啟用同一列（清掉 left_at），不新增第二列
    """
    authorize(workspace_policy.manage_members(await get_member(db, workspace, actor)))

    q = select(User).where(User.email == email, User.verified_at.is_not(None))
    user_to_add = (await db.execute(q)).scalar_one_or_none()
    if user_to_add is None:
        raise NotFoundError("No verified user was found with the provided email address.")

    q = select(WorkspaceMember).where(
        WorkspaceMember.workspace_id == workspace.id,
        WorkspaceMember.user_id == user_to_add.id,
    )
    existing = (await db.execute(q)).scalar_one_or_none()

    async with atomic(db):
        if existing is not None:
            if existing.is_active:
                raise BadRequestError("This user is already a member of the workspace.")

            existing.left_at = None
            if settings.MEMBER_REJOIN_RESETS_JOINED_AT or existing.joined_at is None:
                existing.joined_at = utcnow()
            if role is not None:
                existing.role = role
            member = existing
        else:
            member = WorkspaceMember(
                user_id=user_to_add.id,
                workspace_id=workspace.id,
                role=role or WorkspaceMemberRole.VIEWER,
                joined_at=utcnow(),
            )
            db.add(member)

    await invalidate_active_members(workspace.id)
    logger.info("Member added", workspace_id=workspace.id, user_id=user_to_add.id, role=member.role.value)
    return member


async def remove_member(db: AsyncSession, actor: User, workspace: Workspace, user_id: str) -> None:
    authorize(workspace_policy.manage_members(await get_member(db, workspace, actor)))

    if actor.id == user_id:
        raise BadRequestError(
            'You cannot remove yourself from a workspace. Please use the "Leave Workspace" option instead.'
        )

    member = await _active_member_row(db, workspace.id, user_id)
    if member is None:
        raise NotFoundError("Workspace member not found")

    if member.role == WorkspaceMemberRole.OWNER:
        raise BadRequestError(
            "The owner cannot be removed. To change ownership, please transfer the workspace to another member."
        )

    member.left_at = utcnow()
    await db.commit()

    await invalidate_active_members(workspace.id)
    logger.info("Member removed", workspace_id=workspace.id, user_id=user_id)


async def update_member_role(
    db: AsyncSession,
    actor: User,
    workspace: Workspace,
    user_id: str,
    role: WorkspaceMemberRole,
) -> WorkspaceMember:
    authorize(workspace_policy.manage_members(await get_member(db, workspace, actor)))

    if actor.id == user_id:
        raise BadRequestError("You cannot change your own role within the workspace.")

    member = await _active_member_row(db, workspace.id, user_id)
    if member is None:
        raise NotFoundError("Workspace member not found")

    if member.role == WorkspaceMemberRole.OWNER:
        raise BadRequestError(
            "The owner's role cannot be changed. To change ownership, please transfer the workspace to another member."
        )
    if role == WorkspaceMemberRole.OWNER:
        raise BadRequestError("Ownership can only be changed by transferring the workspace.")

    member.role = role
    await db.commit()

    await invalidate_active_members(workspace.id)
    return member


async def leave_workspace(db: AsyncSession, user: User, workspace: Workspace) -> None:
    authorize(workspace_policy.view(await get_member(db, workspace, user)))

    member = await _active_member_row(db, workspace.id, user.id)
    if member is None:
        raise NotFoundError("Workspace member not found")

    if member.role == WorkspaceMemberRole.OWNER:
        raise BadRequestError(
            "As the workspace owner, you cannot leave. Please transfer ownership to another member first."
        )

    member.left_at = utcnow()
    await db.commit()

    await invalidate_active_members(workspace.id)


async def get_profile(db: AsyncSession, user: User, workspace: Workspace) -> WorkspaceMember:
    authorize(workspace_policy.view(await get_member(db, workspace, user)))

    member = await _active_member_row(db, workspace.id, user.id)
    if member is None:
        raise NotFoundError("Workspace member not found")
    return member


async def transfer_ownership(db: AsyncSession, actor: User, workspace: Workspace, new_owner_id: str) -> User:
    """
    擁有權轉移：舊 owner -> manager、新 owner -> owner，兩筆寫入同一個交易。
    任何一步失敗都整筆 rollback，不會出現兩個 owner 或沒有 owner。
    """
    authorize(workspace_policy.transfer(await get_member(db, workspace, actor)))

    if actor.id == new_owner_id:
        raise BadRequestError("You already own this workspace.")

    new_owner = await _active_member_row(db, workspace.id, new_owner_id)
    if new_owner is None:
        raise NotFoundError("Workspace member not found")

    new_owner_user = await db.get(User, new_owner_id)
    if new_owner_user is None:
        raise NotFoundError("Workspace member not found")

    authorize(
        workspace_policy.receive_ownership(
            owned_workspace_count=await owned_workspace_count(db, new_owner_id),
            workspace_max=settings.WORKSPACE_MAX,
        )
    )

    old_owner = await _active_member_row(db, workspace.id, actor.id)
    if old_owner is None:
        raise NotFoundError("Workspace member not found")

    async with atomic(db):
        await _set_role(db, old_owner, WorkspaceMemberRole.MANAGER)
        await _set_role(db, new_owner, WorkspaceMemberRole.OWNER)

    await invalidate_active_members(workspace.id)
    logger.info(
        "Workspace ownership transferred",
        workspace_id=workspace.id,
        from_user_id=actor.id,
        to_user_id=new_owner_id,
    )
    return new_owner_user
