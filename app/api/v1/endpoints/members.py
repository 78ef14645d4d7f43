# app/api/v1/endpoints/members.py
from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_customer, get_workspace
from app.db.session import get_db
from app.models.users import User
from app.models.workspaces import Workspace
from app.policies import workspace as workspace_policy
from app.policies.base import authorize
from app.schemas.auth import MessageResponse
from app.schemas.workspace import (
    MemberCreate,
    MemberListResponse,
    MemberResponse,
    MemberUpdate,
    WorkspaceMemberRead,
)
from app.services import members as member_service
from app.services.workspaces import get_active_members, get_member

router = APIRouter(tags=["member"])


# === 成員管理（owner / manager）===
@router.post("/{workspace_id}/member", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    payload: MemberCreate,
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    member = await member_service.add_member(db, user, workspace, payload.email, payload.role)
    return MemberResponse(member=WorkspaceMemberRead.model_validate(member))


@router.put("/{workspace_id}/member/{user_id}", response_model=MemberResponse)
async def update_member(
    payload: MemberUpdate,
    user_id: str = Path(min_length=1, max_length=32),
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    member = await member_service.update_member_role(db, user, workspace, user_id, payload.role)
    return MemberResponse(member=WorkspaceMemberRead.model_validate(member))


@router.delete("/{workspace_id}/member/{user_id}", response_model=MessageResponse)
async def remove_member(
    user_id: str = Path(min_length=1, max_length=32),
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    await member_service.remove_member(db, user, workspace, user_id)
    return MessageResponse(message="Member removed successfully.")


# === 自己在 workspace 內的 profile ===
@router.get("/{workspace_id}/profile", response_model=MemberResponse)
async def profile(
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    member = await member_service.get_profile(db, user, workspace)
    return MemberResponse(member=WorkspaceMemberRead.model_validate(member))


@router.post("/{workspace_id}/profile/leave", response_model=MessageResponse)
async def leave(
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    await member_service.leave_workspace(db, user, workspace)
    return MessageResponse(message="You have left the workspace.")


@router.get("/{workspace_id}/profile/members", response_model=MemberListResponse)
async def active_members(
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    authorize(workspace_policy.view(await get_member(db, workspace, user)))
    return MemberListResponse(members=await get_active_members(db, workspace.id))
