# app/api/v1/endpoints/workspaces.py
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_customer, get_workspace
from app.db.session import get_db
from app.models.users import User
from app.models.workspaces import Workspace
from app.schemas.auth import MessageResponse
from app.schemas.common import Page
from app.schemas.workspace import (
    WorkspaceCreate,
    WorkspaceListQuery,
    WorkspaceRead,
    WorkspaceResponse,
    WorkspaceTransfer,
    WorkspaceUpdate,
    WorkspaceWithMember,
)
from app.services import members as member_service
from app.services import workspaces as workspace_service

router = APIRouter(tags=["workspace"])


@router.post("", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
async def create_workspace(
    payload: WorkspaceCreate,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    workspace = await workspace_service.create_workspace(db, user, payload.name)
    return WorkspaceResponse(workspace=WorkspaceRead.model_validate(workspace))


@router.get("", response_model=Page[WorkspaceWithMember])
async def list_workspaces(
    query: Annotated[WorkspaceListQuery, Query()],
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    return await workspace_service.list_workspaces(db, user, query)


@router.get("/{workspace_id}", response_model=WorkspaceResponse)
async def show_workspace(
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    workspace = await workspace_service.show_workspace(db, user, workspace)
    return WorkspaceResponse(workspace=WorkspaceRead.model_validate(workspace))


@router.put("/{workspace_id}", response_model=WorkspaceResponse)
async def update_workspace(
    payload: WorkspaceUpdate,
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    workspace = await workspace_service.update_workspace(db, user, workspace, payload.name)
    return WorkspaceResponse(workspace=WorkspaceRead.model_validate(workspace))


@router.delete("/{workspace_id}", response_model=MessageResponse)
async def delete_workspace(
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    await workspace_service.delete_workspace(db, user, workspace)
    return MessageResponse(message="Workspace deleted successfully.")


@router.post("/{workspace_id}/transfer", response_model=MessageResponse)
async def transfer_workspace(
    payload: WorkspaceTransfer,
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    new_owner = await member_service.transfer_ownership(db, user, workspace, payload.new_owner_id)
    return MessageResponse(message=f"Workspace ownership has been transferred to {new_owner.name or new_owner.email}.")
