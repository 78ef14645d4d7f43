# app/schemas/workspace.py
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.enums import WorkspaceMemberRole
from app.schemas.common import PageQuery


class WorkspaceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    created_at: datetime
    updated_at: datetime


class WorkspaceMemberRead(BaseModel):
    """也是 active members 快取裡存的格式"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    workspace_id: str
    role: WorkspaceMemberRole
    joined_at: Optional[datetime] = None
    left_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class WorkspaceWithMember(WorkspaceRead):
    member: WorkspaceMemberRead


class WorkspaceCreate(BaseModel):
    name: str = Field(min_length=3, max_length=50)


class WorkspaceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=50)


class WorkspaceTransfer(BaseModel):
    new_owner_id: str = Field(min_length=1, max_length=32)


def _not_owner(role: Optional[WorkspaceMemberRole]) -> Optional[WorkspaceMemberRole]:
    # owner 只能透過 transfer 產生
    if role == WorkspaceMemberRole.OWNER:
        raise ValueError("Role 'owner' can only be assigned through ownership transfer")
    return role


class MemberCreate(BaseModel):
    email: EmailStr
    role: Optional[WorkspaceMemberRole] = None

    @field_validator("role")
    @classmethod
    def check_role(cls, v):
        return _not_owner(v)


class MemberUpdate(BaseModel):
    role: WorkspaceMemberRole

    @field_validator("role")
    @classmethod
    def check_role(cls, v):
        return _not_owner(v)


class WorkspaceListQuery(PageQuery):
    order_by: Literal["name", "created_at", "updated_at"] = "created_at"


class WorkspaceResponse(BaseModel):
    workspace: WorkspaceRead


class MemberResponse(BaseModel):
    member: WorkspaceMemberRead


class MemberListResponse(BaseModel):
    members: List[WorkspaceMemberRead]
