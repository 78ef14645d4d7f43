# app/policies/workspace.py
from typing import Optional

from app.policies.base import (
    ANY_ROLE,
    MANAGER_ROLES,
    OWNER_ROLES,
    AuthorizationResponse,
    MemberLike,
    member_has_role,
)


def view(member: Optional[MemberLike]) -> AuthorizationResponse:
    return member_has_role(member, ANY_ROLE)


def update(member: Optional[MemberLike]) -> AuthorizationResponse:
    return member_has_role(member, MANAGER_ROLES)


def delete(
    member: Optional[MemberLike],
    *,
    published_blog_count: int,
    owned_workspace_count: int,
) -> AuthorizationResponse:
    can = member_has_role(member, OWNER_ROLES)
    if not can:
        return can

    if published_blog_count > 0:
        return AuthorizationResponse.deny(
            f"Workspace has {published_blog_count} published blogs, please archive them first"
        )

    # 每個 user 至少要留一個 workspace
    if owned_workspace_count < 2:
        return AuthorizationResponse.deny("Cannot delete the last workspace")

    return can


def transfer(member: Optional[MemberLike]) -> AuthorizationResponse:
    return member_has_role(member, OWNER_ROLES)


def receive_ownership(*, owned_workspace_count: int, workspace_max: int) -> AuthorizationResponse:
    """新 owner 那一方的條件：擁有的 workspace 數還沒到上限。"""
    if owned_workspace_count >= workspace_max:
        return AuthorizationResponse.deny(
            "The new owner has reached the maximum number of workspaces allowed."
        )
    return AuthorizationResponse.allow()


def create(*, owned_workspace_count: int, workspace_max: int) -> AuthorizationResponse:
    if owned_workspace_count >= workspace_max:
        return AuthorizationResponse.deny(
            "You have reached the maximum number of workspaces you can own."
        )
    return AuthorizationResponse.allow()


def manage_members(member: Optional[MemberLike]) -> AuthorizationResponse:
    return member_has_role(member, MANAGER_ROLES)
