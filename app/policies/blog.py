# app/policies/blog.py
"""
Blog 權限 = 角色（誰）+ 狀態（何時）。

狀態機：draft -> published -> archived，另外 published -> draft（unpublish）。
只有 draft 可以編輯 / 刪除。
"""
from typing import Dict, FrozenSet, Optional, Protocol

from app.core.errors import WorkspaceMismatchError
from app.models.enums import BlogStatus
from app.policies.base import (
    MANAGER_ROLES,
    WRITER_ROLES,
    AuthorizationResponse,
    MemberLike,
    member_has_role,
)

TRANSITIONS: Dict[BlogStatus, FrozenSet[BlogStatus]] = {
    BlogStatus.DRAFT: frozenset({BlogStatus.PUBLISHED}),
    BlogStatus.PUBLISHED: frozenset({BlogStatus.ARCHIVED, BlogStatus.DRAFT}),
    BlogStatus.ARCHIVED: frozenset(),
}


def can_transition(current: BlogStatus, target: BlogStatus) -> bool:
    return BlogStatus(target) in TRANSITIONS[BlogStatus(current)]


class WorkspaceLike(Protocol):
    id: str


class BlogLike(Protocol):
    workspace_id: str
    status: BlogStatus


def check_workspace(workspace: WorkspaceLike, blog: BlogLike) -> None:
    if workspace.id != blog.workspace_id:
        raise WorkspaceMismatchError(workspace.id, blog.workspace_id)


def create(member: Optional[MemberLike], *, blog_count: int, blog_max: int) -> AuthorizationResponse:
    can = member_has_role(member, WRITER_ROLES)
    if not can:
        return can

    if blog_count >= blog_max:
        return AuthorizationResponse.deny(
            "You have reached the maximum number of blogs for this workspace."
        )
    return can


def view(member: Optional[MemberLike], workspace: WorkspaceLike, blog: BlogLike) -> AuthorizationResponse:
    check_workspace(workspace, blog)
    return member_has_role(member, WRITER_ROLES)


def _writable(member: Optional[MemberLike], workspace: WorkspaceLike, blog: BlogLike) -> AuthorizationResponse:
    check_workspace(workspace, blog)

    can = member_has_role(member, WRITER_ROLES)
    if not can:
        return can

    if BlogStatus(blog.status) != BlogStatus.DRAFT:
        return AuthorizationResponse.deny("Blog is not in draft status")
    return can


def update(member: Optional[MemberLike], workspace: WorkspaceLike, blog: BlogLike) -> AuthorizationResponse:
    return _writable(member, workspace, blog)


def delete(member: Optional[MemberLike], workspace: WorkspaceLike, blog: BlogLike) -> AuthorizationResponse:
    return _writable(member, workspace, blog)


def publish(member: Optional[MemberLike], workspace: WorkspaceLike, blog: BlogLike) -> AuthorizationResponse:
    check_workspace(workspace, blog)

    can = member_has_role(member, MANAGER_ROLES)
    if not can:
        return can

    if not can_transition(blog.status, BlogStatus.PUBLISHED):
        return AuthorizationResponse.deny("Blog is not in draft status")
    return can


def unpublish(member: Optional[MemberLike], workspace: WorkspaceLike, blog: BlogLike) -> AuthorizationResponse:
    check_workspace(workspace, blog)

    can = member_has_role(member, MANAGER_ROLES)
    if not can:
        return can

    status = BlogStatus(blog.status)
    if status == BlogStatus.DRAFT:
        return AuthorizationResponse.deny("Blog is already in draft status")
    if not can_transition(status, BlogStatus.DRAFT):
        return AuthorizationResponse.deny("Archived blogs cannot be unpublished")
    return can


def archive(member: Optional[MemberLike], workspace: WorkspaceLike, blog: BlogLike) -> AuthorizationResponse:
    check_workspace(workspace, blog)

    can = member_has_role(member, MANAGER_ROLES)
    if not can:
        return can

    if not can_transition(blog.status, BlogStatus.ARCHIVED):
        return AuthorizationResponse.deny("Blog is not published")
    return can
