# app/policies/base.py
"""
授權判斷的共同型別。

policy 都是純函式：輸入「操作者在 workspace 裡的 active membership」加上事先查好的
計數 / 資源狀態，輸出 AuthorizationResponse；一般拒絕不拋錯，由 authorize() 轉成 403。
"""
from dataclasses import dataclass
from typing import AbstractSet, Optional, Protocol

from app.core.errors import ForbiddenError
from app.models.enums import WorkspaceMemberRole

DEFAULT_DENY_MESSAGE = "Access denied"

OWNER_ROLES = frozenset({WorkspaceMemberRole.OWNER})
MANAGER_ROLES = frozenset({WorkspaceMemberRole.OWNER, WorkspaceMemberRole.MANAGER})
WRITER_ROLES = frozenset(
    {WorkspaceMemberRole.OWNER, WorkspaceMemberRole.MANAGER, WorkspaceMemberRole.EDITOR}
)
ANY_ROLE = frozenset(WorkspaceMemberRole)


class MemberLike(Protocol):
    role: WorkspaceMemberRole


@dataclass(frozen=True)
class AuthorizationResponse:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AuthorizationResponse":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: Optional[str] = None) -> "AuthorizationResponse":
        return cls(allowed=False, reason=reason or DEFAULT_DENY_MESSAGE)

    def __bool__(self) -> bool:
        return self.allowed


def member_has_role(
    member: Optional[MemberLike], roles: AbstractSet[WorkspaceMemberRole]
) -> AuthorizationResponse:
    """非 active member（None）一律拒絕。"""
    if member is None:
        return AuthorizationResponse.deny()
    if WorkspaceMemberRole(member.role) in roles:
        return AuthorizationResponse.allow()
    return AuthorizationResponse.deny()


def authorize(decision: AuthorizationResponse) -> None:
    if not decision.allowed:
        raise ForbiddenError(decision.reason)
