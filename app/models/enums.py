# app/models/enums.py
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class WorkspaceMemberRole(str, Enum):
    # 權限由高到低
    OWNER = "owner"
    MANAGER = "manager"
    EDITOR = "editor"
    VIEWER = "viewer"


class BlogStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class TokenType(str, Enum):
    ACCESS = "access"
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


class Direction(str, Enum):
    ASC = "asc"
    DESC = "desc"
