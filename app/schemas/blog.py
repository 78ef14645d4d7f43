# app/schemas/blog.py
from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import BlogStatus
from app.schemas.common import PageQuery


class BlogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workspace_id: str
    author_id: Optional[str] = None
    title: str
    content: str
    status: BlogStatus
    created_at: datetime
    updated_at: datetime


class BlogCreate(BaseModel):
    title: str = Field(min_length=5, max_length=100)
    content: str = Field(min_length=10)


class BlogUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=5, max_length=100)
    content: Optional[str] = Field(default=None, min_length=10)


class BlogListQuery(PageQuery):
    order_by: Literal["title", "created_at", "updated_at"] = "created_at"


class BlogResponse(BaseModel):
    blog: BlogRead
