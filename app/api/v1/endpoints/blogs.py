# app/api/v1/endpoints/blogs.py
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_customer, get_workspace
from app.db.session import get_db
from app.models.blogs import Blog
from app.models.users import User
from app.models.workspaces import Workspace
from app.schemas.auth import MessageResponse
from app.schemas.blog import BlogCreate, BlogListQuery, BlogRead, BlogResponse, BlogUpdate
from app.schemas.common import Page
from app.services import blogs as blog_service

router = APIRouter(tags=["blog"])


async def get_blog(
    blog_id: str = Path(min_length=1, max_length=32),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
) -> Blog:
    return await blog_service.get_blog_or_404(db, workspace, blog_id)


def _response(blog: Blog) -> BlogResponse:
    return BlogResponse(blog=BlogRead.model_validate(blog))


@router.post("", response_model=BlogResponse, status_code=status.HTTP_201_CREATED)
async def create_blog(
    payload: BlogCreate,
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    return _response(await blog_service.create_blog(db, user, workspace, payload.title, payload.content))


@router.get("", response_model=Page[BlogRead])
async def list_blogs(
    query: Annotated[BlogListQuery, Query()],
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    db: AsyncSession = Depends(get_db),
):
    return await blog_service.list_blogs(db, user, workspace, query)


@router.get("/{blog_id}", response_model=BlogResponse)
async def show_blog(
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    blog: Blog = Depends(get_blog),
    db: AsyncSession = Depends(get_db),
):
    return _response(await blog_service.show_blog(db, user, workspace, blog))


@router.put("/{blog_id}", response_model=BlogResponse)
async def update_blog(
    payload: BlogUpdate,
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    blog: Blog = Depends(get_blog),
    db: AsyncSession = Depends(get_db),
):
    blog = await blog_service.update_blog(db, user, workspace, blog, payload.title, payload.content)
    return _response(blog)


@router.delete("/{blog_id}", response_model=MessageResponse)
async def delete_blog(
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    blog: Blog = Depends(get_blog),
    db: AsyncSession = Depends(get_db),
):
    await blog_service.delete_blog(db, user, workspace, blog)
    return MessageResponse(message="Blog deleted successfully.")


# === 狀態切換（owner / manager）===
@router.post("/{blog_id}/publish", response_model=BlogResponse)
async def publish_blog(
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    blog: Blog = Depends(get_blog),
    db: AsyncSession = Depends(get_db),
):
    return _response(await blog_service.publish_blog(db, user, workspace, blog))


@router.post("/{blog_id}/unpublish", response_model=BlogResponse)
async def unpublish_blog(
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    blog: Blog = Depends(get_blog),
    db: AsyncSession = Depends(get_db),
):
    return _response(await blog_service.unpublish_blog(db, user, workspace, blog))


@router.post("/{blog_id}/archive", response_model=BlogResponse)
async def archive_blog(
    user: User = Depends(get_current_customer),
    workspace: Workspace = Depends(get_workspace),
    blog: Blog = Depends(get_blog),
    db: AsyncSession = Depends(get_db),
):
    return _response(await blog_service.archive_blog(db, user, workspace, blog))
