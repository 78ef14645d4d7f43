# app/services/blogs.py
from typing import Optional

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import NotFoundError
from app.models.blogs import Blog
from app.models.enums import BlogStatus, Direction
from app.models.users import User
from app.models.workspaces import Workspace
from app.policies import blog as blog_policy
from app.policies import workspace as workspace_policy
from app.policies.base import authorize
from app.schemas.blog import BlogListQuery, BlogRead
from app.schemas.common import Page, PageMeta
from app.services.workspaces import blog_count, get_member


async def get_blog_or_404(db: AsyncSession, workspace: Workspace, blog_id: str) -> Blog:
    # 只在該 workspace 底下找；別的 workspace 的 blog 一律當作不存在
    q = select(Blog).where(Blog.id == blog_id, Blog.workspace_id == workspace.id)
    blog = (await db.execute(q)).scalar_one_or_none()
    if blog is None:
        raise NotFoundError("Blog not found")
    return blog


async def create_blog(db: AsyncSession, user: User, workspace: Workspace, title: str, content: str) -> Blog:
    member = await get_member(db, workspace, user)
    authorize(
        blog_policy.create(
            member,
            blog_count=await blog_count(db, workspace.id),
            blog_max=settings.BLOG_MAX,
        )
    )

    blog = Blog(
        workspace_id=workspace.id,
        author_id=member.id,
        title=title,
        content=content,
        status=BlogStatus.DRAFT,
    )
    db.add(blog)
    await db.commit()

    logger.info("Blog created", blog_id=blog.id, workspace_id=workspace.id)
    return blog


async def list_blogs(db: AsyncSession, user: User, workspace: Workspace, query: BlogListQuery) -> Page[BlogRead]:
    authorize(workspace_policy.view(await get_member(db, workspace, user)))

    conditions = [Blog.workspace_id == workspace.id]
    if query.filter:
        conditions.append(func.lower(Blog.title).like(f"%{query.filter.lower()}%"))

    total_q = select(func.count()).select_from(Blog).where(*conditions)
    total = int((await db.execute(total_q)).scalar_one())

    column = getattr(Blog, query.order_by)
    ordering = column.asc() if query.order_dir == Direction.ASC else column.desc()
    rows = (
        await db.execute(
            select(Blog)
            .where(*conditions)
            .order_by(ordering, Blog.id)
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
    ).scalars().all()

    data = [BlogRead.model_validate(b) for b in rows]
    return Page[BlogRead](data=data, meta=PageMeta.build(total, query.page, query.limit))


async def show_blog(db: AsyncSession, user: User, workspace: Workspace, blog: Blog) -> Blog:
    authorize(blog_policy.view(await get_member(db, workspace, user), workspace, blog))
    return blog


async def update_blog(
    db: AsyncSession,
    user: User,
    workspace: Workspace,
    blog: Blog,
    title: Optional[str],
    content: Optional[str],
) -> Blog:
    authorize(blog_policy.update(await get_member(db, workspace, user), workspace, blog))

    if title is not None:
        blog.title = title
    if content is not None:
        blog.content = content
    await db.commit()
    return blog


async def delete_blog(db: AsyncSession, user: User, workspace: Workspace, blog: Blog) -> None:
    authorize(blog_policy.delete(await get_member(db, workspace, user), workspace, blog))

    blog_id = blog.id
    await db.delete(blog)
    await db.commit()
    logger.info("Blog deleted", blog_id=blog_id, workspace_id=workspace.id)


async def _change_status(db: AsyncSession, blog: Blog, status: BlogStatus) -> Blog:
    previous = blog.status
    blog.status = status
    await db.commit()
    logger.info("Blog status changed", blog_id=blog.id, from_status=previous.value, to_status=status.value)
    return blog


async def publish_blog(db: AsyncSession, user: User, workspace: Workspace, blog: Blog) -> Blog:
    authorize(blog_policy.publish(await get_member(db, workspace, user), workspace, blog))
    return await _change_status(db, blog, BlogStatus.PUBLISHED)


async def unpublish_blog(db: AsyncSession, user: User, workspace: Workspace, blog: Blog) -> Blog:
    authorize(blog_policy.unpublish(await get_member(db, workspace, user), workspace, blog))
    return await _change_status(db, blog, BlogStatus.DRAFT)


async def archive_blog(db: AsyncSession, user: User, workspace: Workspace, blog: Blog) -> Blog:
    authorize(blog_policy.archive(await get_member(db, workspace, user), workspace, blog))
    return await _change_status(db, blog, BlogStatus.ARCHIVED)
