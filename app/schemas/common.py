# app/schemas/common.py
import math
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field

from app.models.enums import Direction

T = TypeVar("T")


class PageQuery(BaseModel):
    page: int = Field(default=1, ge=1, le=100)
    limit: int = Field(default=10, ge=1, le=100)
    order_dir: Direction = Direction.DESC
    # 名稱 / 標題模糊搜尋（不分大小寫）
    filter: Optional[str] = Field(default=None, max_length=20)


class PageMeta(BaseModel):
    total: int
    per_page: int
    current_page: int
    last_page: int
    first_page: int = 1

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PageMeta":
        return cls(
            total=total,
            per_page=limit,
            current_page=page,
            last_page=max(1, math.ceil(total / limit)),
        )


class Page(BaseModel, Generic[T]):
    data: List[T]
    meta: PageMeta
