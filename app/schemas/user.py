# app/schemas/user.py
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr


class UserRead(BaseModel):
    # Pydantic v2：允許從 ORM 物件轉模型；password_hash 不在這裡，不會被輸出
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: Optional[str] = None
    email: EmailStr
    verified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
