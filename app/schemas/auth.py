from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, model_validator

from app.schemas.user import UserRead

# === Requests ===
class SignUpRequest(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=64)
    confirm_password: str = Field(min_length=8, max_length=64)

    @model_validator(mode="after")
    def check_passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self

class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=64)

class EmailRequest(BaseModel):
    email: EmailStr

class TokenRequest(BaseModel):
    # 驗證信 / 重設信連結裡帶的 token
    token: str = Field(min_length=10, max_length=500)

class PasswordResetRequest(BaseModel):
    token: str = Field(min_length=10, max_length=500)
    new_password: str = Field(min_length=8, max_length=64)
    confirm_new_password: str = Field(min_length=8, max_length=64)

    @model_validator(mode="after")
    def check_passwords_match(self):
        if self.new_password != self.confirm_new_password:
            raise ValueError("Passwords do not match")
        return self

class PasswordUpdateRequest(BaseModel):
    old_password: str = Field(min_length=8, max_length=64)
    new_password: str = Field(min_length=8, max_length=64)
    confirm_new_password: str = Field(min_length=8, max_length=64)

    @model_validator(mode="after")
    def check_passwords(self):
        if self.new_password == self.old_password:
            raise ValueError("New password must be different from the old password")
        if self.new_password != self.confirm_new_password:
            raise ValueError("Passwords do not match")
        return self

# === Responses ===
class Token(BaseModel):
    type: str = "bearer"
    value: str
    expires_at: Optional[datetime] = None

class SignInResponse(BaseModel):
    token: Token
    message: str

class EmailMeta(BaseModel):
    verification_required: bool

class SignUpMeta(BaseModel):
    email: EmailMeta

class SignUpResponse(BaseModel):
    user: UserRead
    message: str
    meta: SignUpMeta

class MessageResponse(BaseModel):
    message: str

class UserMessageResponse(BaseModel):
    user: UserRead
    message: str

class ProfileResponse(BaseModel):
    user: UserRead
