# app/services/tokens.py
"""
不透明 bearer token 的簽發與驗證。

外部看到的值：  at_<base64url(id)>.<base64url(secret)>
DB 只存 sha256(secret)，secret 本身只存在於簽發當下的記憶體中。
同一套機制給三種用途：access / email_verification / password_reset，
差別只有 type，以及驗證 / 重設用的 token 用過一次就刪掉。
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import utcnow
from app.models.enums import TokenType
from app.models.tokens import Token
from app.models.users import User

PREFIX = "at_"
SECRET_LENGTH = 42
# tokens.id 是 32-bit integer
MAX_TOKEN_ID = 2**31 - 1


# === Encoding ===
def _b64encode(raw: str) -> str:
    return base64.urlsafe_b64encode(raw.encode("utf-8")).rstrip(b"=").decode("ascii")

def _b64decode(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")

def hash_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class DecodedToken:
    identifier: str
    secret: str


def encode_token(identifier: Any, secret: str, prefix: str = PREFIX) -> str:
    return f"{prefix}{_b64encode(str(identifier))}.{_b64encode(secret)}"


def decode_token(value: Any, prefix: str = PREFIX) -> Optional[DecodedToken]:
    """格式不對一律回 None，不拋錯。"""
    if not isinstance(value, str) or not value.startswith(prefix):
        return None

    parts = value[len(prefix):].split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None

    try:
        identifier = _b64decode(parts[0])
        secret = _b64decode(parts[1])
    except (ValueError, binascii.Error, UnicodeError):
        return None

    if not identifier or not secret:
        return None
    return DecodedToken(identifier=identifier, secret=secret)


# === Holder ===
@dataclass
class TokenHolder:
    """DB 紀錄 + 記憶體中的 secret；secret 只有剛簽發或剛驗證時才有。"""

    identifier: int
    tokenable_id: str
    type: TokenType
    hash: str
    created_at: datetime
    updated_at: datetime
    name: Optional[str] = None
    last_used_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    secret: Optional[str] = None
    prefix: str = PREFIX

    @classmethod
    def from_record(cls, record: Token, secret: Optional[str] = None) -> "TokenHolder":
        return cls(
            identifier=record.id,
            tokenable_id=record.tokenable_id,
            type=TokenType(record.type),
            hash=record.hash,
            created_at=record.created_at,
            updated_at=record.updated_at,
            name=record.name,
            last_used_at=record.last_used_at,
            expires_at=record.expires_at,
            secret=secret,
        )

    @property
    def value(self) -> Optional[str]:
        if self.secret is None:
            return None
        return encode_token(self.identifier, self.secret, self.prefix)

    def get_value_or_fail(self) -> str:
        value = self.value
        if value is None:
            raise RuntimeError("Access token value is missing")
        return value

    def verify(self, secret: str) -> bool:
        # 常數時間比較，避免從回應時間推測部分相符
        return hmac.compare_digest(hash_secret(secret), self.hash)

    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at < utcnow()

    def serialize(self) -> Dict[str, Any]:
        return {
            "type": "bearer",
            "value": self.get_value_or_fail(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    async def delete(self, db: AsyncSession) -> None:
        await db.execute(delete(Token).where(Token.id == self.identifier))


# === Module ===
class TokenModule:
    prefix = PREFIX

    def __init__(self, secret_length: int = SECRET_LENGTH) -> None:
        self.secret_length = secret_length

    async def create(
        self,
        db: AsyncSession,
        *,
        user: User,
        type: TokenType,
        expires_in: Optional[timedelta] = None,
        name: Optional[str] = None,
        delete_if_exists: bool = False,
    ) -> TokenHolder:
        """
        簽發新 token 並寫入（只 flush，commit 交給呼叫端的交易）。
        delete_if_exists=True：先刪掉同一 user 同一 type 的舊 token，
        讓驗證信 / 重設信永遠只有最新一封有效。
        """
        if delete_if_exists:
            await db.execute(
                delete(Token).where(Token.tokenable_id == user.id, Token.type == type)
            )

        expires_at: Optional[datetime] = None
        if expires_in is not None:
            try:
                expires_at = utcnow() + expires_in
            except OverflowError as exc:
                raise ValueError("Invalid expiration date") from exc

        secret = secrets.token_urlsafe(self.secret_length)
        record = Token(
            tokenable_id=user.id,
            type=type,
            name=name,
            hash=hash_secret(secret),
            abilities=json.dumps([]),
            expires_at=expires_at,
        )
        db.add(record)
        await db.flush()

        logger.debug("Token issued", token_id=record.id, type=type.value)
        return TokenHolder.from_record(record, secret=secret)

    async def verify(self, db: AsyncSession, value: Any, type: TokenType) -> Optional[TokenHolder]:
        """
        驗證外部傳入的 token：
          1️⃣ 解碼格式（失敗回 None）
          2️⃣ 依 id + type 查紀錄（找不到回 None）
          3️⃣ 更新 last_used_at（不論結果，僅作稽核）
          4️⃣ 比對 hash、檢查 expires_at
        """
        decoded = decode_token(value, self.prefix)
        if decoded is None:
            return None

        try:
            token_id = int(decoded.identifier)
        except ValueError:
            return None
        if not 0 < token_id <= MAX_TOKEN_ID:
            return None

        result = await db.execute(select(Token).where(Token.id == token_id, Token.type == type))
        record = result.scalar_one_or_none()
        if record is None:
            return None

        record.last_used_at = utcnow()
        await db.flush()

        holder = TokenHolder.from_record(record, secret=decoded.secret)
        if not holder.verify(decoded.secret) or holder.is_expired():
            return None
        return holder


token_module = TokenModule()
