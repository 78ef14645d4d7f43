# app/core/security.py
from datetime import datetime, timezone

from passlib.context import CryptContext

# === Password Hashing ===
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__ident="2b",
    # 若密碼超過 72 bytes，不拋錯（與現有流程相容）
    bcrypt__truncate_error=False,
)

def _sanitize_password(p: str) -> str:
    # bcrypt 只吃前 72 bytes，避免極長密碼在某些環境報錯
    return p[:72] if isinstance(p, str) else p

def hash_password(plain: str) -> str:
    return pwd_context.hash(_sanitize_password(plain))

def verify_password(plain: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(_sanitize_password(plain), password_hash)

# === Time Helpers ===
def utcnow() -> datetime:
    """DB 一律存 naive UTC（SQLite / Postgres timestamp without tz 行為一致）。"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
