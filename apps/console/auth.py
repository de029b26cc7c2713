"""Админская аутентификация JWT."""
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from apps.console.config import get_settings

security = HTTPBearer(auto_error=False)

# bcrypt ignores everything past 72 bytes
_MAX_PW_BYTES = 72


def _to_bytes(s: str) -> bytes:
    b = s.encode("utf-8")
    return b[:_MAX_PW_BYTES]


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_to_bytes(plain), hashed.encode() if isinstance(hashed, str) else hashed)
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_to_bytes(password), bcrypt.gensalt()).decode()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    s = get_settings()
    to_encode = data.copy()
    exp = expires_delta or timedelta(minutes=s.jwt_expire_minutes)
    to_encode.update({"exp": datetime.utcnow() + exp, "role": "admin"})
    return jwt.encode(to_encode, s.jwt_secret, algorithm=s.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    s = get_settings()
    try:
        return jwt.decode(token, s.jwt_secret, algorithms=[s.jwt_algorithm])
    except JWTError:
        return None


async def get_optional_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict | None:
    """Admin payload when a valid admin Bearer is present, otherwise None (anonymous)."""
    if not credentials:
        return None
    payload = decode_token(credentials.credentials)
    if not payload or "sub" not in payload:
        return None
    return payload


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    if not credentials:
        raise HTTPException(status_code=401, detail="Authentification requise")
    payload = decode_token(credentials.credentials)
    if not payload or "sub" not in payload:
        raise HTTPException(status_code=401, detail="Jeton invalide")
    if payload.get("role", "admin") != "admin":
        raise HTTPException(status_code=403, detail="Accès réservé aux administrateurs")
    return payload
