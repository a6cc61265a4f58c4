import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from .config import JWT_ALGORITHM, JWT_EXPIRE_DAYS, JWT_SECRET
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

# auto_error=False so a missing header produces our own 401 message
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Check a plaintext password against a stored bcrypt hash"""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("⚠️ Stored password hash is malformed")
        return False


def create_access_token(user: User) -> str:
    """Issue a signed session token carrying the user id and role"""
    payload = {
        "id": user.id,
        "role": user.role,
        "exp": datetime.now(timezone.utc) + timedelta(days=JWT_EXPIRE_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Decode and verify a session token. Raises JWTError when invalid."""
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])


def user_from_token(token: Optional[str], db: Session) -> Optional[User]:
    """Resolve a token to a user, or None when it is missing or invalid"""
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except JWTError as e:
        logger.debug(f"🔍 Token rejected: {e}")
        return None
    return db.query(User).filter(User.id == payload.get("id")).first()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the Bearer token"""
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authorized, no token")

    try:
        payload = decode_access_token(credentials.credentials)
    except ExpiredSignatureError as e:
        logger.info("ℹ️ Expired token presented")
        raise HTTPException(
            status_code=401,
            detail="Not authorized, token failed",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ Invalid token presented: {e}")
        raise HTTPException(status_code=401, detail="Not authorized, token failed") from e

    user = db.query(User).filter(User.id == payload.get("id")).first()
    if not user:
        logger.warning(f"⚠️ Token for unknown user id {payload.get('id')}")
        raise HTTPException(status_code=401, detail="Not authorized, token failed")

    logger.debug(f"✅ User authenticated: {user.email}")
    return user


def require_roles(*roles: str):
    """
    Create a dependency that only lets users with one of the given roles through.

    Example usage:
        @router.get("/all-bookings")
        async def all_bookings(user: User = Depends(require_roles("admin"))):
            ...
    """

    async def role_checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.warning(f"🚫 {user.email} ({user.role}) denied, requires {roles}")
            raise HTTPException(status_code=403, detail="Not authorized, invalid role")
        return user

    return role_checker


require_admin = require_roles("admin")
