"""
Auth module: password hashing, JWT creation/validation and the FastAPI
dependencies that resolve the acting user.

Every protected route requires a valid bearer token for an existing, active
user. Admin-only routes additionally require the "admin" role.
"""

import logging
import time
from typing import Optional
import bcrypt
from jose import jwt, JWTError
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from udsp.config import get_settings
from udsp.database import get_db
from udsp.exceptions import AuthenticationFailed, PermissionDenied
from udsp.models.user import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    password_bytes = password.encode("utf-8")[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=get_settings().bcrypt_rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:72], hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_token(user: User) -> str:
    """Create a signed JWT for the given User."""
    settings = get_settings()
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "exp": int(time.time()) + settings.jwt_expire_seconds,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT. Returns None if invalid/expired."""
    try:
        return jwt.decode(token, get_settings().jwt_secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    """
    FastAPI dependency. Extracts the JWT from the Authorization header and
    loads the user it names. Raises 401 for a missing, invalid or expired
    token and for unknown or deactivated users.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise AuthenticationFailed("No token, authorization denied")

    payload = decode_token(auth_header[7:])
    if not payload:
        raise AuthenticationFailed("Token is not valid")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationFailed("Token is not valid")

    user = await db.get(User, user_id)
    if not user:
        raise AuthenticationFailed("Token is not valid")
    if not user.is_active:
        raise AuthenticationFailed("Account is deactivated")
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        logger.warning("User %s denied admin-only access", current_user.username)
        raise PermissionDenied("Admin access required")
    return current_user
