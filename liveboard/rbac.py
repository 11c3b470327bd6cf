"""
liveboard/rbac.py
Role-Based Access Control for the live engine.

Only core (staff) members may mutate live state; every authenticated
member may read it. The controller trusts the Actor it is handed.
"""
import os
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from liveboard.orm.user import UserRole
from liveboard.errors import ErrorCode

logger = logging.getLogger(__name__)

# ================= CONFIG =================

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role == UserRole.core.value


# ================= TOKEN UTILS =================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token; `sub` carries the user id, `role` the portal role"""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({
        "exp": expire,
        "type": "access"
    })
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def actor_from_token(token: str) -> Optional[Actor]:
    """Actor carried by a valid access token, or None."""
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return None

    role = payload.get("role")
    if role not in {r.value for r in UserRole}:
        return None
    try:
        return Actor(user_id=int(payload.get("sub")), role=role)
    except (TypeError, ValueError):
        return None


def _auth_error(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "success": False,
            "error": "Unauthorized",
            "message": message,
            "code": code
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


# ================= AUTH DEPENDENCIES =================

async def get_current_actor(token: Optional[str] = Depends(oauth2_scheme)) -> Actor:
    """
    Resolve the caller from a JWT access token.
    Returns 401 if the token is missing, invalid or expired.
    """
    if not token:
        raise _auth_error(ErrorCode.AUTH_REQUIRED, "Authentication required")

    actor = actor_from_token(token)
    if actor is None:
        raise _auth_error(ErrorCode.AUTH_INVALID, "Invalid or expired token")
    return actor


async def require_staff(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Gate for every mutating live operation."""
    if not actor.is_staff:
        logger.warning(f"Access denied: user {actor.user_id} with role {actor.role} attempted a staff action")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "success": False,
                "error": "Forbidden",
                "message": "This action requires a core member",
                "code": ErrorCode.FORBIDDEN,
                "current_role": actor.role
            }
        )
    return actor
