import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .domain.notifications.types import Role, RoleClass
from .models import User
from .security_utils import extract_user_id, verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def resolve_identity(token: Optional[str], db: Session) -> Optional[User]:
    """
    Resolve a bearer credential to an active user.
    Returns None for missing, invalid or expired tokens and unknown users.
    """
    if not token or not isinstance(token, str):
        return None

    payload = verify_jwt_token(token)
    if not payload:
        return None

    user_id = extract_user_id(payload)
    if user_id is None:
        logger.warning(f"⚠️ Token missing user ID claim. Available claims: {list(payload.keys())}")
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️ Token references unknown user {user_id}")
        return None
    if not user.is_active:
        logger.warning(f"⚠️ Token references inactive user {user_id}")
        return None

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer token"""

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    user = resolve_identity(credentials.credentials, db)
    if not user:
        raise HTTPException(status_code=401, detail="Please authenticate.")

    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def get_current_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Get current user and verify they belong to the admin role-class.
    Use this dependency for all administrative notification routes.
    """
    try:
        role_class = RoleClass.of(Role(user.role))
    except ValueError:
        role_class = None

    if role_class is not RoleClass.ADMIN:
        logger.warning(f"⚠️ User {user.email} attempted to access an admin route")
        raise HTTPException(
            status_code=403,
            detail="Access denied. Admin privileges required.",
        )

    return user
