import logging
from fastapi import Depends, HTTPException, status

from app.models.user import User
from app.utils.security import get_current_user as get_token_user, get_current_admin
from database import get_db

logger = logging.getLogger(__name__)

__all__ = ["get_db", "get_current_user", "get_current_admin", "logger"]


async def get_current_user(current_user: User = Depends(get_token_user)) -> User:
    """Authenticated, active user; routes pass ``current_user.username`` on to the services."""
    if not current_user.is_active:
        logger.warning(f"Inactive user {current_user.id} attempted an authenticated request")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is not active"
        )
    return current_user
