"""Shared FastAPI dependencies."""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from medibook.models import UserProfile, UserRole
from medibook.services.auth import AuthenticationError, resolve_profile
from medibook.services.db import get_db
from medibook.services.notifications import NotificationDispatcher, get_dispatcher

bearer_scheme = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> UserProfile:
    try:
        return resolve_profile(db, token)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[UserProfile]:
    """Signed-in profile when a valid token is present, otherwise None."""

    if credentials is None:
        return None
    try:
        return resolve_profile(db, credentials.credentials)
    except AuthenticationError:
        return None


def require_admin(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    if user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def dispatcher_dependency() -> NotificationDispatcher:
    return get_dispatcher()
