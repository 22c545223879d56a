"""Password hashing, session tokens and role checks."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.orm import Session

from medibook.models import UserProfile, UserRole
from medibook.services.cache import cache_get, cache_set
from medibook.utils.config import get_settings

LOGGER = logging.getLogger(__name__)

REVOKED_PREFIX = "medibook:revoked:"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class AuthenticationError(Exception):
    """Raised for bad credentials or an invalid/expired/revoked token."""


class DuplicateAccountError(Exception):
    """Raised when signing up with an email that already has a profile."""


@dataclass
class IssuedToken:
    access_token: str
    expires_at: datetime
    profile: UserProfile


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as exc:
        LOGGER.error("Password verification error: %s", exc)
        return False


def get_profile_by_email(session: Session, email: str) -> Optional[UserProfile]:
    statement = select(UserProfile).where(UserProfile.email == email.strip().lower())
    return session.scalars(statement).first()


def sign_up(
    session: Session,
    *,
    email: str,
    password: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    phone: Optional[str] = None,
    role: str = UserRole.PATIENT,
) -> UserProfile:
    """Create a profile with a hashed password."""

    if get_profile_by_email(session, email) is not None:
        raise DuplicateAccountError(f"An account already exists for {email}")

    profile = UserProfile(
        email=email.strip().lower(),
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        role=role,
    )
    session.add(profile)
    session.flush()
    LOGGER.info("Profile %s created with role=%s", profile.id, role)
    return profile


def create_access_token(profile: UserProfile, *, now: Optional[datetime] = None) -> IssuedToken:
    """Issue a signed token carrying the profile id and role claim."""

    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    expires_at = now + timedelta(minutes=settings.access_token_ttl_minutes)
    claims = {
        "sub": str(profile.id),
        "email": profile.email,
        "role": profile.role,
        "jti": uuid.uuid4().hex,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return IssuedToken(access_token=token, expires_at=expires_at, profile=profile)


def sign_in(session: Session, *, email: str, password: str) -> IssuedToken:
    profile = get_profile_by_email(session, email)
    if profile is None or not verify_password(password, profile.password_hash):
        LOGGER.warning("Failed sign-in for %s", email)
        raise AuthenticationError("Invalid login credentials")
    return create_access_token(profile)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature, expiry and revocation; return the claims."""

    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        LOGGER.debug("Token rejected: %s", exc)
        raise AuthenticationError("Invalid or expired session") from exc

    jti = claims.get("jti")
    if not jti or cache_get(f"{REVOKED_PREFIX}{jti}") is not None:
        raise AuthenticationError("Session has been signed out")
    return claims


def resolve_profile(session: Session, token: str) -> UserProfile:
    """Return the profile behind a token.

    The role used for authorization is the one stored on the profile, not the
    claim in the token, so demotions take effect immediately.
    """

    claims = decode_token(token)
    try:
        profile_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise AuthenticationError("Malformed session token") from exc

    profile = session.get(UserProfile, profile_id)
    if profile is None:
        raise AuthenticationError("Account no longer exists")
    return profile


def sign_out(token: str) -> None:
    """Revoke the token until it would have expired anyway."""

    claims = decode_token(token)
    remaining = int(claims["exp"] - datetime.now(timezone.utc).timestamp())
    cache_set(f"{REVOKED_PREFIX}{claims['jti']}", "1", ex=max(1, remaining))
    LOGGER.info("Session %s signed out", claims["jti"])


def ensure_admin_profile(session: Session) -> Optional[UserProfile]:
    """Create or promote the bootstrap admin account from settings."""

    settings = get_settings()
    if not settings.admin_password:
        return None

    profile = get_profile_by_email(session, settings.admin_email)
    if profile is None:
        return sign_up(
            session,
            email=settings.admin_email,
            password=settings.admin_password,
            role=UserRole.ADMIN,
        )

    if profile.role != UserRole.ADMIN:
        profile.role = UserRole.ADMIN
        session.flush()
        LOGGER.info("Profile %s promoted to admin", profile.id)
    return profile
