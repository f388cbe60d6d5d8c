"""
Security utilities: password hashing, JWT tokens, and the role guards used by routers.
"""
import enum
from datetime import datetime, timedelta, timezone
from typing import Optional
from passlib.context import CryptContext
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from core.config import settings
from core.exceptions import AuthenticationException, AuthorizationException
from core.logging import security_logger
from db_config import get_async_db
from models.models import User, UserRoleEnum, UserSession

logger = security_logger

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# auto_error=False so a missing header goes through our 401 envelope
security = HTTPBearer(auto_error=False)


class Audience(enum.Enum):
    """Which family of pages a role is allowed to see."""
    student = "student"
    teacher = "teacher"


ROLE_AUDIENCE = {
    UserRoleEnum.user: Audience.student,
    UserRoleEnum.eleve: Audience.student,
    UserRoleEnum.enseignant: Audience.teacher,
    UserRoleEnum.admin: Audience.teacher,
}


def audience_for(role: UserRoleEnum) -> Audience:
    """Map a role to its audience. Every role must be listed in ROLE_AUDIENCE."""
    try:
        return ROLE_AUDIENCE[role]
    except KeyError:
        raise ValueError(f"Unhandled role: {role!r}")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.error("Password verification error", error=str(e))
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> tuple[str, datetime]:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode; ``sub`` carries the user's email
        expires_delta: Optional custom lifetime

    Returns:
        The encoded token and its expiry instant
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    # iat with microseconds keeps tokens unique across rapid sign-ins
    to_encode.update({"exp": expire, "iat": datetime.now(timezone.utc).timestamp()})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    logger.info("Access token created", email=data.get("sub"), expires_at=expire.isoformat())
    return encoded_jwt, expire


def verify_token(token: str) -> Optional[dict]:
    """Decode a JWT, returning None when it is invalid or expired."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.warning("Token verification failed", error=str(e))
        return None


async def get_current_user(
    token: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_db)
) -> User:
    """
    Resolve the authenticated user from the bearer token.

    The token must decode, name an existing user, and match a session row
    that has not expired (sign-out deletes the row).
    """
    if token is None:
        raise AuthenticationException("Missing authorization header")

    payload = verify_token(token.credentials)
    email = payload.get("sub") if payload else None
    if email is None:
        raise AuthenticationException("Could not validate credentials")

    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if user is None:
        logger.warning("User not found for token", email=email)
        raise AuthenticationException("Could not validate credentials")

    session_stmt = select(UserSession).where(
        UserSession.user_id == user.id,
        UserSession.session_token == token.credentials,
        or_(
            UserSession.expires_at > datetime.now(timezone.utc),
            UserSession.expires_at.is_(None)
        )
    )
    session = (await db.execute(session_stmt)).scalar_one_or_none()
    if session is None:
        logger.warning("No valid session found", email=email, user_id=user.id)
        raise AuthenticationException("Session expired or invalidated. Please log in again.")

    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        logger.warning("Inactive user attempted access", user_id=current_user.id)
        raise AuthorizationException("Inactive user")
    return current_user


async def get_current_teacher(current_user: User = Depends(get_current_active_user)) -> User:
    """Route guard for teacher pages."""
    if audience_for(current_user.role) is not Audience.teacher:
        logger.warning(
            "Student attempted teacher action",
            user_id=current_user.id,
            role=current_user.role.value
        )
        raise AuthorizationException("Cette page est réservée aux enseignants.")
    return current_user
