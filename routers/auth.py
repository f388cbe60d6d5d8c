"""
Authentication routes: sign-up, password sign-in, session lookup and sign-out.
"""
from datetime import timedelta
from typing import Optional
from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from core.security import (
    security,
    get_password_hash,
    verify_password,
    create_access_token,
    get_current_active_user,
)
from core.config import settings
from core.exceptions import AuthenticationException, AuthorizationException, BadRequestException
from core.logging import get_logger
from db_config import get_async_db
from models.models import User, UserSession, UserRoleEnum, utcnow
from schemas.user import UserCreate, UserRead
from schemas.auth import LoginRequest, LoginResponse, SessionRead, MessageResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])

logger = get_logger("auth")


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserCreate, db: AsyncSession = Depends(get_async_db)):
    """
    Register a new user.

    - **email**: Must be unique and valid email format
    - **password**: Minimum 8 characters
    - **role**: `user`, `eleve` or `enseignant`
    """
    logger.info("User registration attempt", email=user_data.email, role=user_data.role.value)

    if user_data.role == UserRoleEnum.admin:
        raise BadRequestException("Le rôle administrateur ne peut pas être choisi à l'inscription")

    existing = (await db.execute(select(User).where(User.email == user_data.email))).scalar_one_or_none()
    if existing is not None:
        logger.warning("Registration failed - email already exists", email=user_data.email)
        raise BadRequestException("Email already registered")

    user = User(
        email=user_data.email,
        password_hash=get_password_hash(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        role=user_data.role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("User registered successfully", user_id=user.id, email=user.email)
    return UserRead.model_validate(user)


@router.post("/login", response_model=LoginResponse)
async def login_user(login_data: LoginRequest, db: AsyncSession = Depends(get_async_db)):
    """
    Sign in with email and password and open a session.

    The returned bearer token is valid until it expires or the session is
    closed with `/auth/logout`.
    """
    logger.info("Login attempt", email=login_data.email)

    user = (await db.execute(select(User).where(User.email == login_data.email))).scalar_one_or_none()
    if user is None or not verify_password(login_data.password, user.password_hash):
        logger.warning("Login failed - invalid credentials", email=login_data.email)
        raise AuthenticationException("Email ou mot de passe incorrect")

    if not user.is_active:
        logger.warning("Login failed - account deactivated", user_id=user.id)
        raise AuthorizationException("Account is deactivated")

    expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)
    access_token, expires_at = create_access_token(data={"sub": user.email}, expires_delta=expires_delta)

    db.add(UserSession(user_id=user.id, session_token=access_token, expires_at=expires_at))
    user.last_login = utcnow()
    await db.commit()
    await db.refresh(user)

    logger.info("User logged in successfully", user_id=user.id)
    return LoginResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=int(expires_delta.total_seconds()),
        user=UserRead.model_validate(user),
    )


@router.get("/session", response_model=SessionRead)
async def read_session(current_user: User = Depends(get_current_active_user)):
    """Return the signed-in user; 401 when there is no valid session."""
    return SessionRead(authenticated=True, user=UserRead.model_validate(current_user))


@router.post("/logout", response_model=MessageResponse)
async def logout_user(
    current_user: User = Depends(get_current_active_user),
    token: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_db)
):
    """Close the current session. The token stops working immediately."""
    await db.execute(
        delete(UserSession).where(
            UserSession.user_id == current_user.id,
            UserSession.session_token == token.credentials,
        )
    )
    await db.commit()
    logger.info("User logged out", user_id=current_user.id)
    return MessageResponse(message="Déconnexion réussie")
