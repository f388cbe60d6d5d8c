"""
Router for the signed-in user's profile and skins.
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.security import get_current_active_user
from core.exceptions import AuthorizationException, BadRequestException
from core.logging import get_logger
from db_config import get_async_db
from models.models import User
from schemas.user import UserRead, ProfileUpdate, SkinRead, SkinSelect
from services.gamification import SKINS, SKINS_BY_ID, level_for_xp

router = APIRouter(prefix="/users", tags=["Users"])
logger = get_logger("users")


@router.get("/me", response_model=UserRead)
async def get_current_user_profile(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """Get current user's profile information."""
    await db.refresh(current_user)
    return UserRead.model_validate(current_user)


@router.put("/me", response_model=UserRead)
async def update_current_user_profile(
    update_data: ProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """Update name, birth date and school grade."""
    for field, value in update_data.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)
    logger.info("Profile updated", user_id=current_user.id)
    return UserRead.model_validate(current_user)


def _skin_view(user: User) -> List[SkinRead]:
    level = level_for_xp(user.xp)
    return [
        SkinRead(
            id=skin.id,
            name=skin.name,
            description=skin.description,
            required_level=skin.required_level,
            unlocked=skin.is_unlocked(level),
            active=skin.id == user.skin,
        )
        for skin in SKINS
    ]


@router.get("/me/skins", response_model=List[SkinRead])
async def list_skins(current_user: User = Depends(get_current_active_user)):
    """All skins with their unlock state for the current level."""
    return _skin_view(current_user)


@router.put("/me/skin", response_model=UserRead)
async def select_skin(
    selection: SkinSelect,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """Activate an unlocked skin."""
    skin = SKINS_BY_ID.get(selection.skin)
    if skin is None:
        raise BadRequestException(f"Skin inconnu : {selection.skin}")
    if not skin.is_unlocked(level_for_xp(current_user.xp)):
        raise AuthorizationException(
            f"Ce skin se débloque au niveau {skin.required_level}"
        )

    current_user.skin = skin.id
    await db.commit()
    await db.refresh(current_user)
    logger.info("Skin selected", user_id=current_user.id, skin=skin.id)
    return UserRead.model_validate(current_user)
