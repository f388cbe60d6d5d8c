"""
Server side of the XP award flow.

``award_xp`` is the single atomic "add XP and log history" operation: the
increment, the level recomputation and the history row commit together or
not at all.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ResourceNotFoundException
from core.logging import get_logger
from models.models import User, HistoryEntry
from services.gamification import (
    XPAction, xp_for, level_for_xp, xp_in_level, xp_to_next_level, motivational_message
)

logger = get_logger("xp")


@dataclass
class XPStatus:
    xp: int
    level: int
    xp_in_level: int
    xp_to_next_level: int
    message: str

    @classmethod
    def from_xp(cls, xp: int) -> "XPStatus":
        return cls(
            xp=xp,
            level=level_for_xp(xp),
            xp_in_level=xp_in_level(xp),
            xp_to_next_level=xp_to_next_level(xp),
            message=motivational_message(xp),
        )


async def add_xp(
    db: AsyncSession, user_id: int, action: XPAction, document_name: Optional[str] = None
) -> int:
    """
    Stage the XP increment and its history row on ``db`` without committing.

    Lets callers that also insert other rows (generated documents) share the
    same transaction. Returns the user's new XP total.
    """
    delta = xp_for(action)
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(xp=User.xp + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ResourceNotFoundException("Utilisateur introuvable")

    new_xp = (await db.execute(select(User.xp).where(User.id == user_id))).scalar_one()
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(level=level_for_xp(new_xp))
        .execution_options(synchronize_session=False)
    )
    db.add(HistoryEntry(
        user_id=user_id,
        action_type=XPAction(action).value,
        document_name=document_name,
        xp_gained=delta,
    ))
    return new_xp


async def award_xp(
    db: AsyncSession, user: User, action: XPAction, document_name: Optional[str] = None
) -> XPStatus:
    try:
        new_xp = await add_xp(db, user.id, action, document_name)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(user)
    logger.info("XP awarded", user_id=user.id, action=XPAction(action).value, xp=new_xp, level=user.level)
    return XPStatus.from_xp(new_xp)


async def get_xp_status(db: AsyncSession, user: User) -> XPStatus:
    """
    Authoritative XP view.

    A stored level that drifted from the XP total is corrected here.
    """
    await db.refresh(user)
    expected_level = level_for_xp(user.xp)
    if user.level != expected_level:
        logger.warning(
            "Stored level out of sync with XP, correcting",
            user_id=user.id, stored_level=user.level, expected_level=expected_level
        )
        user.level = expected_level
        await db.commit()
    return XPStatus.from_xp(user.xp)
