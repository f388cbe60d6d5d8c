"""
History (activity log) helpers.
"""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging import get_logger
from db_config import AsyncSessionLocal
from models.models import HistoryEntry

logger = get_logger("history")


class HistoryAction:
    """Action types written by document flows; XP awards log the XP action name."""
    IMPORT = "import"
    SUPPRESSION = "suppression"
    SUMMARY = "résumé"
    SHARE = "partage"
    COURSE = "generate_course"


# Actions counted as one AI credit each
AI_CREDIT_ACTIONS = ("generate_summary", "generate_exercises", "generate_control", "generate_course")


async def log_history_best_effort(
    user_id: int, action_type: str, document_name: Optional[str], xp_gained: int = 0
) -> bool:
    """
    Append a history row in its own session.

    A failure is logged and reported through the return value only; callers
    never see an exception from here.
    """
    try:
        async with AsyncSessionLocal() as db:
            db.add(HistoryEntry(
                user_id=user_id,
                action_type=action_type,
                document_name=document_name,
                xp_gained=xp_gained,
            ))
            await db.commit()
        return True
    except SQLAlchemyError as e:
        logger.warning(
            "History entry could not be written",
            user_id=user_id,
            action_type=action_type,
            error=str(e),
        )
        return False


async def list_history(db: AsyncSession, user_id: int, limit: int = 100, offset: int = 0) -> List[HistoryEntry]:
    stmt = (
        select(HistoryEntry)
        .where(HistoryEntry.user_id == user_id)
        .order_by(HistoryEntry.created_at.desc(), HistoryEntry.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list((await db.execute(stmt)).scalars().all())


def month_start(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


async def count_monthly_credits(db: AsyncSession, user_id: int, now: Optional[datetime] = None) -> int:
    """Number of AI generations recorded since the first day of the current month."""
    stmt = select(func.count(HistoryEntry.id)).where(
        HistoryEntry.user_id == user_id,
        HistoryEntry.action_type.in_(AI_CREDIT_ACTIONS),
        HistoryEntry.created_at >= month_start(now),
    )
    return (await db.execute(stmt)).scalar_one()
