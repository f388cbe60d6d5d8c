"""
History, XP and teacher dashboard routes.
"""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.security import get_current_active_user, get_current_teacher
from core.storage import LocalObjectStorage, get_storage
from db_config import get_async_db
from models.models import User
from schemas.activity import (
    HistoryRead, CreditsRead, XPAwardRequest, XPStatusRead, XPAwardResponse,
    TeacherStats, TeacherDashboard
)
from schemas.document import DocumentRead
from services.document_service import document_payload, generated_documents
from services.gamification import xp_for
from services.history_service import list_history, count_monthly_credits, month_start
from services.xp_service import award_xp, get_xp_status

history_router = APIRouter(prefix="/history", tags=["History"])
xp_router = APIRouter(prefix="/xp", tags=["XP"])
teacher_router = APIRouter(prefix="/teacher", tags=["Teacher"])


@history_router.get("", response_model=List[HistoryRead])
async def get_history(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """Activity of the current user, newest first."""
    entries = await list_history(db, current_user.id, limit=limit, offset=offset)
    return [HistoryRead.model_validate(e) for e in entries]


@history_router.get("/credits", response_model=CreditsRead)
async def get_monthly_credits(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """AI generations used since the start of the month."""
    used = await count_monthly_credits(db, current_user.id)
    return CreditsRead(month_start=month_start(), credits_used=used)


@xp_router.get("/me", response_model=XPStatusRead)
async def get_my_xp(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    status = await get_xp_status(db, current_user)
    return XPStatusRead.model_validate(status)


@xp_router.post("/award", response_model=XPAwardResponse)
async def award(
    data: XPAwardRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """
    Grant the fixed XP of an action.

    The XP increment, level update and history row commit atomically.
    """
    status = await award_xp(db, current_user, data.action, data.document_name)
    return XPAwardResponse(
        xp=status.xp,
        level=status.level,
        xp_in_level=status.xp_in_level,
        xp_to_next_level=status.xp_to_next_level,
        message=status.message,
        action=data.action,
        xp_gained=xp_for(data.action),
    )


@teacher_router.get("/dashboard", response_model=TeacherDashboard)
async def get_dashboard(
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Generated courses, exercises and controls of the teacher."""
    documents = [
        DocumentRead.model_validate(document_payload(d, current_user, storage))
        for d in await generated_documents(db, current_user)
    ]
    stats = TeacherStats(
        total_documents=len(documents),
        shared_documents=sum(1 for d in documents if d.is_shared),
        latest_document=documents[0] if documents else None,
    )
    return TeacherDashboard(stats=stats, documents=documents)
