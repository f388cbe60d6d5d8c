"""
History, XP and teacher dashboard schemas.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from services.gamification import XPAction
from schemas.document import DocumentRead


class HistoryRead(BaseModel):
    id: int
    action_type: str
    document_name: Optional[str] = None
    xp_gained: int
    created_at: datetime

    class Config:
        from_attributes = True


class CreditsRead(BaseModel):
    month_start: datetime
    credits_used: int


class XPAwardRequest(BaseModel):
    action: XPAction
    document_name: Optional[str] = Field(None, max_length=500)


class XPStatusRead(BaseModel):
    xp: int
    level: int
    xp_in_level: int
    xp_to_next_level: int
    message: str

    class Config:
        from_attributes = True


class XPAwardResponse(XPStatusRead):
    action: XPAction
    xp_gained: int


class TeacherStats(BaseModel):
    total_documents: int
    shared_documents: int
    latest_document: Optional[DocumentRead] = None


class TeacherDashboard(BaseModel):
    stats: TeacherStats
    documents: List[DocumentRead]
