"""
Practice exercise generation.
"""
import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BadRequestException
from core.logging import get_logger
from core.security import Audience, audience_for
from core.storage import LocalObjectStorage
from models.models import Document, User
from services.ai_manager import AIManager
from services.document_service import (
    create_text_document, get_accessible_document, get_owned_document, read_document_text
)
from services.gamification import XPAction, xp_for
from services.prompts import render_prompt
from services.summary_service import truncate_input
from services.xp_service import add_xp

logger = get_logger("exercise_service")

SOURCE_PREVIEW_CHARS = 50
MAX_SOURCE_CHARS = 20000


class InputMode(str, enum.Enum):
    text = "text"
    subject = "subject"
    document = "document"


@dataclass
class ExerciseRequestData:
    input_mode: InputMode
    level: str
    format: str
    num_questions: int
    include_solutions: bool = True
    course_text: Optional[str] = None
    subject: Optional[str] = None
    document_id: Optional[int] = None
    category_id: Optional[int] = None


@dataclass
class ExerciseResult:
    exercises: str
    input_mode: InputMode
    source: str
    source_value: str
    level: str
    format: str
    document: Document
    xp_gained: int
    provider: str


def source_preview(text: str) -> str:
    return text[:SOURCE_PREVIEW_CHARS] + "..."


class ExerciseGeneratorService:
    def __init__(self, db: AsyncSession, ai_manager: AIManager, storage: LocalObjectStorage):
        self.db = db
        self.ai_manager = ai_manager
        self.storage = storage

    async def _resolve_source(self, user: User, data: ExerciseRequestData) -> tuple[Optional[str], str, str]:
        """Return (course text or None, source label, source value)."""
        mode = InputMode(data.input_mode)
        if mode is InputMode.text:
            if not data.course_text or not data.course_text.strip():
                raise BadRequestException("Les paramètres requis sont manquants selon le mode de génération.")
            return data.course_text, "cours", source_preview(data.course_text)

        if mode is InputMode.subject:
            if not data.subject or not data.subject.strip():
                raise BadRequestException("Les paramètres requis sont manquants selon le mode de génération.")
            return None, "sujet", data.subject.strip()

        if data.document_id is None:
            raise BadRequestException("Les paramètres requis sont manquants selon le mode de génération.")
        # teachers work from their own documents; students may also use shared ones
        if audience_for(user.role) is Audience.teacher:
            document = await get_owned_document(self.db, user, data.document_id)
        else:
            document = await get_accessible_document(self.db, user, data.document_id)
        text = read_document_text(document, self.storage)
        if not text.strip():
            raise BadRequestException("Ce document ne contient aucun texte exploitable")
        return text, "document", document.name

    async def generate(self, user: User, data: ExerciseRequestData) -> ExerciseResult:
        course_text, source, source_value = await self._resolve_source(user, data)
        if course_text:
            course_text, _ = truncate_input(course_text, MAX_SOURCE_CHARS)

        prompt = render_prompt(
            "exercises/prompt.md",
            num_questions=data.num_questions,
            include_solutions=data.include_solutions,
            source_text=course_text,
            subject=data.subject,
            level=data.level,
            format=data.format,
            audience=audience_for(user.role).value,
        )
        logger.info(
            "Generating exercises",
            user_id=user.id, mode=InputMode(data.input_mode).value, level=data.level, format=data.format
        )
        result = await self.ai_manager.generate_text(prompt, temperature=0.7)

        # document row, XP and history row commit together
        name = f"Exercices - {source_value if source != 'cours' else data.level}"
        try:
            document = await create_text_document(
                self.db, user, name=name[:500], content=result.text, category_id=data.category_id, commit=False
            )
            await add_xp(self.db, user.id, XPAction.generate_exercises, document.name)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(document)

        return ExerciseResult(
            exercises=result.text,
            input_mode=InputMode(data.input_mode),
            source=source,
            source_value=source_value,
            level=data.level,
            format=data.format,
            document=document,
            xp_gained=xp_for(XPAction.generate_exercises),
            provider=result.provider.value,
        )
