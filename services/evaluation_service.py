"""
Exam-style generation: training evaluations and graded controls.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.logging import get_logger
from models.models import Document, User
from services.ai_manager import AIManager
from services.document_service import create_text_document
from services.gamification import XPAction, xp_for
from services.prompts import render_prompt, load_instruction
from services.text_formatting import markdown_headers_to_html
from services.xp_service import add_xp

logger = get_logger("evaluation_service")

NO_SPECIALTY = "aucune"
DEFAULT_CONTROL_QUANTITY = 5


@dataclass
class EvaluationResult:
    evaluation: str
    html: str
    provider: str


@dataclass
class ControlResult:
    control: str
    html: str
    topic: str
    level: str
    quantity: int
    document: Document
    xp_gained: int
    provider: str


def control_structure(quantity: int) -> tuple[int, int]:
    """Minimum number of long questions and practical exercises for a control."""
    return max(1, quantity // 3), max(1, quantity // 4)


def normalize_specialty(specialty: Optional[str]) -> Optional[str]:
    if not specialty or not specialty.strip() or specialty.strip().lower() == NO_SPECIALTY:
        return None
    return specialty.strip()


class EvaluationGeneratorService:
    def __init__(self, ai_manager: AIManager, db: Optional[AsyncSession] = None):
        self.ai_manager = ai_manager
        self.db = db

    async def generate_evaluation(
        self, subject: str, grade: str, difficulty: str, specialty: Optional[str] = None
    ) -> EvaluationResult:
        prompt = render_prompt(
            "evaluation/prompt.md",
            subject=subject.strip(),
            grade=grade.strip(),
            specialty=normalize_specialty(specialty),
            difficulty=difficulty.strip(),
        )
        result = await self.ai_manager.generate_text(
            prompt,
            system_instruction=load_instruction("evaluation/system_instruction.md"),
            temperature=0.7,
            model=settings.openai_control_model,
        )
        return EvaluationResult(
            evaluation=result.text,
            html=markdown_headers_to_html(result.text),
            provider=result.provider.value,
        )

    async def generate_control(
        self,
        user: User,
        topic: str,
        level: str,
        quantity: int = DEFAULT_CONTROL_QUANTITY,
        category_id: Optional[int] = None,
    ) -> ControlResult:
        """Generate a control, then persist it with its XP grant in one transaction."""
        long_questions, practical_exercises = control_structure(quantity)
        prompt = render_prompt(
            "control/prompt.md",
            topic=topic.strip(),
            level=level.strip(),
            quantity=quantity,
            long_questions=long_questions,
            practical_exercises=practical_exercises,
        )
        logger.info("Generating control", user_id=user.id, topic=topic, level=level, quantity=quantity)
        result = await self.ai_manager.generate_text(
            prompt,
            system_instruction=load_instruction("control/system_instruction.md"),
            temperature=0.7,
            max_tokens=2500,
            model=settings.openai_control_model,
        )

        try:
            document = await create_text_document(
                self.db,
                user,
                name=f"Contrôle - {topic.strip()} ({level.strip()})"[:500],
                content=result.text,
                category_id=category_id,
                commit=False,
            )
            await add_xp(self.db, user.id, XPAction.generate_control, document.name)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(document)

        return ControlResult(
            control=result.text,
            html=markdown_headers_to_html(result.text),
            topic=topic,
            level=level,
            quantity=quantity,
            document=document,
            xp_gained=xp_for(XPAction.generate_control),
            provider=result.provider.value,
        )
