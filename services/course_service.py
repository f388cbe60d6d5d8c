"""
Course generation: a structured lesson on a subject, saved as a ``Cours :`` document.
"""
import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BadRequestException
from core.logging import get_logger
from models.models import Document, User
from services.ai_manager import AIManager
from services.document_service import create_text_document
from services.history_service import HistoryAction, log_history_best_effort
from services.prompts import render_prompt, load_instruction
from services.text_formatting import markdown_headers_to_html

logger = get_logger("course_service")

COURSE_PREFIX = "Cours :"


class CourseLevel(str, enum.Enum):
    primary = "primary"
    college = "college"
    highschool = "highschool"
    university = "university"


class CourseStyle(str, enum.Enum):
    summary = "summary"
    detailed = "detailed"
    flashcards = "flashcards"


class CourseDuration(str, enum.Enum):
    short = "5min"
    medium = "15min"
    long = "30min"


LEVEL_LABELS = {
    CourseLevel.primary: "primaire (6-10 ans)",
    CourseLevel.college: "collège (11-15 ans)",
    CourseLevel.highschool: "lycée (16-18 ans)",
    CourseLevel.university: "études supérieures",
}

STYLE_LABELS = {
    CourseStyle.summary: "résumé simple et concis",
    CourseStyle.detailed: "cours détaillé avec exemples",
    CourseStyle.flashcards: "fiches de révision avec points clés",
}

DURATION_LABELS = {
    CourseDuration.short: "environ 5 minutes de lecture",
    CourseDuration.medium: "environ 15 minutes de lecture",
    CourseDuration.long: "environ 30 minutes de lecture",
}


@dataclass
class CourseResult:
    course: str
    html: str
    subject: str
    level: CourseLevel
    style: CourseStyle
    duration: CourseDuration
    document: Document
    provider: str


def course_document_name(subject: str) -> str:
    return f"{COURSE_PREFIX} {subject.strip()}"[:500]


class CourseGeneratorService:
    def __init__(self, db: AsyncSession, ai_manager: AIManager):
        self.db = db
        self.ai_manager = ai_manager

    async def generate(
        self,
        user: User,
        subject: str,
        level: CourseLevel = CourseLevel.college,
        style: CourseStyle = CourseStyle.detailed,
        duration: CourseDuration = CourseDuration.medium,
        category_id: Optional[int] = None,
    ) -> CourseResult:
        if not subject or not subject.strip():
            raise BadRequestException("Aucun sujet fourni")
        level, style, duration = CourseLevel(level), CourseStyle(style), CourseDuration(duration)

        prompt = render_prompt(
            "course/prompt.md",
            subject=subject.strip(),
            level=LEVEL_LABELS[level],
            style=STYLE_LABELS[style],
            duration=DURATION_LABELS[duration],
        )
        logger.info("Generating course", user_id=user.id, subject=subject, level=level.value, style=style.value)
        result = await self.ai_manager.generate_text(
            prompt,
            system_instruction=load_instruction("course/system_instruction.md"),
            temperature=0.7,
        )

        document = await create_text_document(
            self.db, user, name=course_document_name(subject), content=result.text, category_id=category_id
        )
        await log_history_best_effort(user.id, HistoryAction.COURSE, document.name)

        return CourseResult(
            course=result.text,
            html=markdown_headers_to_html(result.text),
            subject=subject.strip(),
            level=level,
            style=style,
            duration=duration,
            document=document,
            provider=result.provider.value,
        )
