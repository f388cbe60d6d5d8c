"""
Summary generation service for handling AI-powered summaries.
"""
from dataclasses import dataclass, field
from typing import List

from core.config import settings
from core.exceptions import BadRequestException
from core.logging import get_logger
from core.security import Audience
from services.ai_manager import AIManager
from services.prompts import render_prompt, load_instruction

logger = get_logger("summary_service")

MAX_KEYWORDS = 10


@dataclass
class SummaryResult:
    summary: str
    keywords: List[str] = field(default_factory=list)
    provider: str = ""
    truncated: bool = False


def truncate_input(text: str, limit: int) -> tuple[str, bool]:
    if len(text) <= limit:
        return text, False
    return text[:limit] + "...", True


def parse_keywords(raw: str) -> List[str]:
    """Comma separated keywords, deduplicated, order kept, at most ten."""
    seen = set()
    keywords = []
    for part in raw.replace("\n", ",").split(","):
        keyword = part.strip().strip(".-•*").strip()
        if keyword and keyword.casefold() not in seen:
            seen.add(keyword.casefold())
            keywords.append(keyword)
    return keywords[:MAX_KEYWORDS]


class SummaryGeneratorService:
    """Summarize raw document text, then extract keywords from the summary."""

    def __init__(self, ai_manager: AIManager):
        self.ai_manager = ai_manager

    async def summarize(self, document_text: str, audience: Audience = Audience.student) -> SummaryResult:
        """
        Students get a pedagogical summary with examples; teachers get a
        concise one meant to be handed out.
        """
        if not document_text or not document_text.strip():
            raise BadRequestException("Le texte du document est requis")

        text, truncated = truncate_input(document_text, settings.summary_max_input_chars)
        if truncated:
            logger.info("Summary input truncated", original_chars=len(document_text))

        summary = await self.ai_manager.generate_text(
            render_prompt("summary/prompt.md", document_text=text, audience=audience.value),
            system_instruction=render_prompt("summary/system_instruction.md", audience=audience.value),
            temperature=0.2,
            max_tokens=2000,
        )

        keywords_answer = await self.ai_manager.generate_text(
            render_prompt("summary/keywords_prompt.md", summary=summary.text),
            system_instruction=load_instruction("summary/keywords_instruction.md"),
            temperature=0.2,
            max_tokens=200,
        )

        return SummaryResult(
            summary=summary.text,
            keywords=parse_keywords(keywords_answer.text),
            provider=summary.provider.value,
            truncated=truncated,
        )
