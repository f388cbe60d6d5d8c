"""
Best-effort PDF export of a document's text with reportlab.
"""
import html
import io
import re
from typing import List

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer

from core.config import settings
from core.logging import get_logger
from services.text_formatting import looks_like_html, split_paragraphs, strip_html

logger = get_logger("pdf_export")

PLACEHOLDER_EMPTY = "Aperçu non disponible pour ce format de document."
PLACEHOLDER_TOO_LARGE = "Ce document est trop volumineux pour être exporté en PDF."
PLACEHOLDER_FAILED = "Impossible de générer le PDF de ce document."

_HTML_BLOCK = re.compile(r"<(h[1-6]|p|li|div)\b[^>]*>(.*?)</\1>", re.IGNORECASE | re.DOTALL)
_MD_HEADER = re.compile(r"^(#{1,6})\s+(.*)$")


def _styles() -> dict:
    base = getSampleStyleSheet()
    body = ParagraphStyle(
        "EkBody", parent=base["BodyText"], fontName="Helvetica",
        fontSize=10, leading=14, textColor=colors.HexColor("#111827"),
    )
    return {
        "title": ParagraphStyle(
            "EkTitle", parent=base["Heading1"], fontName="Helvetica-Bold",
            fontSize=17, leading=21, spaceAfter=8, textColor=colors.HexColor("#111827"),
        ),
        "h1": ParagraphStyle("EkH1", parent=base["Heading2"], fontName="Helvetica-Bold", fontSize=13, leading=16),
        "h2": ParagraphStyle("EkH2", parent=base["Heading3"], fontName="Helvetica-Bold", fontSize=11.5, leading=14),
        "h3": ParagraphStyle("EkH3", parent=base["Heading4"], fontName="Helvetica-Bold", fontSize=10.5, leading=13),
        "body": body,
        "placeholder": ParagraphStyle(
            "EkPlaceholder", parent=body, fontName="Helvetica-Oblique", textColor=colors.HexColor("#6B7280"),
        ),
    }


def _heading_style(styles: dict, level: int) -> ParagraphStyle:
    return styles["h1"] if level <= 1 else styles["h2"] if level == 2 else styles["h3"]


def _inline(text: str) -> str:
    safe = html.escape(text, quote=False)
    safe = re.sub(r"\*\*(.+?)\*\*", r"<b>\1</b>", safe)
    return safe.replace("\n", "<br/>")


def _html_story(raw: str, styles: dict) -> List:
    """Block tags become styled paragraphs; text between or after them is kept as plain paragraphs."""
    story = []
    position = 0
    for block in _HTML_BLOCK.finditer(raw):
        story.extend(_plain_story(strip_html(raw[position:block.start()]), styles))
        position = block.end()

        text = strip_html(block.group(2)).strip()
        if not text:
            continue
        tag = block.group(1).lower()
        if tag.startswith("h"):
            story.append(Paragraph(_inline(text), _heading_style(styles, int(tag[1]))))
        elif tag == "li":
            story.append(Paragraph("• " + _inline(text), styles["body"]))
        else:
            story.append(Paragraph(_inline(text), styles["body"]))
        story.append(Spacer(1, 4))

    story.extend(_plain_story(strip_html(raw[position:]), styles))
    return story


def _plain_story(raw: str, styles: dict) -> List:
    story = []
    for paragraph in split_paragraphs(raw):
        header = _MD_HEADER.match(paragraph)
        if header and "\n" not in paragraph:
            story.append(Paragraph(_inline(header.group(2)), _heading_style(styles, len(header.group(1)))))
        else:
            story.append(Paragraph(_inline(paragraph), styles["body"]))
        story.append(Spacer(1, 4))
    return story


def _render(title: str, story: List, styles: dict) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=16 * mm,
        rightMargin=16 * mm,
        topMargin=14 * mm,
        bottomMargin=14 * mm,
        title=title,
    )
    doc.build([Paragraph(_inline(title), styles["title"])] + story)
    return buffer.getvalue()


def build_document_pdf(title: str, raw_text: str) -> bytes:
    """
    Render ``raw_text`` under ``title``.

    Never raises for content problems: empty, oversized or unrenderable text
    produces a PDF holding a placeholder message instead.
    """
    styles = _styles()
    title = (title or "Document").strip() or "Document"

    if not raw_text or not raw_text.strip():
        return _render(title, [Paragraph(PLACEHOLDER_EMPTY, styles["placeholder"])], styles)

    if len(raw_text) >= settings.export_max_chars:
        logger.warning("Document too large for PDF export", title=title, chars=len(raw_text))
        return _render(title, [Paragraph(PLACEHOLDER_TOO_LARGE, styles["placeholder"])], styles)

    try:
        story = _html_story(raw_text, styles) if looks_like_html(raw_text) else _plain_story(raw_text, styles)
        return _render(title, story, styles)
    except Exception as e:
        logger.warning("PDF rendering failed, exporting placeholder", title=title, error=str(e))
        return _render(title, [Paragraph(PLACEHOLDER_FAILED, styles["placeholder"])], styles)
