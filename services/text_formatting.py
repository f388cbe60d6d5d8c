"""
Light text transformations applied to generated content.
"""
import html
import re

_HEADER = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_LIST_ITEM = re.compile(r"^(?:[-*•]|\d+\.)\s+(.+)$")
_HTML_TAG = re.compile(r"</?(p|div|h[1-6]|ul|ol|li|br|strong|em|span|table|tr|td|th|body|html)\b[^>]*>", re.IGNORECASE)


def looks_like_html(text: str) -> bool:
    return bool(_HTML_TAG.search(text or ""))


def split_paragraphs(text: str) -> list[str]:
    """Split plain text on blank lines, dropping empty paragraphs."""
    return [p.strip() for p in re.split(r"\n\s*\n", text or "") if p.strip()]


def markdown_headers_to_html(text: str) -> str:
    """
    Turn markdown headers, lists and bold markers into a small HTML fragment.

    ``# Title`` becomes ``<h1>``, ``### Exercice 1`` becomes ``<h3>``;
    consecutive ``- item`` or ``1. item`` lines form a ``<ul>``; other lines
    are grouped into ``<p>`` blocks, single newlines become ``<br/>``.
    """
    blocks = []
    paragraph = []
    items = []

    def flush():
        if paragraph:
            blocks.append("<p>" + "<br/>".join(paragraph) + "</p>")
            paragraph.clear()
        if items:
            blocks.append("<ul>" + "".join(f"<li>{item}</li>" for item in items) + "</ul>")
            items.clear()

    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        header = _HEADER.match(line)
        item = _LIST_ITEM.match(line)
        if header:
            flush()
            level = len(header.group(1))
            blocks.append(f"<h{level}>{_inline(header.group(2))}</h{level}>")
        elif item:
            if paragraph:
                flush()
            items.append(_inline(item.group(1)))
        elif not line:
            flush()
        else:
            if items:
                flush()
            paragraph.append(_inline(line))
    flush()
    return "\n".join(blocks)


def _inline(line: str) -> str:
    return _BOLD.sub(r"<strong>\1</strong>", html.escape(line, quote=False))


def strip_html(text: str) -> str:
    without_tags = re.sub(r"<br\s*/?>", "\n", text or "", flags=re.IGNORECASE)
    without_tags = re.sub(r"</(p|h[1-6]|li|div)>", "\n\n", without_tags, flags=re.IGNORECASE)
    without_tags = re.sub(r"<[^>]+>", "", without_tags)
    return html.unescape(without_tags)
