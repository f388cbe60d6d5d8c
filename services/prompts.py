"""
Prompt templates stored as markdown files under ``prompts/``.
"""
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

_env = Environment(
    loader=FileSystemLoader(str(PROMPTS_DIR)),
    undefined=StrictUndefined,
    keep_trailing_newline=False,
    autoescape=False,
)


def render_prompt(name: str, **context) -> str:
    """Render ``prompts/<name>`` with ``context``; missing variables raise."""
    return _env.get_template(name).render(**context).strip()


def load_instruction(name: str) -> str:
    return (PROMPTS_DIR / name).read_text(encoding="utf-8").strip()
