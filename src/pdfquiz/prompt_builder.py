"""Utilities for constructing the system prompt handed to the chat model."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Tuple

_PROMPT_DIR = Path(__file__).resolve().parent / "prompts"
_GROUNDED_PROMPT_PATH = _PROMPT_DIR / "grounded.txt"
_GENERAL_PROMPT_PATH = _PROMPT_DIR / "general.txt"
_HISTORY_PROMPT_PATH = _PROMPT_DIR / "history.txt"

HISTORY_LIMIT = 5


def _load_template(path: Path) -> str:
    """Read and trim the contents of a template file."""
    return path.read_text(encoding="utf-8").strip()


_GROUNDED_TEMPLATE = _load_template(_GROUNDED_PROMPT_PATH)
_GENERAL_TEXT = _load_template(_GENERAL_PROMPT_PATH)
_HISTORY_TEMPLATE = _load_template(_HISTORY_PROMPT_PATH)


def format_chat_history(messages: Sequence[Tuple[str, str]], limit: int = HISTORY_LIMIT) -> str:
    """Render the last ``limit`` ``(sender, content)`` pairs as ``User:``/``Assistant:`` lines."""

    lines = []
    for sender, content in list(messages)[-limit:]:
        speaker = "User" if sender.lower() == "user" else "Assistant"
        lines.append(f"{speaker}: {content.strip()}")
    return "\n".join(lines)


def build_system_prompt(
    context: str,
    chat_history: Optional[Sequence[Tuple[str, str]]] = None,
) -> str:
    """Compose the system prompt: grounded on ``context`` when there is any."""

    if context and context.strip():
        return _GROUNDED_TEMPLATE.format(context=context.strip())

    history = format_chat_history(chat_history or [])
    if not history:
        return _GENERAL_TEXT
    return f"{_GENERAL_TEXT}\n\n{_HISTORY_TEMPLATE.format(history=history)}"


__all__ = ["HISTORY_LIMIT", "build_system_prompt", "format_chat_history"]
