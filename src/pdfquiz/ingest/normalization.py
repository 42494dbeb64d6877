"""Text normalisation utilities."""
from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")
_HORIZONTAL_SPACE_RE = re.compile(r"[ \t]+")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+\n")
_MULTIPLE_NEWLINES_RE = re.compile(r"\n{3,}")


def normalize_text(text: str) -> str:
    """Collapse every run of whitespace (spaces, tabs, newlines) into one space."""

    normalized = unicodedata.normalize("NFC", text)
    normalized = normalized.replace("\x00", " ")
    return _WHITESPACE_RE.sub(" ", normalized).strip()


def clean_extracted_text(text: str) -> str:
    """Tidy raw extractor output while keeping paragraph structure."""

    cleaned = unicodedata.normalize("NFC", text or "")
    cleaned = cleaned.replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "")
    cleaned = _HORIZONTAL_SPACE_RE.sub(" ", cleaned)
    cleaned = _TRAILING_SPACE_RE.sub("\n", cleaned)
    cleaned = _MULTIPLE_NEWLINES_RE.sub("\n\n", cleaned)
    return cleaned.strip()
