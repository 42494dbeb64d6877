"""Data models used by the ingestion pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class ExtractionMethod(str, Enum):
    NATIVE = "native"
    OCR = "ocr"
    NONE = "none"


@dataclass(slots=True, frozen=True)
class Page:
    """Text extracted from one page of the source document."""

    page_number: int
    text: str
    method: ExtractionMethod


@dataclass(slots=True)
class ExtractionResult:
    """Pages that survived extraction plus a record of what happened to the others."""

    pages: List[Page]
    skipped_pages: List[int] = field(default_factory=list)
    ocr_pages: List[int] = field(default_factory=list)
    ocr_available: bool = True
    full_ocr_fallback: bool = False

    @property
    def page_numbers(self) -> List[int]:
        return [page.page_number for page in self.pages]


@dataclass(slots=True, frozen=True)
class Chunk:
    """A bounded slice of a single page's normalised text."""

    text: str
    page_number: int
    position: int
    char_start: int
    char_end: int
