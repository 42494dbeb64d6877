"""Language detection helpers and OCR language resolution."""
from __future__ import annotations

import logging
from typing import Optional

from langdetect import DetectorFactory, LangDetectException, detect

LOGGER = logging.getLogger(__name__)
DetectorFactory.seed = 0

AUTO_LANGUAGE = "auto"
FALLBACK_OCR_LANGUAGE = "eng"

# ISO 639-1 codes reported by langdetect -> Tesseract traineddata names.
_TESSERACT_CODES = {
    "en": "eng",
    "de": "deu",
    "fr": "fra",
    "es": "spa",
    "it": "ita",
    "pt": "por",
    "nl": "nld",
    "pl": "pol",
    "bg": "bul",
    "ru": "rus",
}

# Human-readable names accepted by the upload forms.
_LANGUAGE_NAMES = {
    "english": "eng",
    "german": "deu",
    "deutsch": "deu",
}


class LanguageDetector:
    """Wraps langdetect providing a robust API."""

    def detect(self, text: str) -> Optional[str]:
        cleaned = text.strip()
        if not cleaned:
            return None
        try:
            language = detect(cleaned)
            LOGGER.debug("Detected language: %s", language)
            return language
        except LangDetectException:
            LOGGER.info("Unable to determine language for text of length %s", len(text))
            return None


def resolve_ocr_language(
    requested: str,
    sample_text: str = "",
    detector: Optional[LanguageDetector] = None,
) -> str:
    """Turn an ``ocrLanguage`` option into a Tesseract language code.

    ``"auto"`` detects the language of ``sample_text``; names such as
    ``"german"`` are mapped; anything else (``"eng"``, ``"eng+deu"``) is
    passed through unchanged.
    """

    value = requested.strip()
    lowered = value.lower()
    if lowered in _LANGUAGE_NAMES:
        return _LANGUAGE_NAMES[lowered]
    if lowered != AUTO_LANGUAGE:
        return value

    detected = (detector or LanguageDetector()).detect(sample_text)
    code = _TESSERACT_CODES.get(detected or "", FALLBACK_OCR_LANGUAGE)
    LOGGER.info("Resolved OCR language %s from detected language %s", code, detected)
    return code
