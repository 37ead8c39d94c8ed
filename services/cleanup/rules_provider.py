"""Rule-based cleanup provider.

Runs entirely locally: fixes common OCR character confusions, collapses
whitespace, normalises date fields to ISO format and assigns default field
confidences. Always available; used when no LLM provider is configured.
"""

import logging
import re

from dateutil import parser as date_parser

from services.cleanup.base import CleanupProvider
from services.extraction.schema import ExtractionResult, LineItem

logger = logging.getLogger(__name__)

# Whole-word OCR misreads and their corrections, matched case-insensitively.
COMMON_CORRECTIONS: dict[str, str] = {
    "inv0ice": "invoice",
    "arnount": "amount",
    "arn0unt": "amount",
    "nurnber": "number",
    "custorner": "customer",
    "payrnent": "payment",
}

# Single-character confusions decided by the neighbouring token.
OCR_CHARACTER_FIXES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\brn\b", re.IGNORECASE), "m"),
    (re.compile(r"\b0\b(?=\s*[a-zA-Z])"), "O"),
    (re.compile(r"\bl\b(?=\s*[0-9])"), "1"),
    (re.compile(r"\bO\b(?=\s*[0-9])"), "0"),
)

DATE_FIELDS = ("date", "due_date")

DEFAULT_CONFIDENCE = 0.9
UNPARSEABLE_DATE_PENALTY = 0.3

_WHITESPACE = re.compile(r"[ \t]+")


def _match_case(found: str, correction: str) -> str:
    if found.isupper():
        return correction.upper()
    if found[:1].isupper():
        return correction.capitalize()
    return correction


def correct_typos(text: str) -> str:
    """Replace known OCR misreads, keeping the casing of the original word."""
    for typo, correction in COMMON_CORRECTIONS.items():
        pattern = re.compile(rf"\b{re.escape(typo)}\b", re.IGNORECASE)
        text = pattern.sub(lambda m, c=correction: _match_case(m.group(0), c), text)

    for pattern, replacement in OCR_CHARACTER_FIXES:
        text = pattern.sub(replacement, text)
    return text


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def normalize_date(value: str) -> str | None:
    """Convert a date string to ``YYYY-MM-DD``.

    Dotted dates (``12.03.2024``) are read day first, everything else month
    first.

    Returns:
        ISO date, or None when the value is not a date
    """
    dayfirst = "." in value
    try:
        return date_parser.parse(value, dayfirst=dayfirst).date().isoformat()
    except (ValueError, OverflowError):
        return None


class RulesCleanupProvider(CleanupProvider):
    """Cleanup provider applying local correction rules."""

    @property
    def provider_name(self) -> str:
        return "rules"

    def is_available(self) -> bool:
        return True

    def clean(self, result: ExtractionResult) -> ExtractionResult:
        header: dict[str, str] = {}
        confidences = dict(result.field_confidence)

        for name, value in result.header.items():
            cleaned = collapse_whitespace(value)
            score = DEFAULT_CONFIDENCE

            if name in DATE_FIELDS:
                iso = normalize_date(cleaned)
                if iso is None:
                    logger.debug(f"Could not normalise {name} value {cleaned!r}")
                    score -= UNPARSEABLE_DATE_PENALTY
                else:
                    cleaned = iso
            else:
                cleaned = correct_typos(cleaned)

            header[name] = cleaned
            confidences.setdefault(name, score)

        line_items = [self._clean_item(item) for item in result.line_items]

        logger.info(f"Rules cleanup applied to {result.source_id}")
        return result.model_copy(
            update={
                "header": header,
                "field_confidence": confidences,
                "line_items": line_items,
                "raw_text": correct_typos(result.raw_text),
                "cleanup_provider": self.provider_name,
            }
        )

    def _clean_item(self, item: LineItem) -> LineItem:
        description = correct_typos(collapse_whitespace(item.description))
        if description == item.description:
            return item
        return item.model_copy(update={"description": description})
