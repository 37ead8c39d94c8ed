"""Whole-text, template-based item extraction.

Runs three independent line templates over the full document text. The
output deliberately over-generates; callers deduplicate it.
"""

import logging
import re

from services.extraction.normalizer import normalize_newlines
from services.extraction.numbers import parse_amount, parse_quantity
from services.extraction.patterns import (
    EMBEDDED_PRODUCT_CODE,
    PARENTHESIZED_CODE_ITEM,
    SINGLE_LINE_ITEM,
    TWO_LINE_ITEM,
)
from services.extraction.schema import LineItem

logger = logging.getLogger(__name__)


def _candidate(match: re.Match[str], has_code_group: bool) -> LineItem:
    """Build a candidate item from one template match.

    Templates with a code group capture (qty, description, code, unit, total);
    the single-line template captures (qty, description, unit, total).
    """
    if has_code_group:
        quantity, description, code, unit_price, total = match.groups()
    else:
        quantity, description, unit_price, total = match.groups()
        code = None

    description = description.strip()
    code = code.strip() if code else None

    if not code:
        embedded = EMBEDDED_PRODUCT_CODE.search(description)
        if embedded:
            code = embedded.group(1)
            description = " ".join(description.replace(code, "").split())

    return LineItem(
        quantity=parse_quantity(quantity),
        description=description,
        product_code=code,
        unit_price=parse_amount(unit_price),
        total=parse_amount(total),
    )


class PatternItemExtractor:
    """Extracts candidate items from anywhere in the document text."""

    # Applied in this order; the flag marks templates that capture a product code.
    TEMPLATES: tuple[tuple[str, re.Pattern[str], bool], ...] = (
        ("single_line", SINGLE_LINE_ITEM, False),
        ("two_line", TWO_LINE_ITEM, True),
        ("parenthesized_code", PARENTHESIZED_CODE_ITEM, True),
    )

    def extract(self, text: str) -> list[LineItem]:
        """Return every candidate item, template by template.

        Args:
            text: Full document text

        Returns:
            Candidate items with a positive total; may contain duplicates
        """
        text = normalize_newlines(text)
        candidates: list[LineItem] = []

        for name, pattern, has_code_group in self.TEMPLATES:
            matches = list(pattern.finditer(text))
            if matches:
                logger.debug(f"Template {name} matched {len(matches)} lines")

            for match in matches:
                item = _candidate(match, has_code_group)
                if item.is_complete:
                    candidates.append(item)

        return candidates
