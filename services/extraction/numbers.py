"""Lenient numeric parsing for OCR tokens.

Malformed tokens parse to zero instead of raising: one bad token must not
abort the extraction of a whole document.
"""

import logging
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def parse_quantity(token: str) -> int:
    """Parse a base-10 integer quantity, returning 0 for malformed tokens."""
    try:
        return int(token.strip(), 10)
    except (AttributeError, ValueError):
        logger.debug(f"Malformed quantity token {token!r}, using 0")
        return 0


def parse_amount(token: str) -> Decimal:
    """Parse a decimal amount independent of locale.

    Thousands separators (``,``) and a leading ``$`` are ignored. Negative,
    non-finite and malformed values parse to 0.
    """
    try:
        cleaned = token.strip().lstrip("$").replace(",", "")
        value = Decimal(cleaned)
    except (AttributeError, InvalidOperation):
        logger.debug(f"Malformed amount token {token!r}, using 0")
        return ZERO

    if not value.is_finite() or value < 0:
        return ZERO
    return value
