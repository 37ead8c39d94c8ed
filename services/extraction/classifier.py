"""Structural classification of item-table lines.

Lines are classified by shape, not by position, so ragged OCR line breaks
inside a record still resolve to the right kind of continuation.
"""

from dataclasses import dataclass
from decimal import Decimal

from services.extraction.numbers import parse_amount, parse_quantity
from services.extraction.patterns import ITEM_START_LINE, PRICE_ONLY_LINE, PRODUCT_CODE_LINE


@dataclass(frozen=True)
class ItemStart:
    """Line opening a new item: ``<quantity> <remainder>``."""

    quantity: int
    remainder: str


@dataclass(frozen=True)
class ProductCodeContinuation:
    """Line carrying the product code of the item in progress."""

    line: str


@dataclass(frozen=True)
class PriceOnlyContinuation:
    """Line carrying only the unit price and total of the item in progress."""

    unit_price: Decimal
    total: Decimal


@dataclass(frozen=True)
class Unrecognized:
    """Line that does not contribute to any item."""

    line: str


Classification = ItemStart | ProductCodeContinuation | PriceOnlyContinuation | Unrecognized


def classify_line(line: str, in_progress: bool) -> Classification:
    """Classify a single trimmed line; the first matching rule wins.

    Args:
        line: Trimmed physical line
        in_progress: Whether an item is currently being built; continuation
            kinds are only recognised while one is

    Returns:
        Classification of the line
    """
    start = ITEM_START_LINE.match(line)
    if start:
        return ItemStart(quantity=parse_quantity(start.group(1)), remainder=start.group(2).strip())

    if in_progress and PRODUCT_CODE_LINE.match(line):
        return ProductCodeContinuation(line=line)

    if in_progress:
        prices = PRICE_ONLY_LINE.match(line)
        if prices:
            return PriceOnlyContinuation(
                unit_price=parse_amount(prices.group(1)),
                total=parse_amount(prices.group(2)),
            )

    return Unrecognized(line=line)
