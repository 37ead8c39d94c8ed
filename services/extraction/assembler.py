"""Sequential, line-oriented item assembly.

The assembler is a fold over classified lines. Its accumulator holds the
item in progress and the items emitted so far; nothing outlives a single
``assemble`` call, so documents can be processed concurrently.
"""

import logging
from dataclasses import dataclass
from functools import reduce

from services.extraction.classifier import (
    ItemStart,
    PriceOnlyContinuation,
    ProductCodeContinuation,
    classify_line,
)
from services.extraction.numbers import parse_amount
from services.extraction.patterns import LEADING_PRODUCT_CODE, TRAILING_PRICE_PAIR
from services.extraction.schema import LineItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssemblyState:
    """Fold accumulator: the item in progress and the completed items."""

    current: LineItem | None = None
    emitted: tuple[LineItem, ...] = ()

    def flush(self) -> "AssemblyState":
        """Emit the item in progress if it is complete; discard it otherwise."""
        if self.current is None:
            return self
        if self.current.is_complete:
            return AssemblyState(current=None, emitted=self.emitted + (self.current,))
        logger.debug(f"Discarding incomplete item: {self.current.description!r}")
        return AssemblyState(current=None, emitted=self.emitted)


def start_item(classification: ItemStart) -> LineItem:
    """Seed a new item, taking same-line prices off the end of the description."""
    description = classification.remainder
    prices = TRAILING_PRICE_PAIR.search(description)
    if prices is None:
        return LineItem(quantity=classification.quantity, description=description)

    return LineItem(
        quantity=classification.quantity,
        description=description[: prices.start()].strip(),
        unit_price=parse_amount(prices.group(1)),
        total=parse_amount(prices.group(2)),
    )


def apply_product_code(item: LineItem, line: str) -> LineItem:
    """Attach the leading code of ``line``, plus any trailing price pair."""
    update: dict[str, object] = {}

    code = LEADING_PRODUCT_CODE.match(line)
    if code:
        update["product_code"] = code.group(1)

    prices = TRAILING_PRICE_PAIR.search(line)
    if prices:
        update["unit_price"] = parse_amount(prices.group(1))
        update["total"] = parse_amount(prices.group(2))

    return item.model_copy(update=update)


def step(state: AssemblyState, line: str) -> AssemblyState:
    """Advance the assembly state machine by one line."""
    classification = classify_line(line, in_progress=state.current is not None)

    if isinstance(classification, ItemStart):
        flushed = state.flush()
        return AssemblyState(current=start_item(classification), emitted=flushed.emitted)

    if state.current is None:
        return state

    if isinstance(classification, ProductCodeContinuation):
        return AssemblyState(
            current=apply_product_code(state.current, classification.line),
            emitted=state.emitted,
        )

    if isinstance(classification, PriceOnlyContinuation):
        return AssemblyState(
            current=state.current.model_copy(
                update={"unit_price": classification.unit_price, "total": classification.total}
            ),
            emitted=state.emitted,
        )

    return state


class SequentialItemAssembler:
    """Builds line items from the ordered lines of an item table."""

    def assemble(self, lines: list[str]) -> list[LineItem]:
        """Fold the lines into completed items, in source order.

        Args:
            lines: Trimmed, non-empty table lines

        Returns:
            Items with a positive total
        """
        final_state = reduce(step, lines, AssemblyState()).flush()
        return list(final_state.emitted)
