"""Multi-strategy line-item extraction engine.

The sequential strategy is precise on well-formed tables but misses items
when OCR breaks the layout. Below a configurable item count the engine also
runs the whole-text pattern strategy and keeps whichever result is larger.
Text without a table region goes straight to the pattern strategy, even
when the threshold is 0.
One strategy's output is kept outright; partial records are never merged.
"""

import logging

from services.extraction.base import ItemExtractionStrategy, StrategyName, StrategyOutcome
from services.extraction.schema import LineItem
from services.extraction.strategies import PatternStrategy, SequentialStrategy

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_THRESHOLD = 5


def select_items(primary: list[LineItem], fallback: list[LineItem]) -> list[LineItem]:
    """Pick the fallback result only when it found strictly more items.

    Ties keep the primary result, which is ordered by the table itself.
    """
    if len(fallback) > len(primary):
        return fallback
    return primary


class LineItemExtractionEngine:
    """Runs the primary strategy, falls back, and selects a result.

    Example:
        >>> engine = LineItemExtractionEngine()
        >>> outcome = engine.extract_with_strategy(invoice_text)
        >>> outcome.strategy, len(outcome.items)
        (<StrategyName.SEQUENTIAL: 'sequential'>, 3)
    """

    def __init__(
        self,
        primary: ItemExtractionStrategy | None = None,
        fallback: ItemExtractionStrategy | None = None,
        threshold: int = DEFAULT_FALLBACK_THRESHOLD,
    ) -> None:
        """Initialize engine.

        Args:
            primary: Strategy tried first (sequential by default)
            fallback: Strategy tried when the primary finds too few items
                (pattern by default)
            threshold: Primary item count below which the fallback runs
        """
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")

        self.primary = primary or SequentialStrategy()
        self.fallback = fallback or PatternStrategy()
        self.threshold = threshold

    def extract_with_strategy(self, text: str) -> StrategyOutcome:
        """Extract line items and report which strategy produced them.

        Args:
            text: Full document text

        Returns:
            Winning strategy name and its ordered items
        """
        if not self.primary.applies_to(text):
            fallback_items = self.fallback.extract(text)
            logger.info(
                f"Using {self.fallback.strategy_name.value} strategy "
                f"({self.primary.strategy_name.value} does not apply, "
                f"{len(fallback_items)} items)"
            )
            return StrategyOutcome(strategy=self.fallback.strategy_name, items=fallback_items)

        primary_items = self.primary.extract(text)

        if len(primary_items) >= self.threshold:
            logger.info(
                f"Using {self.primary.strategy_name.value} strategy "
                f"({len(primary_items)} items, no fallback needed)"
            )
            return StrategyOutcome(strategy=self.primary.strategy_name, items=primary_items)

        fallback_items = self.fallback.extract(text)
        selected = select_items(primary_items, fallback_items)
        winner = self.fallback if selected is fallback_items else self.primary

        logger.info(
            f"Using {winner.strategy_name.value} strategy "
            f"({self.primary.strategy_name.value}: {len(primary_items)} items, "
            f"{self.fallback.strategy_name.value}: {len(fallback_items)} items)"
        )
        return StrategyOutcome(strategy=winner.strategy_name, items=selected)

    def extract(self, text: str) -> list[LineItem]:
        """Extract ordered, complete line items from document text."""
        return self.extract_with_strategy(text).items

    def compare(self, text: str) -> dict[str, int]:
        """Run every strategy unconditionally and count the items each finds.

        Diagnostic only: the fallback threshold is ignored.

        Returns:
            Mapping of strategy name to item count
        """
        return {
            self.primary.strategy_name.value: len(self.primary.extract(text)),
            self.fallback.strategy_name.value: len(self.fallback.extract(text)),
        }

