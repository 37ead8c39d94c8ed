"""Concrete line-item extraction strategies."""

import logging

from services.extraction.assembler import SequentialItemAssembler
from services.extraction.base import ItemExtractionStrategy, StrategyName
from services.extraction.dedup import ItemDeduplicator
from services.extraction.normalizer import TextNormalizer
from services.extraction.pattern_extractor import PatternItemExtractor
from services.extraction.schema import LineItem

logger = logging.getLogger(__name__)


class SequentialStrategy(ItemExtractionStrategy):
    """Line-oriented assembly over the isolated item-table region.

    Returns no items when the document has no recognisable table region.
    ``applies_to`` reports that case so the engine can go straight to the
    pattern strategy.
    """

    def __init__(
        self,
        normalizer: TextNormalizer | None = None,
        assembler: SequentialItemAssembler | None = None,
    ) -> None:
        self._normalizer = normalizer or TextNormalizer()
        self._assembler = assembler or SequentialItemAssembler()

    @property
    def strategy_name(self) -> StrategyName:
        return StrategyName.SEQUENTIAL

    def applies_to(self, text: str) -> bool:
        """Check that the text has a table region to assemble."""
        return self._normalizer.table_lines(text) is not None

    def extract(self, text: str) -> list[LineItem]:
        lines = self._normalizer.table_lines(text)
        if lines is None:
            logger.info("No table region found, skipping sequential assembly")
            return []
        return self._assembler.assemble(lines)


class PatternStrategy(ItemExtractionStrategy):
    """Whole-text template extraction followed by stable deduplication."""

    def __init__(
        self,
        extractor: PatternItemExtractor | None = None,
        deduplicator: ItemDeduplicator | None = None,
    ) -> None:
        self._extractor = extractor or PatternItemExtractor()
        self._deduplicator = deduplicator or ItemDeduplicator()

    @property
    def strategy_name(self) -> StrategyName:
        return StrategyName.PATTERN

    def extract(self, text: str) -> list[LineItem]:
        candidates = self._extractor.extract(text)
        items = self._deduplicator.deduplicate(candidates)
        logger.debug(f"Pattern strategy kept {len(items)} of {len(candidates)} candidates")
        return items
