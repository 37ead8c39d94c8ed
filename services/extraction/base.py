"""Abstract base class for line-item extraction strategies.

Each strategy parses item tables under a different structural assumption;
the engine runs them behind one interface and keeps one strategy's output
outright rather than merging partial records.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel

from services.extraction.schema import LineItem


class StrategyName(str, Enum):
    """Registered line-item extraction strategies."""

    SEQUENTIAL = "sequential"
    PATTERN = "pattern"


class StrategyOutcome(BaseModel):
    """Items kept by the engine and the strategy that produced them.

    Attributes:
        strategy: Name of the winning strategy
        items: Ordered line items
    """

    strategy: StrategyName
    items: list[LineItem]


class ItemExtractionStrategy(ABC):
    """Abstract base class for line-item extraction strategies.

    Example implementations:
    - SequentialStrategy: line-oriented state machine over the table region
    - PatternStrategy: whole-text templates, deduplicated
    """

    @abstractmethod
    def extract(self, text: str) -> list[LineItem]:
        """Extract ordered line items from document text.

        Args:
            text: Full document text

        Returns:
            Complete line items (total > 0); empty when nothing is found
        """
        pass

    @property
    @abstractmethod
    def strategy_name(self) -> StrategyName:
        """Get strategy name for logging/metrics.

        Returns:
            Strategy identifier
        """
        pass

    def applies_to(self, text: str) -> bool:
        """Check whether the text holds the structure this strategy parses.

        The engine goes straight to the fallback when its primary strategy
        does not apply, whatever the threshold.

        Args:
            text: Full document text

        Returns:
            True unless the strategy needs structure the text lacks
        """
        return True
