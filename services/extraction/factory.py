"""Factory for creating line-item extraction strategies and the engine.

Implements Factory Pattern for strategy selection with registry pattern for extensibility.

Based on:
- Factory Pattern: https://refactoring.guru/design-patterns/factory-method/python
- Registry Pattern: Python Cookbook 3rd Edition, Recipe 9.22
"""

import logging

from services.extraction.base import ItemExtractionStrategy, StrategyName
from services.extraction.engine import LineItemExtractionEngine
from services.extraction.strategies import PatternStrategy, SequentialStrategy
from services.shared.config import Settings
from services.shared.errors import UnknownStrategyError

logger = logging.getLogger(__name__)


class StrategyRegistry:
    """Registry of available line-item extraction strategies.

    Maintains a mapping of strategy names to their implementation classes.
    Supports runtime registration of new strategies.
    """

    _strategies: dict[str, type[ItemExtractionStrategy]] = {
        StrategyName.SEQUENTIAL.value: SequentialStrategy,
        StrategyName.PATTERN.value: PatternStrategy,
    }

    @classmethod
    def register(cls, name: str, strategy_class: type[ItemExtractionStrategy]) -> None:
        """Register a new strategy.

        Args:
            name: Strategy identifier
            strategy_class: Class implementing ItemExtractionStrategy
        """
        cls._strategies[name] = strategy_class
        logger.info(f"Registered extraction strategy: {name}")

    @classmethod
    def get_strategy_class(cls, name: str | StrategyName) -> type[ItemExtractionStrategy]:
        """Get strategy class by name.

        Args:
            name: Strategy identifier

        Returns:
            Strategy class implementing ItemExtractionStrategy

        Raises:
            UnknownStrategyError: If strategy not found in registry
        """
        key = name.value if isinstance(name, StrategyName) else name
        if key not in cls._strategies:
            raise UnknownStrategyError(key, available=list(cls._strategies.keys()))
        return cls._strategies[key]

    @classmethod
    def create(cls, name: str | StrategyName) -> ItemExtractionStrategy:
        """Instantiate a registered strategy with its default collaborators."""
        return cls.get_strategy_class(name)()

    @classmethod
    def list_strategies(cls) -> list[str]:
        """List all registered strategy names.

        Returns:
            List of strategy names
        """
        return list(cls._strategies.keys())


def create_line_item_engine(settings: Settings) -> LineItemExtractionEngine:
    """Factory function to create the line-item engine from configuration.

    Args:
        settings: Application settings with line_item_fallback_threshold

    Returns:
        Configured LineItemExtractionEngine

    Example:
        >>> engine = create_line_item_engine(Settings(line_item_fallback_threshold=3))
        >>> items = engine.extract("QUANTITY DESCRIPTION UNIT PRICE TOTAL ...")
    """
    engine = LineItemExtractionEngine(
        primary=StrategyRegistry.create(StrategyName.SEQUENTIAL),
        fallback=StrategyRegistry.create(StrategyName.PATTERN),
        threshold=settings.line_item_fallback_threshold,
    )
    logger.info(
        f"Created line-item engine (fallback threshold: {settings.line_item_fallback_threshold})"
    )
    return engine
