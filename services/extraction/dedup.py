"""Stable deduplication of candidate line items."""

from decimal import Decimal

from services.extraction.schema import LineItem


def identity_key(item: LineItem) -> tuple[str, Decimal]:
    """Identity of a candidate item: exact description and exact total."""
    return item.description, item.total


class ItemDeduplicator:
    """Keeps the first item seen for each identity key, in encounter order."""

    def deduplicate(self, items: list[LineItem]) -> list[LineItem]:
        seen: set[tuple[str, Decimal]] = set()
        unique: list[LineItem] = []

        for item in items:
            key = identity_key(item)
            if key in seen:
                continue
            seen.add(key)
            unique.append(item)

        return unique
