"""Text normalisation and item-table region detection."""

import logging

from services.extraction.patterns import TABLE_END, TABLE_HEADER

logger = logging.getLogger(__name__)


def normalize_newlines(text: str) -> str:
    """Convert Windows and old Mac line endings to ``\\n``."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_lines(text: str) -> list[str]:
    """Split text into trimmed, non-empty physical lines, preserving order."""
    lines = (line.strip() for line in normalize_newlines(text).split("\n"))
    return [line for line in lines if line]


def locate_table_region(text: str) -> str | None:
    """Return the text between the item-table header and the subtotal marker.

    Args:
        text: Full document text

    Returns:
        Region text, or None when the header or the closing subtotal marker
        is missing
    """
    text = normalize_newlines(text)

    header = TABLE_HEADER.search(text)
    if header is None:
        logger.debug("No item-table header found")
        return None

    end = TABLE_END.search(text, header.end())
    if end is None:
        logger.debug("Item-table header found but no subtotal marker follows it")
        return None

    return text[header.end() : end.start()]


class TextNormalizer:
    """Isolates the item table of a document as a list of physical lines."""

    def table_lines(self, text: str) -> list[str] | None:
        """Return the trimmed, non-empty lines of the item table.

        Returns:
            Lines in source order, or None when no table region exists
        """
        region = locate_table_region(text)
        if region is None:
            return None
        return split_lines(region)
