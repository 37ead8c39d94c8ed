"""Unit tests for whole-text template extraction."""

from decimal import Decimal

import pytest

from services.extraction.pattern_extractor import PatternItemExtractor


@pytest.fixture
def extractor() -> PatternItemExtractor:
    """Create pattern extractor instance."""
    return PatternItemExtractor()


def test_single_line_items(extractor: PatternItemExtractor) -> None:
    """Test same-line records anywhere in the text."""
    text = (
        "Thanks for your order\n"
        "3 Cable Ties 3.50 10.50\n"
        "Some notes here\n"
        "1 Mounting Kit 12.00 12.00\n"
    )

    items = extractor.extract(text)

    assert [(i.quantity, i.description, i.total) for i in items] == [
        (3, "Cable Ties", Decimal("10.50")),
        (1, "Mounting Kit", Decimal("12.00")),
    ]


def test_two_line_item_with_code(extractor: PatternItemExtractor) -> None:
    """Test a description line followed by a code and price line."""
    items = extractor.extract("5 Widget Assembly\nWID-2024-A 10.00 50.00\n")

    assert len(items) == 1
    assert items[0].quantity == 5
    assert items[0].description == "Widget Assembly"
    assert items[0].product_code == "WID-2024-A"
    assert items[0].unit_price == Decimal("10.00")
    assert items[0].total == Decimal("50.00")


def test_two_line_item_with_text_after_code(extractor: PatternItemExtractor) -> None:
    """Test that text between the code and the prices is skipped."""
    items = extractor.extract("2 Gear Housing\nGEAR-9 BLUE 25.00 50.00")

    assert len(items) == 1
    assert items[0].product_code == "GEAR-9"
    assert items[0].total == Decimal("50.00")


def test_parenthesized_code(extractor: PatternItemExtractor) -> None:
    """Test that a parenthesised code is split from the description."""
    items = extractor.extract("3 Bracket Set (BRK-100) 4.00 12.00")

    parenthesized = [i for i in items if i.description == "Bracket Set"]
    assert len(parenthesized) == 1
    assert parenthesized[0].product_code == "BRK-100"
    assert parenthesized[0].unit_price == Decimal("4.00")


def test_overlapping_templates_over_generate(extractor: PatternItemExtractor) -> None:
    """Test that one line can yield a candidate per matching template."""
    items = extractor.extract("3 Bracket Set (BRK-100) 4.00 12.00")

    assert len(items) == 2
    assert all(item.total == Decimal("12.00") for item in items)


def test_embedded_code_removed_from_description(extractor: PatternItemExtractor) -> None:
    """Test that an uppercase code inside a description is extracted."""
    items = extractor.extract("2 Cable WIRE-20 Pack 1.50 3.00")

    assert len(items) == 1
    assert items[0].product_code == "WIRE-20"
    assert items[0].description == "Cable Pack"


def test_zero_total_discarded(extractor: PatternItemExtractor) -> None:
    """Test that candidates without a positive total are dropped."""
    assert extractor.extract("1 Free Sample 0.00 0.00") == []


def test_prices_need_two_decimals(extractor: PatternItemExtractor) -> None:
    """Test that integer prices do not match the templates."""
    assert extractor.extract("5 Widget 10 50") == []


def test_crlf_text(extractor: PatternItemExtractor) -> None:
    """Test that CRLF documents yield the same items."""
    items = extractor.extract("1 Bolt Pack 1.00 1.00\r\n2 Nut Pack 0.50 1.00\r\n")

    assert [item.description for item in items] == ["Bolt Pack", "Nut Pack"]


def test_no_items(extractor: PatternItemExtractor) -> None:
    """Test that free text yields no candidates."""
    assert extractor.extract("Dear customer, thank you for your business.") == []
