"""Unit tests for the rule-based cleanup provider."""

from decimal import Decimal

import pytest

from services.cleanup.rules_provider import (
    RulesCleanupProvider,
    collapse_whitespace,
    correct_typos,
    normalize_date,
)
from services.extraction.schema import ExtractionResult, LineItem, Reconciliation
from services.shared.config import Settings


@pytest.fixture
def provider() -> RulesCleanupProvider:
    """Create rules provider instance."""
    return RulesCleanupProvider(Settings())


@pytest.fixture
def result() -> ExtractionResult:
    """Extraction result with typical OCR noise."""
    items = [
        LineItem(
            quantity=2,
            description="Payrnent   Terminal Stand",
            unit_price=Decimal("40.00"),
            total=Decimal("80.00"),
        ),
        LineItem(quantity=1, description="Cable", unit_price=Decimal("5.00"), total=Decimal("5.00")),
    ]
    return ExtractionResult(
        source_id="scan-7.png",
        header={
            "invoice_number": "INV-1001",
            "date": "12.03.2024",
            "due_date": "sometime soon",
            "terms": "Net   30",
        },
        field_confidence={"invoice_number": 0.5},
        line_items=items,
        totals={"subtotal": Decimal("85.00")},
        raw_text="INV0ICE NURNBER INV-1001",
        reconciliation=Reconciliation.from_items(items, {"subtotal": Decimal("85.00")}),
    )


class TestHelpers:
    """Tests for the correction helpers."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("arnount due", "amount due"),
            ("INV0ICE NURNBER", "INVOICE NUMBER"),
            ("Custorner copy", "Customer copy"),
            ("total l 5", "total 1 5"),
            ("invoice", "invoice"),
        ],
    )
    def test_correct_typos(self, text: str, expected: str) -> None:
        """Test known OCR misreads with case preservation."""
        assert correct_typos(text) == expected

    def test_collapse_whitespace(self) -> None:
        """Test that runs of spaces and tabs become one space."""
        assert collapse_whitespace("  Net \t  30 ") == "Net 30"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("12.03.2024", "2024-03-12"),
            ("12/04/2024", "2024-12-04"),
            ("2024-01-15", "2024-01-15"),
            ("sometime soon", None),
        ],
    )
    def test_normalize_date(self, value: str, expected: str | None) -> None:
        """Test that dotted dates are day first and others month first."""
        assert normalize_date(value) == expected


class TestRulesCleanupProvider:
    """Tests for RulesCleanupProvider.clean."""

    def test_provider_properties(self, provider: RulesCleanupProvider) -> None:
        """Test that the rules provider is always available."""
        assert provider.provider_name == "rules"
        assert provider.is_available() is True

    def test_header_cleaned(self, provider: RulesCleanupProvider, result: ExtractionResult) -> None:
        """Test that header dates are normalised and text tidied."""
        cleaned = provider.clean(result)

        assert cleaned.header["date"] == "2024-03-12"
        assert cleaned.header["due_date"] == "sometime soon"
        assert cleaned.header["terms"] == "Net 30"
        assert cleaned.header["invoice_number"] == "INV-1001"

    def test_confidences(self, provider: RulesCleanupProvider, result: ExtractionResult) -> None:
        """Test default, penalised and pre-existing confidences."""
        cleaned = provider.clean(result)

        assert cleaned.field_confidence["invoice_number"] == 0.5
        assert cleaned.field_confidence["date"] == pytest.approx(0.9)
        assert cleaned.field_confidence["due_date"] == pytest.approx(0.6)

    def test_line_items_cleaned(self, provider: RulesCleanupProvider, result: ExtractionResult) -> None:
        """Test that descriptions are corrected but amounts untouched."""
        cleaned = provider.clean(result)

        assert cleaned.line_items[0].description == "Payment Terminal Stand"
        assert cleaned.line_items[0].total == Decimal("80.00")
        assert cleaned.line_items[1] is result.line_items[1]

    def test_raw_text_and_provider(self, provider: RulesCleanupProvider, result: ExtractionResult) -> None:
        """Test that raw text is corrected and the provider recorded."""
        cleaned = provider.clean(result)

        assert cleaned.raw_text == "INVOICE NUMBER INV-1001"
        assert cleaned.cleanup_provider == "rules"

    def test_original_untouched(self, provider: RulesCleanupProvider, result: ExtractionResult) -> None:
        """Test that cleaning returns a copy."""
        provider.clean(result)

        assert result.header["date"] == "12.03.2024"
        assert result.cleanup_provider is None
