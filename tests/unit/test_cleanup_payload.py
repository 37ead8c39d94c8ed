"""Unit tests for merging cleanup provider output into results."""

import json
from decimal import Decimal
from unittest.mock import patch

import pytest

from services.cleanup.base import apply_cleanup_payload, cleanup_payload
from services.extraction.schema import (
    ConfidentValue,
    DocumentType,
    ExtractionResult,
    LineItem,
    Reconciliation,
)
from services.shared.errors import CleanupError


@pytest.fixture
def result() -> ExtractionResult:
    """Extraction result to be cleaned."""
    items = [LineItem(quantity=5, description="Widgit", unit_price=Decimal("10.00"), total=Decimal("50.00"))]
    totals = {"subtotal": Decimal("50.00")}
    return ExtractionResult(
        source_id="doc-1",
        document_type=DocumentType.INVOICE,
        header={"invoice_number": "INV-1O01"},
        line_items=items,
        totals=totals,
        reconciliation=Reconciliation.from_items(items, totals),
    )


def test_payload_must_be_object(result: ExtractionResult) -> None:
    """Test that a non-object payload raises CleanupError."""
    with pytest.raises(CleanupError) as exc_info:
        apply_cleanup_payload(result, ["not", "an", "object"], "openai")

    assert exc_info.value.details["provider"] == "openai"


def test_header_values_and_confidences(result: ExtractionResult) -> None:
    """Test both bare and confidence-carrying header values."""
    payload = {
        "header": {
            "invoice_number": {"value": "INV-1001", "confidence": 0.95},
            "terms": "Net 30",
            "po_number": None,
        }
    }

    cleaned = apply_cleanup_payload(result, payload, "openai")

    assert cleaned.header == {"invoice_number": "INV-1001", "terms": "Net 30"}
    assert cleaned.field_confidence == {"invoice_number": 0.95}
    assert cleaned.cleanup_provider == "openai"


def test_line_items_replaced(result: ExtractionResult) -> None:
    """Test that valid cleaned items replace the originals."""
    payload = {
        "line_items": [
            {
                "quantity": 5,
                "description": "Widget",
                "product_code": "WID-1",
                "unit_price": "10.00",
                "total": "50.00",
            },
            {"quantity": 1, "description": "Bogus", "total": 0},
        ]
    }

    cleaned = apply_cleanup_payload(result, payload, "ollama")

    assert [item.description for item in cleaned.line_items] == ["Widget"]
    assert cleaned.line_items[0].product_code == "WID-1"


def test_invalid_line_items_keep_originals(result: ExtractionResult) -> None:
    """Test that unusable cleaned items leave the originals in place."""
    payload = {"line_items": [{"quantity": "many", "total": "lots"}, "junk"]}

    cleaned = apply_cleanup_payload(result, payload, "ollama")

    assert cleaned.line_items == result.line_items


def test_totals_and_reconciliation(result: ExtractionResult) -> None:
    """Test that cleaned totals are parsed and reconciliation recomputed."""
    payload = {"totals": {"subtotal": "1,050.00", "tax": 8.5, "total": "n/a"}}

    cleaned = apply_cleanup_payload(result, payload, "openai", tolerance=0.01)

    assert cleaned.totals["subtotal"] == Decimal("1050.00")
    assert cleaned.totals["tax"] == Decimal("8.5")
    assert "total" not in cleaned.totals
    assert cleaned.reconciliation.mismatch is True


def test_empty_payload_keeps_result(result: ExtractionResult) -> None:
    """Test that an empty object changes only the provider."""
    cleaned = apply_cleanup_payload(result, {}, "openai")

    assert cleaned.header == result.header
    assert cleaned.line_items == result.line_items
    assert cleaned.totals == result.totals


def test_cleanup_payload(result: ExtractionResult) -> None:
    """Test the serialised view sent to cleanup providers."""
    payload = cleanup_payload(result)

    assert set(payload) == {"header", "line_items", "totals", "document_type"}
    assert payload["document_type"] == "invoice"
    assert payload["line_items"][0]["total"] == "50.00"
    assert payload["totals"] == {"subtotal": "50.00"}


def test_nan_confidence_treated_as_missing(result: ExtractionResult) -> None:
    """Test that a NaN confidence keeps the value without a score."""
    payload = json.loads('{"header": {"date": {"value": "2024-01-01", "confidence": NaN}}}')

    cleaned = apply_cleanup_payload(result, payload, "ollama")

    assert cleaned.header["date"] == "2024-01-01"
    assert "date" not in cleaned.field_confidence


def test_invalid_header_field_raises_cleanup_error(result: ExtractionResult) -> None:
    """Test that a header field failing validation surfaces as CleanupError."""

    def out_of_range(raw: object) -> ConfidentValue:
        return ConfidentValue(value="2024-01-01", confidence=2.0)

    payload = {"header": {"date": {"value": "2024-01-01", "confidence": 0.9}}}
    with patch("services.cleanup.base.coerce_field_value", side_effect=out_of_range):
        with pytest.raises(CleanupError) as exc_info:
            apply_cleanup_payload(result, payload, "ollama")

    assert exc_info.value.details["provider"] == "ollama"
    assert "date" in exc_info.value.details["reason"]
