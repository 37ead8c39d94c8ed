"""Evaluation metrics for line-item and field extraction.

Computes precision, recall, and F1 scores for header fields, totals and
line items against a gold dataset.
Based on standard information extraction evaluation methodologies.
"""

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from services.extraction.schema import ExtractionResult, LineItem

HEADER_FIELDS = ["invoice_number", "po_number", "date", "salesperson"]
TOTAL_FIELDS = ["subtotal", "tax", "shipping", "total"]


class GoldDocument(BaseModel):
    """Hand-labelled document.

    Attributes:
        source_id: Document identifier
        ocr_text: Text the extractors run over
        header: Expected header fields
        totals: Expected totals
        line_items: Expected line items, in order
    """

    source_id: str
    ocr_text: str
    header: dict[str, str] = Field(default_factory=dict)
    totals: dict[str, Decimal] = Field(default_factory=dict)
    line_items: list[LineItem] = Field(default_factory=list)


@dataclass
class FieldMetrics:
    """Metrics for a single field."""

    precision: float
    recall: float
    f1: float
    support: int  # Number of samples


@dataclass
class EvaluationReport:
    """Complete evaluation report."""

    field_metrics: dict[str, FieldMetrics]
    line_item_metrics: FieldMetrics
    macro_f1: float
    total_samples: int


def _scores(
    true_positives: int, false_positives: int, false_negatives: int, support: int
) -> FieldMetrics:
    precision = (
        true_positives / (true_positives + false_positives)
        if (true_positives + false_positives) > 0
        else 0.0
    )
    recall = (
        true_positives / (true_positives + false_negatives)
        if (true_positives + false_negatives) > 0
        else 0.0
    )
    f1 = 2 * (precision * recall) / (precision + recall) if (precision + recall) > 0 else 0.0
    return FieldMetrics(precision=precision, recall=recall, f1=f1, support=support)


def _normalize_string(s: str) -> str:
    return " ".join(s.strip().lower().split())


def calculate_field_match(expected: Any, predicted: Any) -> bool:
    """Check if extracted field matches expected value.

    Args:
        expected: Ground truth value
        predicted: Extracted value

    Returns:
        True if values match (within 0.01 for amounts, case- and
        whitespace-insensitive for strings)
    """
    if expected is None and predicted is None:
        return True

    if expected is None or predicted is None:
        return False

    if isinstance(expected, int | float | Decimal) and isinstance(predicted, int | float | Decimal):
        return abs(Decimal(str(expected)) - Decimal(str(predicted))) < Decimal("0.01")

    if isinstance(expected, str) and isinstance(predicted, str):
        return _normalize_string(expected) == _normalize_string(predicted)

    return bool(expected == predicted)


def _item_key(item: LineItem) -> tuple[str, Decimal]:
    return _normalize_string(item.description), item.total


def count_matched_items(expected: list[LineItem], predicted: list[LineItem]) -> int:
    """Count predicted items that match an expected item one-to-one."""
    expected_keys = Counter(_item_key(item) for item in expected)
    predicted_keys = Counter(_item_key(item) for item in predicted)
    return sum((expected_keys & predicted_keys).values())


def evaluate_line_items(expected: list[LineItem], predicted: list[LineItem]) -> FieldMetrics:
    """Score predicted items against expected items of one document.

    Items match on normalised description and exact total; duplicates are
    matched at most as often as they are expected.

    Returns:
        Item-level precision, recall and F1 with support = expected item count
    """
    true_positives = count_matched_items(expected, predicted)

    return _scores(
        true_positives,
        false_positives=len(predicted) - true_positives,
        false_negatives=len(expected) - true_positives,
        support=len(expected),
    )


def _evaluate_field(pairs: list[tuple[Any, Any]]) -> FieldMetrics:
    true_positives = 0
    false_positives = 0
    false_negatives = 0

    for exp_value, pred_value in pairs:
        # Both present: a wrong value is both a false positive and a miss
        if exp_value is not None and pred_value is not None:
            if calculate_field_match(exp_value, pred_value):
                true_positives += 1
            else:
                false_positives += 1
                false_negatives += 1
        elif exp_value is not None:
            false_negatives += 1
        elif pred_value is not None:
            false_positives += 1

    return _scores(true_positives, false_positives, false_negatives, support=len(pairs))


def evaluate_documents(
    expected: list[GoldDocument], predicted: list[ExtractionResult]
) -> EvaluationReport:
    """Evaluate extraction accuracy against ground truth.

    Header and totals fields are scored per field; line items are scored
    micro-averaged over all documents.

    Args:
        expected: Gold documents
        predicted: Extraction results, aligned with ``expected``

    Returns:
        Evaluation report with per-field, line-item and overall metrics

    Raises:
        ValueError: If the lists differ in length
    """
    if len(expected) != len(predicted):
        raise ValueError("Expected and predicted lists must have same length")

    pairs = list(zip(expected, predicted, strict=True))
    field_metrics: dict[str, FieldMetrics] = {}

    for field in HEADER_FIELDS:
        field_metrics[field] = _evaluate_field(
            [(exp.header.get(field), pred.header.get(field)) for exp, pred in pairs]
        )
    for field in TOTAL_FIELDS:
        field_metrics[field] = _evaluate_field(
            [(exp.totals.get(field), pred.totals.get(field)) for exp, pred in pairs]
        )

    matched = sum(count_matched_items(exp.line_items, pred.line_items) for exp, pred in pairs)
    expected_items = sum(len(exp.line_items) for exp, _ in pairs)
    predicted_items = sum(len(pred.line_items) for _, pred in pairs)
    line_item_metrics = _scores(
        matched,
        false_positives=predicted_items - matched,
        false_negatives=expected_items - matched,
        support=expected_items,
    )

    all_f1 = [m.f1 for m in field_metrics.values()] + [line_item_metrics.f1]
    macro_f1 = sum(all_f1) / len(all_f1)

    return EvaluationReport(
        field_metrics=field_metrics,
        line_item_metrics=line_item_metrics,
        macro_f1=macro_f1,
        total_samples=len(expected),
    )
