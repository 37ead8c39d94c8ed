"""Document data models for structured line-item extraction.

Every model serialises to plain JSON via ``model_dump(mode="json")``;
Decimal amounts are emitted as strings.
"""

import math
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class DocumentType(str, Enum):
    """Kinds of semi-structured documents the service recognises."""

    INVOICE = "invoice"
    RECEIPT = "receipt"
    CONTRACT = "contract"
    PURCHASE_ORDER = "purchase_order"
    SHIPPING = "shipping"
    GENERAL = "general"


class LineItem(BaseModel):
    """One row of a document's item table.

    An item is complete once it has a positive total; incomplete items are
    never returned by the extraction engine.
    """

    model_config = ConfigDict(frozen=True)

    quantity: int = Field(0, ge=0, description="Leading quantity of the item-start line")
    description: str = Field("", description="Item description without trailing prices")
    product_code: str | None = Field(None, description="Uppercase alphanumeric product code")
    unit_price: Decimal = Field(Decimal("0"), ge=0, description="Price per unit")
    total: Decimal = Field(Decimal("0"), ge=0, description="Line total")

    @property
    def is_complete(self) -> bool:
        return self.total > 0


class ScalarValue(BaseModel):
    """A bare extracted value."""

    kind: Literal["scalar"] = "scalar"
    value: str


class ConfidentValue(BaseModel):
    """An extracted value with a confidence score."""

    kind: Literal["confident"] = "confident"
    value: str
    confidence: float = Field(ge=0, le=1)


FieldValue = Annotated[ScalarValue | ConfidentValue, Field(discriminator="kind")]


def coerce_field_value(raw: Any) -> ScalarValue | ConfidentValue | None:
    """Build a FieldValue from a bare value or a ``{"value", "confidence"}`` mapping.

    Cleanup providers return fields in either shape; this is the only place
    that inspects the shape.

    Args:
        raw: Value as returned by a collaborator

    Returns:
        FieldValue, or None when there is no usable value
    """
    if raw is None:
        return None

    if isinstance(raw, ScalarValue | ConfidentValue):
        return raw

    if isinstance(raw, dict):
        value = raw.get("value")
        if value is None or str(value).strip() == "":
            return None
        confidence = raw.get("confidence")
        if confidence is None:
            return ScalarValue(value=str(value).strip())
        try:
            score = float(confidence)
        except (TypeError, ValueError):
            score = math.nan
        # NaN and infinities count as a missing confidence
        if not math.isfinite(score):
            return ScalarValue(value=str(value).strip())
        score = min(max(score, 0.0), 1.0)
        return ConfidentValue(value=str(value).strip(), confidence=score)

    text = str(raw).strip()
    return ScalarValue(value=text) if text else None


def field_text(value: ScalarValue | ConfidentValue) -> str:
    """Return the text of a FieldValue."""
    return value.value


def field_confidence(value: ScalarValue | ConfidentValue, default: float | None = None) -> float | None:
    """Return the confidence of a FieldValue, or ``default`` for scalar values."""
    if isinstance(value, ConfidentValue):
        return value.confidence
    return default


class Reconciliation(BaseModel):
    """Comparison of the line-item sum against the stated subtotal.

    Attributes:
        line_items_total: Sum of all line-item totals
        stated_subtotal: Subtotal printed on the document, if found
        difference: Absolute difference, when a subtotal was found
        mismatch: True when the difference exceeds the tolerance
    """

    line_items_total: Decimal
    stated_subtotal: Decimal | None = None
    difference: Decimal | None = None
    mismatch: bool = False

    @classmethod
    def from_items(
        cls,
        items: list[LineItem],
        totals: dict[str, Decimal],
        tolerance: float = 0.01,
    ) -> "Reconciliation":
        line_items_total = sum((item.total for item in items), Decimal("0"))
        subtotal = totals.get("subtotal")
        if subtotal is None:
            return cls(line_items_total=line_items_total)

        difference = abs(line_items_total - subtotal)
        return cls(
            line_items_total=line_items_total,
            stated_subtotal=subtotal,
            difference=difference,
            mismatch=difference > Decimal(str(tolerance)),
        )


class ExtractionResult(BaseModel):
    """Structured data extracted from one document.

    Attributes:
        source_id: Identifier of the source document
        document_type: Detected document type, if any
        header: Header field name to value
        field_confidence: Confidence per header field, when known
        line_items: Ordered line items
        totals: Total kind (subtotal, tax, shipping, total) to amount
        raw_text: Text the extraction ran over
        strategy: Name of the strategy whose line items were kept
        reconciliation: Line-item sum versus stated subtotal
        processing_time: Extraction wall-clock time in seconds
        cleanup_provider: Cleanup provider applied to this result, if any
    """

    source_id: str
    document_type: DocumentType | None = None
    header: dict[str, str] = Field(default_factory=dict)
    field_confidence: dict[str, float] = Field(default_factory=dict)
    line_items: list[LineItem] = Field(default_factory=list)
    totals: dict[str, Decimal] = Field(default_factory=dict)
    raw_text: str = ""
    strategy: str | None = None
    reconciliation: Reconciliation
    processing_time: float = 0.0
    cleanup_provider: str | None = None
