"""Header field, totals and document type extraction.

Each field has one regular expression; the first match wins and a field
that does not match is simply omitted from the result.
"""

import logging
import re
from decimal import Decimal, InvalidOperation

from services.extraction.normalizer import normalize_newlines
from services.extraction.patterns import (
    DOCUMENT_DATE,
    DUE_DATE,
    INVOICE_NUMBER,
    PO_NUMBER,
    SALESPERSON,
    SHIPPING,
    SUBTOTAL,
    TAX,
    TERMS,
    TOTAL_DUE,
)
from services.extraction.schema import DocumentType

logger = logging.getLogger(__name__)

# Phrases that hint at each document type, matched case-insensitively.
# Declaration order breaks ties.
DOCUMENT_TYPE_INDICATORS: dict[DocumentType, tuple[str, ...]] = {
    DocumentType.INVOICE: (
        "invoice",
        "bill to",
        "remit to",
        "due date",
        "invoice number",
        "subtotal",
    ),
    DocumentType.RECEIPT: ("receipt", "transaction", "cashier", "change due", "thank you for"),
    DocumentType.CONTRACT: (
        "agreement",
        "contract",
        "parties",
        "whereas",
        "terms and conditions",
    ),
    DocumentType.PURCHASE_ORDER: ("purchase order", "po number", "ship to", "vendor", "quantity"),
    DocumentType.SHIPPING: ("tracking", "shipment", "carrier", "delivery", "package"),
}


class HeaderFieldExtractor:
    """Extracts document header fields such as invoice and PO numbers."""

    FIELDS: dict[str, re.Pattern[str]] = {
        "invoice_number": INVOICE_NUMBER,
        "po_number": PO_NUMBER,
        "date": DOCUMENT_DATE,
        "salesperson": SALESPERSON,
        "due_date": DUE_DATE,
        "terms": TERMS,
    }

    def extract(self, text: str) -> dict[str, str]:
        """Return the header fields found in ``text``.

        Args:
            text: Full document text

        Returns:
            Field name to trimmed value; fields that were not found are absent
        """
        text = normalize_newlines(text)
        header: dict[str, str] = {}

        for name, pattern in self.FIELDS.items():
            match = pattern.search(text)
            if match is None:
                continue
            value = match.group(1).strip()
            if value:
                header[name] = value

        return header


def _parse_total(token: str) -> Decimal | None:
    try:
        value = Decimal(token.replace(",", ""))
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


class TotalsExtractor:
    """Extracts the financial totals printed below the item table."""

    FIELDS: dict[str, re.Pattern[str]] = {
        "subtotal": SUBTOTAL,
        "tax": TAX,
        "shipping": SHIPPING,
        "total": TOTAL_DUE,
    }

    def extract(self, text: str) -> dict[str, Decimal]:
        """Return the totals found in ``text``.

        Amounts may carry a ``$`` sign and ``,`` thousands separators. An
        amount that does not parse omits its field.
        """
        text = normalize_newlines(text)
        totals: dict[str, Decimal] = {}

        for name, pattern in self.FIELDS.items():
            match = pattern.search(text)
            if match is None:
                continue
            amount = _parse_total(match.group(1))
            if amount is None:
                logger.debug(f"Unparseable {name} amount {match.group(1)!r}, omitting")
                continue
            totals[name] = amount

        return totals


def detect_document_type(text: str) -> DocumentType | None:
    """Guess the document type from indicator phrases.

    Each type scores one point per indicator present in the text. The
    highest score wins; ties go to the type declared first.

    Returns:
        Detected type, or None when no indicator is present
    """
    lowered = text.lower()
    scores = {
        doc_type: sum(1 for indicator in indicators if indicator in lowered)
        for doc_type, indicators in DOCUMENT_TYPE_INDICATORS.items()
    }

    best = max(scores, key=scores.__getitem__)
    if scores[best] == 0:
        return None
    return best
