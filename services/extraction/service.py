"""Public extraction entry points.

Wires the line-item engine, the header/totals extractors and document type
detection into a single service. Every call is independent; the service
holds configuration only, so one instance can serve concurrent requests.

Usage:
    from services.extraction.service import DocumentExtractionService

    service = DocumentExtractionService(get_settings())
    result = service.extract_document(ocr_text, source_id="invoice-001.png")
"""

import logging
import time
from decimal import Decimal

from services.extraction.engine import LineItemExtractionEngine
from services.extraction.factory import create_line_item_engine
from services.extraction.fields import HeaderFieldExtractor, TotalsExtractor, detect_document_type
from services.extraction.schema import ExtractionResult, LineItem, Reconciliation
from services.shared.config import Settings, get_settings
from services.shared.errors import SourceUnavailableError

logger = logging.getLogger(__name__)


def _require_text(text: str | None, source_id: str | None = None) -> str:
    if text is None or not text.strip():
        raise SourceUnavailableError(source_id)
    return text


class DocumentExtractionService:
    """Extracts header fields, line items and totals from document text."""

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize extraction service.

        Args:
            settings: Application settings (defaults to environment settings)
        """
        self.settings = settings or get_settings()
        self.engine: LineItemExtractionEngine = create_line_item_engine(self.settings)
        self.header_extractor = HeaderFieldExtractor()
        self.totals_extractor = TotalsExtractor()

    def extract_line_items(self, text: str) -> list[LineItem]:
        """Extract ordered line items.

        Raises:
            SourceUnavailableError: If text is empty or whitespace-only
        """
        return self.engine.extract(_require_text(text))

    def extract_header_fields(self, text: str) -> dict[str, str]:
        """Extract header fields (invoice number, PO number, date, ...).

        Raises:
            SourceUnavailableError: If text is empty or whitespace-only
        """
        return self.header_extractor.extract(_require_text(text))

    def extract_totals(self, text: str) -> dict[str, Decimal]:
        """Extract subtotal, tax, shipping and total.

        Raises:
            SourceUnavailableError: If text is empty or whitespace-only
        """
        return self.totals_extractor.extract(_require_text(text))

    def extract_document(self, text: str, source_id: str) -> ExtractionResult:
        """Run every extractor over one document and reconcile the results.

        Args:
            text: Full document text from a text source
            source_id: Identifier of the source document

        Returns:
            ExtractionResult with header, line items, totals and reconciliation

        Raises:
            SourceUnavailableError: If text is empty or whitespace-only
        """
        text = _require_text(text, source_id)
        start_time = time.time()

        outcome = self.engine.extract_with_strategy(text)
        header = self.header_extractor.extract(text)
        totals = self.totals_extractor.extract(text)
        reconciliation = Reconciliation.from_items(
            outcome.items,
            totals,
            tolerance=self.settings.reconciliation_tolerance,
        )

        if reconciliation.mismatch:
            logger.warning(
                f"Line items do not reconcile for {source_id}: "
                f"sum {reconciliation.line_items_total} vs "
                f"subtotal {reconciliation.stated_subtotal}"
            )

        result = ExtractionResult(
            source_id=source_id,
            document_type=detect_document_type(text),
            header=header,
            line_items=outcome.items,
            totals=totals,
            raw_text=text,
            strategy=outcome.strategy.value,
            reconciliation=reconciliation,
            processing_time=time.time() - start_time,
        )

        logger.info(
            f"Extracted {len(result.line_items)} line items and {len(header)} header fields "
            f"from {source_id} in {result.processing_time:.3f}s"
        )
        return result


def extract_line_items(text: str) -> list[LineItem]:
    """Extract line items with default settings."""
    return DocumentExtractionService().extract_line_items(text)


def extract_header_fields(text: str) -> dict[str, str]:
    """Extract header fields with default settings."""
    return DocumentExtractionService().extract_header_fields(text)


def extract_totals(text: str) -> dict[str, Decimal]:
    """Extract totals with default settings."""
    return DocumentExtractionService().extract_totals(text)


def extract_document(text: str, source_id: str) -> ExtractionResult:
    """Extract a full document with default settings."""
    return DocumentExtractionService().extract_document(text, source_id)
