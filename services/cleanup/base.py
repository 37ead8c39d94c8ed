"""Abstract base class for cleanup providers.

A cleanup provider post-processes an ExtractionResult: it fixes OCR typos,
normalises formats and may attach field confidences. Providers never see
the line-item engine; they only refine its output.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError

from services.extraction.schema import (
    ExtractionResult,
    LineItem,
    Reconciliation,
    coerce_field_value,
    field_confidence,
    field_text,
)
from services.shared.config import Settings
from services.shared.errors import CleanupError

logger = logging.getLogger(__name__)


class CleanupProvider(ABC):
    """Abstract base class for extraction cleanup providers.

    Example implementations:
    - RulesCleanupProvider: local typo and format rules
    - OpenAICleanupProvider: OpenAI API (cloud-based)
    - OllamaCleanupProvider: self-hosted LLM
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize provider with settings.

        Args:
            settings: Application settings
        """
        self.settings = settings

    @abstractmethod
    def clean(self, result: ExtractionResult) -> ExtractionResult:
        """Return a cleaned copy of an extraction result.

        Args:
            result: Result produced by the extraction service

        Returns:
            Cleaned result with ``cleanup_provider`` set

        Raises:
            CleanupError: If the provider fails or returns unusable output
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is available/configured.

        Returns:
            True if provider can be used, False otherwise
        """
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name for logging/metrics.

        Returns:
            Provider identifier (e.g., 'rules', 'openai')
        """
        pass


def _parse_total(value: Any) -> Decimal | None:
    try:
        amount = Decimal(str(value).replace(",", "").lstrip("$"))
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


def _valid_items(raw_items: list[Any]) -> list[LineItem]:
    items: list[LineItem] = []
    for raw in raw_items:
        try:
            item = LineItem.model_validate(raw)
        except ValidationError as e:
            logger.debug(f"Dropping invalid cleaned line item {raw!r}: {e.error_count()} errors")
            continue
        if item.is_complete:
            items.append(item)
    return items


def apply_cleanup_payload(
    result: ExtractionResult,
    payload: Any,
    provider_name: str,
    tolerance: float = 0.01,
) -> ExtractionResult:
    """Merge a provider's JSON payload into an extraction result.

    The payload may carry ``header`` (bare values or ``{"value",
    "confidence"}`` mappings), ``line_items`` and ``totals``. Anything that
    does not validate is ignored and the original value is kept. Cleaned
    line items replace the originals only when at least one of them is
    complete.

    Raises:
        CleanupError: If the payload is not a JSON object or a header field
            fails validation
    """
    if not isinstance(payload, dict):
        raise CleanupError(provider_name, f"expected a JSON object, got {type(payload).__name__}")

    header = dict(result.header)
    confidences = dict(result.field_confidence)
    raw_header = payload.get("header")
    for name, raw in (raw_header.items() if isinstance(raw_header, dict) else ()):
        try:
            value = coerce_field_value(raw)
        except ValidationError as e:
            raise CleanupError(
                provider_name, f"invalid header field {name!r}: {e.error_count()} errors"
            ) from e
        if value is None:
            continue
        header[name] = field_text(value)
        score = field_confidence(value)
        if score is not None:
            confidences[name] = score

    line_items = result.line_items
    raw_items = payload.get("line_items")
    if isinstance(raw_items, list):
        cleaned_items = _valid_items(raw_items)
        if cleaned_items:
            line_items = cleaned_items

    totals = dict(result.totals)
    raw_totals = payload.get("totals")
    for name, raw in (raw_totals.items() if isinstance(raw_totals, dict) else ()):
        amount = _parse_total(raw) if raw is not None else None
        if amount is not None:
            totals[name] = amount

    return result.model_copy(
        update={
            "header": header,
            "field_confidence": confidences,
            "line_items": line_items,
            "totals": totals,
            "reconciliation": Reconciliation.from_items(line_items, totals, tolerance),
            "cleanup_provider": provider_name,
        }
    )


def cleanup_payload(result: ExtractionResult) -> dict[str, Any]:
    """Serialise the parts of a result a cleanup LLM is allowed to change."""
    data = result.model_dump(mode="json", include={"header", "line_items", "totals"})
    data["document_type"] = result.document_type.value if result.document_type else "general"
    return data
