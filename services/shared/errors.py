"""Error types raised across the extraction service.

Exception Hierarchy:
    DocumentExtractionError (base)
    ├── SourceUnavailableError
    ├── TextSourceError
    ├── CleanupError
    └── UnknownStrategyError

Heuristic misses inside the line-item engine (no table region, malformed
numbers, incomplete items) are recovered locally and never raised.
"""

from typing import Any


class DocumentExtractionError(Exception):
    """Base exception for all extraction service errors.

    Attributes:
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class SourceUnavailableError(DocumentExtractionError):
    """Raised when there is no usable text to extract from."""

    def __init__(self, source_id: str | None = None) -> None:
        super().__init__("Text source produced no usable text", {"source_id": source_id})


class TextSourceError(DocumentExtractionError):
    """Raised when a text source fails to read a document."""

    def __init__(self, source: str, path: str, reason: str | None = None) -> None:
        super().__init__(
            f"Text extraction failed for: {path}",
            {"source": source, "path": path, "reason": reason},
        )


class CleanupError(DocumentExtractionError):
    """Raised when a cleanup provider fails or returns unusable output."""

    def __init__(self, provider: str, reason: str | None = None) -> None:
        super().__init__(
            f"Cleanup failed with provider: {provider}",
            {"provider": provider, "reason": reason},
        )


class UnknownStrategyError(DocumentExtractionError, ValueError):
    """Raised when an extraction strategy name is not registered."""

    def __init__(self, name: str, available: list[str]) -> None:
        super().__init__(
            f"Unknown extraction strategy: '{name}'. Available strategies: {', '.join(available)}",
            {"name": name, "available": available},
        )
