"""Text source interface and result model.

A text source turns a document file into plain text for the extraction
engine. Sources raise TextSourceError on failure instead of returning
partial results.
"""

from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field


class OCRResult(BaseModel):
    """Result of a text source call.

    Attributes:
        text: Extracted text content
        confidence: Average confidence score (0-1), if the source reports one
        metadata: Source-specific details (page count, language, ...)
    """

    text: str
    confidence: float | None = Field(default=None, ge=0, le=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


class TextSource(Protocol):
    """Protocol for text sources."""

    @property
    def source_name(self) -> str:
        """Source identifier for logging/metrics."""
        ...

    def extract_text(self, path: Path) -> OCRResult:
        """Extract text from a document file."""
        ...

    def is_available(self) -> bool:
        """Check if the text source can run in this environment."""
        ...
