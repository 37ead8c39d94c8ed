"""PDF text-layer source using pdfplumber.

Reads the embedded text layer of digital PDFs; scanned PDFs without a text
layer yield empty text and should go through an image text source instead.
"""

import logging
from pathlib import Path

import pdfplumber
from pdfminer.pdfparser import PDFSyntaxError
from pdfplumber.utils.exceptions import PdfminerException

from services.ocr.base import OCRResult
from services.shared.config import Settings
from services.shared.errors import TextSourceError

logger = logging.getLogger(__name__)


class PdfTextSource:
    """Text source reading the text layer of PDF files page by page."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def source_name(self) -> str:
        return "pdf_text"

    def is_available(self) -> bool:
        return True

    def extract_text(self, path: Path) -> OCRResult:
        """Extract the text layer of every page, joined by newlines.

        Layout mode keeps table columns on one line, which the line-item
        engine depends on.

        Raises:
            TextSourceError: If the file is missing or is not a readable PDF
        """
        if not path.exists():
            raise TextSourceError(self.source_name, str(path), "file not found")

        try:
            with pdfplumber.open(path) as pdf:
                pages = [page.extract_text(layout=True) or "" for page in pdf.pages]
        except (PDFSyntaxError, PdfminerException) as e:
            raise TextSourceError(self.source_name, str(path), f"unreadable PDF: {e}") from e

        text = "\n".join(pages)
        if not text.strip():
            logger.warning(f"PDF {path.name} has no text layer (scanned document?)")

        return OCRResult(
            text=text,
            confidence=None,
            metadata={"source": self.source_name, "page_count": len(pages)},
        )
