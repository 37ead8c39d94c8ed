"""Factory for creating text sources based on configuration.

Implements Factory Pattern for text source selection. With
``ocr_provider="auto"`` the file extension decides: PDFs use their text
layer, everything else goes through Tesseract.
"""

import logging
from pathlib import Path

from services.ocr.base import TextSource
from services.ocr.pdf_service import PdfTextSource
from services.ocr.service import TesseractTextSource
from services.shared.config import Settings

logger = logging.getLogger(__name__)

PDF_SUFFIXES = {".pdf"}


def create_text_source(settings: Settings, path: Path | None = None) -> TextSource:
    """Factory function to create a text source.

    Args:
        settings: Application settings with ocr_provider field
        path: Document to be read; used to resolve ``auto``

    Returns:
        Configured text source instance

    Raises:
        ValueError: If configured provider is unknown
    """
    provider = settings.ocr_provider

    if provider == "auto":
        is_pdf = path is not None and path.suffix.lower() in PDF_SUFFIXES
        provider = "pdf_text" if is_pdf else "tesseract"

    if provider == "tesseract":
        source: TextSource = TesseractTextSource(settings)
    elif provider == "pdf_text":
        source = PdfTextSource(settings)
    else:
        available = ["auto", "tesseract", "pdf_text"]
        raise ValueError(f"Unknown OCR provider: '{provider}'. Available: {', '.join(available)}")

    logger.info(f"Created text source: {provider}")
    return source
