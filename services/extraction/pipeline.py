"""End-to-end document pipeline: file -> text -> extraction -> cleanup.

Text acquisition and cleanup are collaborators of the extraction service;
the pipeline only sequences them. Cleanup is best effort: a failing cleanup
provider never costs the caller the extraction result.
"""

import logging
from pathlib import Path

from services.cleanup.base import CleanupProvider
from services.cleanup.factory import create_cleanup_provider
from services.extraction.schema import ExtractionResult
from services.extraction.service import DocumentExtractionService
from services.ocr.base import OCRResult, TextSource
from services.ocr.factory import create_text_source
from services.shared.config import Settings
from services.shared.errors import CleanupError, SourceUnavailableError

logger = logging.getLogger(__name__)


class DocumentPipeline:
    """Runs a document file through text source, extraction and cleanup."""

    def __init__(
        self,
        settings: Settings,
        text_source: TextSource | None = None,
        cleanup: CleanupProvider | None = None,
        extraction_service: DocumentExtractionService | None = None,
    ) -> None:
        """Initialize pipeline.

        Args:
            settings: Application settings
            text_source: Fixed text source; resolved per file from settings
                when omitted
            cleanup: Cleanup provider; created from settings on first use
                when omitted
            extraction_service: Extraction service to use
        """
        self.settings = settings
        self._text_source = text_source
        self._cleanup = cleanup
        self.extraction_service = extraction_service or DocumentExtractionService(settings)

    def read_text(self, path: Path) -> OCRResult:
        """Read a document's text with the configured text source.

        Raises:
            TextSourceError: If the text source fails
        """
        source = self._text_source or create_text_source(self.settings, path)
        return source.extract_text(path)

    def process(
        self,
        path: Path,
        source_id: str | None = None,
        use_cleanup: bool | None = None,
    ) -> ExtractionResult:
        """Process one document file.

        Args:
            path: Document file (image or PDF)
            source_id: Identifier for the result (defaults to the file name)
            use_cleanup: Run cleanup; defaults to ``settings.cleanup_enabled``

        Returns:
            Extraction result, cleaned when cleanup ran successfully

        Raises:
            TextSourceError: If the text source fails
            SourceUnavailableError: If the document yields no text
        """
        source_id = source_id or path.name
        ocr_result = self.read_text(path)

        if not ocr_result.text.strip():
            raise SourceUnavailableError(source_id)

        result = self.extraction_service.extract_document(ocr_result.text, source_id)

        if use_cleanup is None:
            use_cleanup = self.settings.cleanup_enabled
        if use_cleanup:
            result = self.clean(result)

        return result

    def clean(self, result: ExtractionResult) -> ExtractionResult:
        """Apply cleanup, returning the uncleaned result if cleanup fails."""
        if self._cleanup is None:
            self._cleanup = create_cleanup_provider(self.settings)

        try:
            return self._cleanup.clean(result)
        except CleanupError as e:
            logger.warning(f"Cleanup skipped for {result.source_id}: {e}")
            return result
