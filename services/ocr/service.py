"""Image text source using Tesseract.

Based on pytesseract documentation:
https://github.com/madmaze/pytesseract
"""

import logging
import os
from pathlib import Path
from typing import Any

import pytesseract
from PIL import Image, UnidentifiedImageError

from services.ocr.base import OCRResult
from services.shared.config import Settings
from services.shared.errors import TextSourceError

logger = logging.getLogger(__name__)


class TesseractTextSource:
    """Text source running Tesseract OCR over image files.

    Each call is bounded by ``settings.ocr_timeout_seconds``; Tesseract is
    terminated when it runs longer.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize Tesseract text source.

        Args:
            settings: Application settings
        """
        self.settings = settings
        self._configure_tesseract()

    @property
    def source_name(self) -> str:
        return "tesseract"

    def _configure_tesseract(self) -> None:
        """Configure Tesseract command path from environment.

        Allows overriding default Tesseract path via TESSERACT_CMD environment variable.
        Common paths:
        - Linux: /usr/bin/tesseract
        - macOS: /opt/homebrew/bin/tesseract or /usr/local/bin/tesseract
        - Windows: C:\\Program Files\\Tesseract-OCR\\tesseract.exe
        """
        tesseract_cmd = os.getenv("TESSERACT_CMD")
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def is_available(self) -> bool:
        """Check if the Tesseract binary can be found.

        Returns:
            True if Tesseract reports a version
        """
        try:
            pytesseract.get_tesseract_version()
            return True
        except pytesseract.TesseractNotFoundError:
            return False

    def extract_text(self, path: Path) -> OCRResult:
        """Extract text from image file.

        Args:
            path: Path to image file

        Returns:
            OCRResult with text and average word confidence

        Raises:
            TextSourceError: If the file is missing, unreadable, or OCR fails
                or times out
        """
        if not path.exists():
            raise TextSourceError(self.source_name, str(path), "file not found")

        timeout = self.settings.ocr_timeout_seconds
        lang = self.settings.tesseract_language

        try:
            with Image.open(path) as image:
                data = pytesseract.image_to_data(
                    image, lang=lang, timeout=timeout, output_type=pytesseract.Output.DICT
                )
        except UnidentifiedImageError as e:
            raise TextSourceError(self.source_name, str(path), f"unreadable image: {e}") from e
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            # pytesseract signals a timeout with RuntimeError
            logger.error(f"Tesseract failed for {path}: {e}")
            raise TextSourceError(self.source_name, str(path), str(e)) from e

        text = words_to_text(data)
        confidence = average_confidence(data.get("conf", []))
        logger.info(f"Tesseract extracted {len(text)} characters from {path.name}")
        return OCRResult(
            text=text,
            confidence=confidence,
            metadata={"source": self.source_name, "language": lang},
        )


def average_confidence(scores: list[object]) -> float | None:
    """Average Tesseract word confidences (0-100) into a 0-1 score.

    Non-word boxes carry ``-1`` and are ignored.

    Returns:
        Average confidence, or None when no word was recognised
    """
    values: list[float] = []
    for score in scores:
        try:
            value = float(str(score))
        except ValueError:
            continue
        if value >= 0:
            values.append(value)

    if not values:
        return None
    return min(sum(values) / len(values) / 100, 1.0)


def words_to_text(data: dict[str, list[Any]]) -> str:
    """Rebuild page text from Tesseract word boxes.

    Words on the same line are joined with spaces. Lines are separated by
    newlines and blocks by a blank line, as ``image_to_string`` does.

    Args:
        data: ``image_to_data`` output in ``Output.DICT`` form

    Returns:
        Recognised text, empty when no word was found
    """
    blocks: dict[tuple[int, int], dict[tuple[int, int], list[str]]] = {}
    for index, word in enumerate(data.get("text", [])):
        word = str(word).strip()
        if not word:
            continue
        block = (data["page_num"][index], data["block_num"][index])
        line = (data["par_num"][index], data["line_num"][index])
        blocks.setdefault(block, {}).setdefault(line, []).append(word)

    return "\n\n".join(
        "\n".join(" ".join(words) for words in lines.values()) for lines in blocks.values()
    )
