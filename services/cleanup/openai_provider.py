"""OpenAI-based cleanup provider.

Sends the extracted header, line items and totals to the OpenAI API in JSON
mode and merges the corrected object back into the result. Includes retry
logic with exponential backoff for transient API errors.

This provider uses cloud-based OpenAI API. For self-hosted inference, use
OllamaCleanupProvider instead.
"""

import json
import logging
import os
from typing import Any

from openai import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    InternalServerError,
    OpenAI,
    RateLimitError,
)
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from services.cleanup.base import CleanupProvider, apply_cleanup_payload, cleanup_payload
from services.extraction.schema import ExtractionResult
from services.shared.config import Settings
from services.shared.errors import CleanupError

logger = logging.getLogger(__name__)

CLEANUP_SYSTEM_PROMPT = """You are a document data extraction and cleanup assistant.
Clean the OCR-extracted data, fixing typos and formatting issues.
Document type: {document_type}

Return a JSON object with the same keys you were given:
- "header": field name -> {{"value": string, "confidence": number 0-1}}
- "line_items": list of {{"quantity", "description", "product_code", "unit_price", "total"}}
- "totals": field name -> number

Rules:
- Preserve every line item; never invent items or amounts
- Fix obvious OCR errors (rn -> m, 0 -> O inside words, l -> 1 inside numbers)
- Dates as YYYY-MM-DD
- Use null for anything you cannot read"""


class OpenAICleanupProvider(CleanupProvider):
    """OpenAI-based cleanup provider using JSON mode.

    Requires OPENAI_API_KEY environment variable.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize OpenAI cleanup provider.

        Args:
            settings: Application settings
        """
        super().__init__(settings)
        self._client: OpenAI | None = None

    @property
    def provider_name(self) -> str:
        """Get provider name for logging/metrics.

        Returns:
            Provider identifier 'openai'
        """
        return "openai"

    def is_available(self) -> bool:
        """Check if OpenAI API key is configured.

        Returns:
            True if OPENAI_API_KEY environment variable is set
        """
        return os.getenv("OPENAI_API_KEY") is not None

    def clean(self, result: ExtractionResult) -> ExtractionResult:
        """Clean an extraction result using OpenAI.

        Raises:
            CleanupError: If the API key is missing, the API call fails, or the
                response is not a JSON object
        """
        if not self.is_available():
            raise CleanupError(self.provider_name, "OPENAI_API_KEY environment variable not set")

        api_key = os.getenv("OPENAI_API_KEY")
        if self._client is None or self._client.api_key != api_key:
            self._client = OpenAI(api_key=api_key)

        payload = cleanup_payload(result)
        try:
            response = self._call_openai_with_retry(payload)
        except APIError as e:
            logger.error(f"OpenAI cleanup failed for {result.source_id}: {e}")
            raise CleanupError(self.provider_name, str(e)) from e

        content = response.choices[0].message.content
        if not content:
            raise CleanupError(self.provider_name, "empty response content")

        try:
            cleaned = json.loads(content)
        except json.JSONDecodeError as e:
            raise CleanupError(self.provider_name, f"invalid JSON: {e}") from e

        logger.info(f"OpenAI cleanup applied to {result.source_id}")
        return apply_cleanup_payload(
            result,
            cleaned,
            self.provider_name,
            tolerance=self.settings.reconciliation_tolerance,
        )

    @retry(
        retry=retry_if_exception_type(
            (APIConnectionError, APITimeoutError, RateLimitError, InternalServerError)
        ),
        wait=wait_exponential_jitter(initial=1, max=60),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def _call_openai_with_retry(self, payload: dict[str, Any]) -> Any:
        """Call OpenAI API with retry logic for transient errors.

        Retries up to 3 times with exponential backoff and jitter; client
        errors such as authentication failures are not retried.

        Args:
            payload: Extracted data to clean

        Returns:
            OpenAI API response
        """
        if self._client is None:
            raise RuntimeError("OpenAI client not initialized")

        return self._client.chat.completions.create(
            model=self.settings.openai_model,
            messages=[
                {
                    "role": "system",
                    "content": CLEANUP_SYSTEM_PROMPT.format(
                        document_type=payload.get("document_type", "general")
                    ),
                },
                {"role": "user", "content": json.dumps(payload)},
            ],
            response_format={"type": "json_object"},
            temperature=0.3,
        )
