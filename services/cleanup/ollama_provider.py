"""Cleanup through a self-hosted Ollama server.

Sends the same system prompt and JSON payload as the OpenAI provider to
Ollama's chat endpoint, so no document text leaves the premises.

See: https://github.com/ollama/ollama/blob/main/docs/api.md#generate-a-chat-completion
"""

import json
import logging
import re
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from services.cleanup.base import CleanupProvider, apply_cleanup_payload, cleanup_payload
from services.cleanup.openai_provider import CLEANUP_SYSTEM_PROMPT
from services.extraction.schema import ExtractionResult
from services.shared.config import Settings
from services.shared.errors import CleanupError

logger = logging.getLogger(__name__)

OLLAMA_TIMEOUT_SECONDS = 120.0

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_BARE_OBJECT = re.compile(r"\{[\s\S]*\}")


def build_messages(payload: dict[str, Any]) -> list[dict[str, str]]:
    """Chat messages asking the model to clean ``payload``."""
    system = CLEANUP_SYSTEM_PROMPT.format(document_type=payload.get("document_type") or "general")
    return [
        {"role": "system", "content": f"{system}\n\nReturn ONLY JSON, no explanation."},
        {"role": "user", "content": json.dumps(payload)},
    ]


def parse_json_reply(reply: str) -> Any:
    """Parse the JSON a model replied with.

    Accepts a fenced code block, a bare object surrounded by prose, or plain
    JSON, in that order.

    Raises:
        json.JSONDecodeError: If no JSON can be parsed
    """
    fenced = _FENCED_JSON.search(reply)
    if fenced:
        return json.loads(fenced.group(1).strip())

    bare = _BARE_OBJECT.search(reply)
    if bare:
        return json.loads(bare.group(0))

    return json.loads(reply.strip())


class OllamaCleanupProvider(CleanupProvider):
    """Cleanup provider backed by a local Ollama model (Qwen2.5, Llama3, Mistral, ...)."""

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._model = settings.ollama_model
        self._client = httpx.Client(timeout=OLLAMA_TIMEOUT_SECONDS)

    @property
    def provider_name(self) -> str:
        return "ollama"

    def is_available(self) -> bool:
        """Check that the server answers and has the configured model pulled.

        Tags are ignored, so ``qwen2.5:7b`` matches a pulled ``qwen2.5:14b``.
        """
        try:
            response = self._client.get(f"{self._base_url}/api/tags")
        except httpx.HTTPError:
            return False
        if response.status_code != 200:
            return False

        pulled = {m.get("name", "").split(":")[0] for m in response.json().get("models", [])}
        return self._model.split(":")[0] in pulled

    def clean(self, result: ExtractionResult) -> ExtractionResult:
        """Clean an extraction result with the configured Ollama model.

        Raises:
            CleanupError: If the server is unreachable after retries or the
                reply holds no JSON object
        """
        messages = build_messages(cleanup_payload(result))
        try:
            reply = self._call_ollama_with_retry(messages)
        except httpx.HTTPError as e:
            logger.error(f"Ollama cleanup failed for {result.source_id}: {e}")
            raise CleanupError(self.provider_name, str(e)) from e

        try:
            cleaned = parse_json_reply(reply)
        except json.JSONDecodeError as e:
            logger.warning(f"Ollama replied without JSON for {result.source_id}: {e}")
            raise CleanupError(self.provider_name, f"invalid JSON: {e}") from e

        logger.info(f"Ollama cleanup applied to {result.source_id} with {self._model}")
        return apply_cleanup_payload(
            result,
            cleaned,
            self.provider_name,
            tolerance=self.settings.reconciliation_tolerance,
        )

    @retry(
        retry=retry_if_exception_type(httpx.HTTPError),
        wait=wait_exponential_jitter(initial=1, max=30),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def _call_ollama_with_retry(self, messages: list[dict[str, str]]) -> str:
        """POST to ``/api/chat``, retrying transport and HTTP status errors.

        Returns:
            Content of the assistant message
        """
        response = self._client.post(
            f"{self._base_url}/api/chat",
            json={
                "model": self._model,
                "messages": messages,
                "stream": False,
                "format": "json",
                "options": {"temperature": 0.3, "num_predict": 2048},
            },
        )
        response.raise_for_status()
        content: str = response.json().get("message", {}).get("content", "")
        return content
