"""Cleanup provider selection.

``Settings.cleanup_provider`` is validated against the keys of
``CLEANUP_PROVIDERS``, so lookups here cannot miss for loaded settings.
"""

import logging

from services.cleanup.base import CleanupProvider
from services.cleanup.ollama_provider import OllamaCleanupProvider
from services.cleanup.openai_provider import OpenAICleanupProvider
from services.cleanup.rules_provider import RulesCleanupProvider
from services.shared.config import Settings

logger = logging.getLogger(__name__)

CLEANUP_PROVIDERS: dict[str, type[CleanupProvider]] = {
    "rules": RulesCleanupProvider,
    "openai": OpenAICleanupProvider,
    "ollama": OllamaCleanupProvider,
}


def create_cleanup_provider(settings: Settings) -> CleanupProvider:
    """Create the configured cleanup provider.

    An unavailable provider (no API key, Ollama down) is still returned;
    the pipeline reports its failures per document.
    """
    provider = CLEANUP_PROVIDERS[settings.cleanup_provider](settings)
    if not provider.is_available():
        logger.warning(f"Cleanup provider '{settings.cleanup_provider}' is not available")
    return provider
