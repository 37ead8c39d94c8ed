"""Shared configuration management for the extraction service.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_LINE_ITEM_FALLBACK_THRESHOLD=10
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="invoice-line-extraction",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # Text source configuration
    ocr_provider: Literal["auto", "tesseract", "pdf_text"] = Field(
        default="auto",
        description=(
            "Text source: tesseract (image OCR), pdf_text (PDF text layer), "
            "auto (pdf_text for .pdf files, tesseract otherwise)"
        ),
    )
    ocr_timeout_seconds: int = Field(
        default=60,
        ge=1,
        description="Timeout for a single text source call",
    )
    tesseract_language: str = Field(
        default="eng",
        description="Tesseract language pack",
    )

    # Line-item engine configuration
    line_item_fallback_threshold: int = Field(
        default=5,
        ge=0,
        description=(
            "Run the whole-text pattern strategy when the sequential strategy "
            "finds fewer items than this"
        ),
    )
    reconciliation_tolerance: float = Field(
        default=0.01,
        ge=0,
        description="Allowed absolute difference between line-item sum and stated subtotal",
    )

    # Cleanup provider configuration
    cleanup_enabled: bool = Field(
        default=False,
        description="Run the cleanup stage after extraction",
    )
    cleanup_provider: Literal["rules", "openai", "ollama"] = Field(
        default="rules",
        description="Cleanup provider: rules (local), openai (cloud API), ollama (self-hosted LLM)",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model used by the openai cleanup provider",
    )
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server base URL",
    )
    ollama_model: str = Field(
        default="qwen2.5:7b",
        description="Ollama model used by the ollama cleanup provider",
    )

    # Storage configuration (S3-compatible object storage)
    storage_enabled: bool = Field(
        default=False,
        description="Store extraction artifacts in S3-compatible storage (MinIO)",
    )
    storage_endpoint: str = Field(
        default="localhost:9000",
        description="S3-compatible storage endpoint (host:port)",
    )
    storage_access_key: str = Field(
        default="",
        description="Storage access key (use env var APP_STORAGE_ACCESS_KEY)",
    )
    storage_secret_key: str = Field(
        default="",
        description="Storage secret key (use env var APP_STORAGE_SECRET_KEY)",
    )
    storage_bucket: str = Field(
        default="extractions",
        description="Default bucket name for extraction artifacts",
    )
    storage_secure: bool = Field(
        default=False,
        description="Use HTTPS for storage connections",
    )

    # Queue configuration (arq / Redis)
    queue_enabled: bool = Field(
        default=False,
        description="Enable batch processing through the background queue",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for the job queue",
    )
    queue_max_jobs: int = Field(
        default=10,
        ge=1,
        description="Maximum concurrent jobs per worker",
    )
    queue_job_timeout: int = Field(
        default=300,
        ge=1,
        description="Job timeout in seconds",
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
