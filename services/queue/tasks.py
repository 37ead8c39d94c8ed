"""Background extraction jobs for batch uploads.

Uses arq (async Redis queue). A job carries one uploaded document; the
worker runs it through the document pipeline and keeps the job status in
Redis under ``job:<job_id>`` for a day. Jobs share no extraction state.

Based on arq documentation:
https://arq-docs.helpmanual.io/
"""

import asyncio
import logging
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from arq.connections import RedisSettings
from pydantic import BaseModel

from services.extraction.pipeline import DocumentPipeline
from services.extraction.schema import ExtractionResult
from services.shared.config import Settings, get_settings
from services.shared.errors import DocumentExtractionError
from services.storage.service import StorageService

logger = logging.getLogger(__name__)

JOB_STATUS_TTL_SECONDS = 86400  # 24h

JobStatus = Literal["pending", "processing", "completed", "failed"]


def _now() -> str:
    return datetime.now(UTC).isoformat()


class JobResult(BaseModel):
    """Status record of one queued document.

    Attributes:
        job_id: Unique job identifier
        status: pending, processing, completed or failed
        document_id: Document being extracted
        extraction: JSON form of the ExtractionResult (completed jobs)
        line_item_count: Number of extracted line items (completed jobs)
        strategy: Strategy whose line items were kept (completed jobs)
        storage_path: Artifact prefix, set only when every artifact was stored
        error: Failure reason (failed jobs)
        created_at: ISO timestamp of job creation
        completed_at: ISO timestamp of the final status
    """

    job_id: str
    status: JobStatus
    document_id: str
    extraction: dict[str, Any] | None = None
    line_item_count: int | None = None
    strategy: str | None = None
    storage_path: str | None = None
    error: str | None = None
    created_at: str
    completed_at: str | None = None

    def complete(self, extraction: ExtractionResult, storage_path: str | None) -> None:
        self.status = "completed"
        self.extraction = extraction.model_dump(mode="json")
        self.line_item_count = len(extraction.line_items)
        self.strategy = extraction.strategy
        self.storage_path = storage_path
        self.completed_at = _now()

    def fail(self, error: Exception) -> None:
        self.status = "failed"
        self.error = str(error)
        self.completed_at = _now()


async def _save_status(redis: Any, result: JobResult) -> None:
    await redis.set(f"job:{result.job_id}", result.model_dump_json(), ex=JOB_STATUS_TTL_SECONDS)


async def process_document(
    ctx: dict[str, Any],
    job_id: str,
    document_id: str,
    file_content: bytes,
    filename: str,
    content_type: str,
    use_cleanup: bool = False,
) -> dict[str, Any]:
    """Extract one uploaded document.

    The status is written as ``processing`` before the pipeline runs and
    again with the outcome afterwards. The pipeline runs in a worker thread
    so OCR does not block other jobs on the event loop. Pipeline errors fail
    the job; they are never re-raised to arq, so a bad document is not
    retried. Artifact storage is best effort and cannot fail a job.

    Args:
        ctx: arq context with the Redis connection and, after startup, the
            shared settings, pipeline and storage service
        job_id: Unique job identifier
        document_id: Document ID, also the artifact prefix
        file_content: Raw file bytes
        filename: Original filename; its suffix picks the text source
        content_type: MIME type of the upload
        use_cleanup: Whether to run the cleanup provider

    Returns:
        JobResult as dict
    """
    logger.info(f"Processing document job {job_id} for document {document_id}")

    settings: Settings = ctx.get("settings") or get_settings()
    pipeline: DocumentPipeline = ctx.get("pipeline") or DocumentPipeline(settings)
    storage_service: StorageService = ctx.get("storage_service") or StorageService(settings)
    redis = ctx["redis"]

    result = JobResult(
        job_id=job_id,
        status="processing",
        document_id=document_id,
        created_at=_now(),
    )
    await _save_status(redis, result)

    suffix = Path(filename).suffix if filename else ".bin"
    try:
        with tempfile.TemporaryDirectory() as tmp_dir:
            tmp_path = Path(tmp_dir) / f"{document_id}{suffix}"
            tmp_path.write_bytes(file_content)
            extraction = await asyncio.to_thread(
                pipeline.process, tmp_path, source_id=filename, use_cleanup=use_cleanup
            )
    except DocumentExtractionError as e:
        logger.warning(f"Job {job_id} failed: {e}")
        result.fail(e)
    except Exception as e:
        logger.exception(f"Job {job_id} failed with unexpected error: {e}")
        result.fail(e)
    else:
        storage_path = None
        if storage_service.is_available():
            manifest = storage_service.store_document(
                document_id, extraction, file_content, filename, content_type
            )
            storage_path = manifest.location if manifest.complete else None
        result.complete(extraction, storage_path)

    await _save_status(redis, result)
    logger.info(f"Job {job_id} finished with status: {result.status}")

    return result.model_dump()


async def startup(ctx: dict[str, Any]) -> None:
    """Create the services every job on this worker reuses."""
    settings = get_settings()
    ctx["settings"] = settings
    ctx["pipeline"] = DocumentPipeline(settings)
    ctx["storage_service"] = StorageService(settings)
    logger.info(f"Worker services initialized ({settings.service_name} {settings.service_version})")


async def shutdown(ctx: dict[str, Any]) -> None:
    logger.info("Worker shutting down...")


class WorkerSettings:
    """arq worker settings.

    ``redis_settings``, ``max_jobs`` and ``job_timeout`` are overwritten from
    application settings by ``services.queue.worker`` before the worker
    starts.
    """

    functions = [process_document]
    on_startup = startup
    on_shutdown = shutdown

    redis_settings: RedisSettings | None = None
    max_jobs = 10
    job_timeout = 300

    @classmethod
    def get_redis_settings(cls) -> RedisSettings:
        """Get Redis settings from configuration."""
        return RedisSettings.from_dsn(get_settings().redis_url)

    @classmethod
    def configure(cls, settings: Settings) -> None:
        """Apply queue settings to the worker class."""
        cls.redis_settings = RedisSettings.from_dsn(settings.redis_url)
        cls.max_jobs = settings.queue_max_jobs
        cls.job_timeout = settings.queue_job_timeout
