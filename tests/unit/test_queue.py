"""Unit tests for async queue functionality.

Tests task definitions and queue configuration.
"""

import json
import threading
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from services.extraction.schema import ExtractionResult, LineItem, Reconciliation
from services.queue import worker
from services.queue.tasks import (
    JOB_STATUS_TTL_SECONDS,
    JobResult,
    WorkerSettings,
    process_document,
    startup,
)
from services.shared.config import Settings
from services.shared.errors import SourceUnavailableError, TextSourceError
from services.storage.service import ArtifactManifest, StoredArtifact


@pytest.fixture
def settings() -> Settings:
    """Create test settings with queue enabled."""
    return Settings(
        queue_enabled=True,
        redis_url="redis://localhost:6379/0",
        queue_max_jobs=5,
        queue_job_timeout=60,
        storage_bucket="extractions",
    )


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create mock Redis connection."""
    mock = AsyncMock()
    mock.set = AsyncMock()
    mock.get = AsyncMock()
    return mock


@pytest.fixture
def extraction_result() -> ExtractionResult:
    """Extraction result returned by the mocked pipeline."""
    items = [
        LineItem(quantity=2, description="Hex Bolts", unit_price=Decimal("1.50"), total=Decimal("3.00"))
    ]
    return ExtractionResult(
        source_id="invoice.jpg",
        header={"invoice_number": "INV-77"},
        line_items=items,
        strategy="sequential",
        reconciliation=Reconciliation.from_items(items, {}),
    )


@pytest.fixture
def mock_pipeline(extraction_result: ExtractionResult) -> MagicMock:
    """Create mock document pipeline."""
    pipeline = MagicMock()
    pipeline.process.return_value = extraction_result
    return pipeline


@pytest.fixture
def mock_storage_service() -> MagicMock:
    """Create mock storage service (unavailable by default)."""
    storage = MagicMock()
    storage.is_available.return_value = False
    return storage


@pytest.fixture
def ctx(
    settings: Settings,
    mock_redis: AsyncMock,
    mock_pipeline: MagicMock,
    mock_storage_service: MagicMock,
) -> dict[str, object]:
    """arq job context with mocked services."""
    return {
        "redis": mock_redis,
        "settings": settings,
        "pipeline": mock_pipeline,
        "storage_service": mock_storage_service,
    }


class TestJobResult:
    """Test JobResult model."""

    def test_job_result_pending(self) -> None:
        """Should create pending job result."""
        result = JobResult(
            job_id="job-123",
            status="pending",
            document_id="doc-456",
            created_at=datetime.now(UTC).isoformat(),
        )
        assert result.status == "pending"
        assert result.extraction is None
        assert result.line_item_count is None

    def test_job_result_failed(self) -> None:
        """Should create failed job result."""
        result = JobResult(
            job_id="job-123",
            status="failed",
            document_id="doc-456",
            error="Text extraction failed for: bad.jpg",
            created_at=datetime.now(UTC).isoformat(),
            completed_at=datetime.now(UTC).isoformat(),
        )
        assert result.status == "failed"
        assert "Text extraction failed" in str(result.error)


class TestProcessDocumentTask:
    """Test process_document task."""

    @pytest.mark.asyncio
    async def test_process_document_success(
        self,
        ctx: dict[str, object],
        mock_redis: AsyncMock,
        mock_pipeline: MagicMock,
    ) -> None:
        """Should process document successfully."""
        result = await process_document(
            ctx=ctx,
            job_id="job-123",
            document_id="doc-456",
            file_content=b"fake image data",
            filename="invoice.jpg",
            content_type="image/jpeg",
        )

        assert result["status"] == "completed"
        assert result["line_item_count"] == 1
        assert result["strategy"] == "sequential"
        assert result["extraction"]["header"]["invoice_number"] == "INV-77"
        assert result["storage_path"] is None
        assert result["completed_at"] is not None

        path, kwargs = mock_pipeline.process.call_args.args[0], mock_pipeline.process.call_args.kwargs
        assert isinstance(path, Path)
        assert path.suffix == ".jpg"
        assert kwargs == {"source_id": "invoice.jpg", "use_cleanup": False}

    @pytest.mark.asyncio
    async def test_status_saved_before_and_after(
        self,
        ctx: dict[str, object],
        mock_redis: AsyncMock,
    ) -> None:
        """Should record processing and final status in Redis."""
        await process_document(
            ctx=ctx,
            job_id="job-123",
            document_id="doc-456",
            file_content=b"fake image data",
            filename="invoice.jpg",
            content_type="image/jpeg",
        )

        assert mock_redis.set.await_count == 2
        first, last = mock_redis.set.await_args_list
        assert first.args[0] == "job:job-123"
        assert json.loads(first.args[1])["status"] == "processing"
        assert json.loads(last.args[1])["status"] == "completed"
        assert last.kwargs["ex"] == JOB_STATUS_TTL_SECONDS

    @pytest.mark.asyncio
    async def test_cleanup_flag_forwarded(
        self,
        ctx: dict[str, object],
        mock_pipeline: MagicMock,
    ) -> None:
        """Should pass the cleanup flag to the pipeline."""
        await process_document(
            ctx=ctx,
            job_id="job-123",
            document_id="doc-456",
            file_content=b"fake image data",
            filename="invoice.jpg",
            content_type="image/jpeg",
            use_cleanup=True,
        )

        assert mock_pipeline.process.call_args.kwargs["use_cleanup"] is True

    @pytest.mark.asyncio
    async def test_pipeline_runs_off_event_loop(
        self,
        ctx: dict[str, object],
        mock_pipeline: MagicMock,
        extraction_result: ExtractionResult,
    ) -> None:
        """Should run the blocking pipeline in a worker thread."""
        loop_thread = threading.get_ident()
        pipeline_threads: list[int] = []

        def process(path: Path, source_id: str, use_cleanup: bool) -> ExtractionResult:
            pipeline_threads.append(threading.get_ident())
            return extraction_result

        mock_pipeline.process.side_effect = process

        result = await process_document(
            ctx=ctx,
            job_id="job-123",
            document_id="doc-456",
            file_content=b"fake image data",
            filename="invoice.jpg",
            content_type="image/jpeg",
        )

        assert result["status"] == "completed"
        assert len(pipeline_threads) == 1
        assert pipeline_threads[0] != loop_thread

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            TextSourceError("tesseract", "bad.jpg", "unreadable image"),
            SourceUnavailableError("bad.jpg"),
        ],
    )
    async def test_process_document_extraction_failure(
        self,
        ctx: dict[str, object],
        mock_pipeline: MagicMock,
        error: Exception,
    ) -> None:
        """Should mark the job failed when the pipeline raises."""
        mock_pipeline.process.side_effect = error

        result = await process_document(
            ctx=ctx,
            job_id="job-123",
            document_id="doc-456",
            file_content=b"bad data",
            filename="bad.jpg",
            content_type="image/jpeg",
        )

        assert result["status"] == "failed"
        assert result["error"] == str(error)
        assert result["extraction"] is None

    @pytest.mark.asyncio
    async def test_process_document_unexpected_error(
        self,
        ctx: dict[str, object],
        mock_pipeline: MagicMock,
    ) -> None:
        """Should mark the job failed on unexpected errors."""
        mock_pipeline.process.side_effect = RuntimeError("boom")

        result = await process_document(
            ctx=ctx,
            job_id="job-123",
            document_id="doc-456",
            file_content=b"data",
            filename="scan.png",
            content_type="image/png",
        )

        assert result["status"] == "failed"
        assert result["error"] == "boom"

    @pytest.mark.asyncio
    async def test_process_document_with_storage(
        self,
        ctx: dict[str, object],
        mock_storage_service: MagicMock,
        extraction_result: ExtractionResult,
    ) -> None:
        """Should store the document and record its location when available."""
        mock_storage_service.is_available.return_value = True
        mock_storage_service.store_document.return_value = ArtifactManifest(
            document_id="doc-456",
            bucket="extractions",
            artifacts=[StoredArtifact(filename="result.json", object_name="doc-456/result.json", size=2)],
        )

        result = await process_document(
            ctx=ctx,
            job_id="job-123",
            document_id="doc-456",
            file_content=b"fake image data",
            filename="invoice.jpg",
            content_type="image/jpeg",
        )

        assert result["status"] == "completed"
        assert result["storage_path"] == "extractions/doc-456/"
        mock_storage_service.store_document.assert_called_once_with(
            "doc-456", extraction_result, b"fake image data", "invoice.jpg", "image/jpeg"
        )

    @pytest.mark.asyncio
    async def test_storage_failure_leaves_no_path(
        self,
        ctx: dict[str, object],
        mock_storage_service: MagicMock,
    ) -> None:
        """Should complete without a storage path when an upload fails."""
        mock_storage_service.is_available.return_value = True
        mock_storage_service.store_document.return_value = ArtifactManifest(
            document_id="doc-456",
            bucket="extractions",
            artifacts=[
                StoredArtifact(
                    filename="result.json",
                    object_name="doc-456/result.json",
                    size=2,
                    error="S3 error: SlowDown - Reduce your request rate",
                )
            ],
        )

        result = await process_document(
            ctx=ctx,
            job_id="job-123",
            document_id="doc-456",
            file_content=b"fake image data",
            filename="invoice.jpg",
            content_type="image/jpeg",
        )

        assert result["status"] == "completed"
        assert result["storage_path"] is None


class TestWorkerSettings:
    """Test WorkerSettings configuration."""

    def test_worker_functions_registered(self) -> None:
        """Should have process_document task registered."""
        assert process_document in WorkerSettings.functions

    def test_get_redis_settings(self, settings: Settings) -> None:
        """Should parse Redis URL correctly."""
        with patch("services.queue.tasks.get_settings", return_value=settings):
            redis_settings = WorkerSettings.get_redis_settings()
            assert redis_settings.host == "localhost"
            assert redis_settings.port == 6379
            assert redis_settings.database == 0

    def test_configure_from_settings(self, settings: Settings) -> None:
        """Should copy queue limits onto the worker class."""
        original = (WorkerSettings.redis_settings, WorkerSettings.max_jobs, WorkerSettings.job_timeout)
        try:
            WorkerSettings.configure(settings)

            assert WorkerSettings.max_jobs == 5
            assert WorkerSettings.job_timeout == 60
            assert WorkerSettings.redis_settings is not None
            assert WorkerSettings.redis_settings.host == "localhost"
        finally:
            WorkerSettings.redis_settings, WorkerSettings.max_jobs, WorkerSettings.job_timeout = original

    def test_worker_main_runs_configured_worker(self, settings: Settings) -> None:
        """Should configure and start the arq worker."""
        with (
            patch("services.queue.worker.get_settings", return_value=settings),
            patch("services.queue.worker.run_worker") as mock_run,
            patch.object(WorkerSettings, "configure") as mock_configure,
        ):
            worker.main()

        mock_configure.assert_called_once_with(settings)
        mock_run.assert_called_once_with(WorkerSettings)

    @pytest.mark.asyncio
    async def test_startup_initializes_services(self, settings: Settings) -> None:
        """Should create shared services once per worker."""
        ctx: dict[str, object] = {}

        with patch("services.queue.tasks.get_settings", return_value=settings):
            await startup(ctx)

        assert ctx["settings"] is settings
        assert {"pipeline", "storage_service"} <= set(ctx)


class TestQueueSettings:
    """Test queue configuration via Settings."""

    def test_default_queue_disabled(self) -> None:
        """Queue should be disabled by default."""
        settings = Settings(_env_file=None)
        assert settings.queue_enabled is False

    def test_queue_settings_from_env(self) -> None:
        """Should read queue settings from environment."""
        import os

        os.environ["APP_QUEUE_ENABLED"] = "true"
        os.environ["APP_REDIS_URL"] = "redis://redis-server:6380/1"
        os.environ["APP_QUEUE_MAX_JOBS"] = "20"

        try:
            settings = Settings(_env_file=None)
            assert settings.queue_enabled is True
            assert settings.redis_url == "redis://redis-server:6380/1"
            assert settings.queue_max_jobs == 20
        finally:
            del os.environ["APP_QUEUE_ENABLED"]
            del os.environ["APP_REDIS_URL"]
            del os.environ["APP_QUEUE_MAX_JOBS"]
