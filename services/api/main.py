"""FastAPI application for document line-item extraction.

Production-ready API with:
- Health and readiness checks for Kubernetes
- Text and file extraction endpoints
- Batch processing through the arq queue
- Structured error responses
- Prometheus metrics for monitoring

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import json
import logging
import tempfile
import time
import uuid
from datetime import UTC, datetime
from pathlib import Path

from arq import ArqRedis, create_pool
from fastapi import FastAPI, File, HTTPException, Query, Request, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from services.api import metrics
from services.extraction.pipeline import DocumentPipeline
from services.extraction.schema import ExtractionResult
from services.queue.tasks import JOB_STATUS_TTL_SECONDS, JobResult, WorkerSettings
from services.shared.config import get_settings
from services.shared.errors import SourceUnavailableError, TextSourceError
from services.storage.service import StorageService

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Invoice Line-Item Extraction",
    description="Extracts header fields, line items and totals from invoice documents",
    version=settings.service_version,
)

pipeline = DocumentPipeline(settings)
extraction_service = pipeline.extraction_service
storage_service = StorageService(settings)

SUPPORTED_CONTENT_TYPES = ("image/", "application/pdf")

_arq_pool: ArqRedis | None = None


async def get_arq_pool() -> ArqRedis:
    """Get or create the shared arq Redis pool."""
    global _arq_pool
    if _arq_pool is None:
        _arq_pool = await create_pool(WorkerSettings.get_redis_settings())
    return _arq_pool


def _is_supported(content_type: str | None) -> bool:
    return content_type is not None and content_type.startswith(SUPPORTED_CONTENT_TYPES)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request metrics.

    Tracks:
    - Request count by method, endpoint, and status
    - Request duration by method and endpoint
    """
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool


class ExtractRequest(BaseModel):
    """Text extraction request."""

    text: str = Field(..., description="Document text from any OCR engine or text layer")
    source_id: str = Field("inline", description="Identifier echoed in the result")


class UploadResponse(BaseModel):
    """Document upload response."""

    success: bool
    document_id: str
    result: ExtractionResult
    ocr_confidence: float | None = None
    storage_path: str | None = None


class BatchDocument(BaseModel):
    """Document queued as part of a batch."""

    document_id: str
    job_id: str
    filename: str


class BatchUploadResponse(BaseModel):
    """Batch upload response."""

    batch_id: str
    status: str
    total_documents: int
    documents: list[BatchDocument]


class BatchStatusResponse(BaseModel):
    """Aggregated status of a batch."""

    batch_id: str
    status: str  # processing, completed, partial, failed
    total_documents: int
    pending: int
    processing: int
    completed: int
    failed: int
    jobs: list[JobResult]


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe."""
    return HealthResponse(
        status="healthy", version=settings.service_version, service=settings.service_name
    )


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
def readiness_check() -> ReadinessResponse:
    """Readiness check endpoint for Kubernetes readiness probe."""
    return ReadinessResponse(ready=True)


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint."""
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)


@app.post("/api/v1/documents/extract", response_model=ExtractionResult, tags=["Documents"])
def extract_text(request: ExtractRequest) -> ExtractionResult:
    """Extract header fields, line items and totals from already-read text.

    ```bash
    curl -X POST "http://localhost:8000/api/v1/documents/extract" \\
      -H "Content-Type: application/json" \\
      -d '{"text": "INVOICE # INV-1001 ...", "source_id": "inv-1001"}'
    ```

    Raises:
        HTTPException: 422 if the text is empty
    """
    try:
        result = extraction_service.extract_document(request.text, request.source_id)
    except SourceUnavailableError as e:
        metrics.extraction_requests_total.labels(status="failed").inc()
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    metrics.record_extraction(result)
    return result


@app.post("/api/v1/documents/upload", response_model=UploadResponse, tags=["Documents"])
async def upload_document(
    file: UploadFile = File(..., description="Image (PNG, JPEG, TIFF, ...) or PDF"),  # noqa: B008
    use_cleanup: bool = Query(
        False,
        description="Run the configured cleanup provider over the extraction result",
    ),
) -> UploadResponse:
    """Upload a document for text extraction and line-item extraction.

    1. **Text source**: Tesseract for images, the PDF text layer for PDFs
    2. **Extraction**: header fields, line items, totals and reconciliation
    3. **Cleanup (optional)**: typo and format fixes; a failing cleanup
       provider returns the uncleaned result

    ```bash
    curl -X POST "http://localhost:8000/api/v1/documents/upload?use_cleanup=true" \\
      -F "file=@invoice.png"
    ```

    ## Error Handling

    - Returns 400 if file is invalid, empty, or wrong type
    - Returns 500 if the text source fails
    - Returns 422 if the document contains no text

    Raises:
        HTTPException: If file is invalid or processing fails
    """
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No filename provided")

    if not _is_supported(file.content_type):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type: {file.content_type}. Only images and PDFs are supported.",
        )

    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")

    metrics.document_upload_size_bytes.observe(len(content))

    doc_id = str(uuid.uuid4())
    with tempfile.TemporaryDirectory() as tmp_dir:
        tmp_path = Path(tmp_dir) / f"{doc_id}{Path(file.filename).suffix}"
        tmp_path.write_bytes(content)

        ocr_start = time.time()
        try:
            ocr_result = await run_in_threadpool(pipeline.read_text, tmp_path)
        except TextSourceError as e:
            metrics.ocr_requests_total.labels(status="failed").inc()
            metrics.documents_uploaded_total.labels(status="failed").inc()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Text extraction failed: {e}",
            ) from e
        finally:
            metrics.ocr_processing_duration_seconds.observe(time.time() - ocr_start)

    metrics.ocr_requests_total.labels(status="success").inc()

    try:
        result = extraction_service.extract_document(ocr_result.text, file.filename)
    except SourceUnavailableError as e:
        metrics.extraction_requests_total.labels(status="failed").inc()
        metrics.documents_uploaded_total.labels(status="failed").inc()
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    metrics.record_extraction(result)
    metrics.documents_uploaded_total.labels(status="success").inc()

    if use_cleanup:
        cleaned = await run_in_threadpool(pipeline.clean, result)
        outcome = "applied" if cleaned.cleanup_provider else "skipped"
        metrics.cleanup_requests_total.labels(
            provider=settings.cleanup_provider, status=outcome
        ).inc()
        result = cleaned

    # Storage failure doesn't fail the request (graceful degradation)
    storage_path = None
    if storage_service.is_available():
        manifest = storage_service.store_document(
            doc_id, result, content, file.filename, file.content_type
        )
        if manifest.complete:
            storage_path = manifest.location

    return UploadResponse(
        success=True,
        document_id=doc_id,
        result=result,
        ocr_confidence=ocr_result.confidence,
        storage_path=storage_path,
    )


class ArtifactUrlResponse(BaseModel):
    """Presigned download URL for a stored artifact."""

    document_id: str
    filename: str
    url: str
    expires_in_seconds: int


@app.get(
    "/api/v1/documents/{document_id}/artifacts/{filename}",
    response_model=ArtifactUrlResponse,
    tags=["Documents"],
)
def get_artifact_url(
    document_id: str,
    filename: str,
    expires_seconds: int = Query(3600, ge=60, le=604800),
) -> ArtifactUrlResponse:
    """Get a presigned URL for ``result.json``, ``line_items.csv``, ``report.html``
    or the original upload of a stored document.

    Raises:
        HTTPException: 503 if storage is disabled, 404 if the artifact does not
            exist, 502 if the URL cannot be signed
    """
    if not storage_service.is_available():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Artifact storage is not enabled. Set APP_STORAGE_ENABLED=true.",
        )

    if not storage_service.has_artifact(document_id, filename):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Artifact not found")

    url = storage_service.artifact_url(document_id, filename, expires_seconds)
    if url is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not sign artifact URL"
        )

    return ArtifactUrlResponse(
        document_id=document_id,
        filename=filename,
        url=url,
        expires_in_seconds=expires_seconds,
    )


@app.post(
    "/api/v1/documents/upload/batch",
    response_model=BatchUploadResponse,
    tags=["Batch"],
)
async def upload_batch(
    files: list[UploadFile] = File(..., description="Images or PDFs to process"),  # noqa: B008
    use_cleanup: bool = Query(False, description="Run cleanup for every document"),
) -> BatchUploadResponse:
    """Queue several documents for background extraction.

    Unsupported or empty files are skipped. Poll
    ``GET /api/v1/batches/{batch_id}`` for progress.

    Raises:
        HTTPException: 503 if the queue is disabled, 400 if no file is valid
    """
    if not settings.queue_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Batch processing is not enabled. Set APP_QUEUE_ENABLED=true.",
        )

    pool = await get_arq_pool()
    batch_id = str(uuid.uuid4())
    created_at = datetime.now(UTC).isoformat()
    documents: list[BatchDocument] = []

    for upload in files:
        if not upload.filename or not _is_supported(upload.content_type):
            logger.warning(f"Skipping unsupported file in batch {batch_id}: {upload.filename}")
            continue

        content = await upload.read()
        if not content:
            logger.warning(f"Skipping empty file in batch {batch_id}: {upload.filename}")
            continue

        document = BatchDocument(
            document_id=str(uuid.uuid4()),
            job_id=str(uuid.uuid4()),
            filename=upload.filename,
        )
        pending = JobResult(
            job_id=document.job_id,
            status="pending",
            document_id=document.document_id,
            created_at=created_at,
        )
        await pool.set(f"job:{document.job_id}", pending.model_dump_json(), ex=JOB_STATUS_TTL_SECONDS)
        await pool.enqueue_job(
            "process_document",
            job_id=document.job_id,
            document_id=document.document_id,
            file_content=content,
            filename=upload.filename,
            content_type=upload.content_type,
            use_cleanup=use_cleanup,
        )
        documents.append(document)

    if not documents:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No valid documents in batch",
        )

    batch_record = {
        "batch_id": batch_id,
        "job_ids": [document.job_id for document in documents],
        "total_documents": len(documents),
        "created_at": created_at,
    }
    await pool.set(f"batch:{batch_id}", json.dumps(batch_record), ex=JOB_STATUS_TTL_SECONDS)
    logger.info(f"Queued batch {batch_id} with {len(documents)} documents")

    return BatchUploadResponse(
        batch_id=batch_id,
        status="pending",
        total_documents=len(documents),
        documents=documents,
    )


def _batch_status(jobs: list[JobResult]) -> str:
    statuses = [job.status for job in jobs]
    if any(s in ("pending", "processing") for s in statuses):
        return "processing"
    if all(s == "completed" for s in statuses):
        return "completed"
    if all(s == "failed" for s in statuses):
        return "failed"
    return "partial"


@app.get("/api/v1/batches/{batch_id}", response_model=BatchStatusResponse, tags=["Batch"])
async def get_batch_status(batch_id: str) -> BatchStatusResponse:
    """Get the aggregated status of a queued batch.

    Raises:
        HTTPException: 503 if the queue is disabled, 404 if the batch is unknown
    """
    if not settings.queue_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Batch processing is not enabled. Set APP_QUEUE_ENABLED=true.",
        )

    pool = await get_arq_pool()
    raw_batch = await pool.get(f"batch:{batch_id}")
    if raw_batch is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")

    batch = json.loads(raw_batch)
    jobs: list[JobResult] = []
    for job_id in batch["job_ids"]:
        raw_job = await pool.get(f"job:{job_id}")
        if raw_job is None:
            # Status expired or not yet written
            jobs.append(
                JobResult(
                    job_id=job_id,
                    status="pending",
                    document_id="",
                    created_at=batch["created_at"],
                )
            )
            continue
        jobs.append(JobResult.model_validate_json(raw_job))

    counts = {
        name: sum(1 for job in jobs if job.status == name)
        for name in ("pending", "processing", "completed", "failed")
    }

    return BatchStatusResponse(
        batch_id=batch_id,
        status=_batch_status(jobs),
        total_documents=batch["total_documents"],
        jobs=jobs,
        **counts,
    )
