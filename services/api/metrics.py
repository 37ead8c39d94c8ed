"""Prometheus metrics for API service.

Exposes key metrics for monitoring:
- Request counts by endpoint and status
- Request duration histograms
- Document upload and text source metrics
- Line-item extraction metrics (winning strategy, item counts, reconciliation)

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.openmetrics.exposition import CONTENT_TYPE_LATEST

from services.extraction.schema import ExtractionResult

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Document processing metrics
documents_uploaded_total = Counter(
    "documents_uploaded_total",
    "Total documents uploaded",
    ["status"],  # success, failed
)

document_upload_size_bytes = Histogram(
    "document_upload_size_bytes",
    "Document upload size in bytes",
    buckets=(1024, 10240, 102400, 1048576, 10485760),  # 1KB to 10MB
)

# Text source metrics
ocr_processing_duration_seconds = Histogram(
    "ocr_processing_duration_seconds",
    "Text source processing duration in seconds",
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

ocr_requests_total = Counter(
    "ocr_requests_total",
    "Total text source requests",
    ["status"],  # success, failed
)

# Extraction metrics
extraction_requests_total = Counter(
    "extraction_requests_total",
    "Total extraction requests",
    ["status"],  # success, failed
)

extraction_processing_duration_seconds = Histogram(
    "extraction_processing_duration_seconds",
    "Extraction processing duration in seconds",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)

line_item_extractions_total = Counter(
    "line_item_extractions_total",
    "Line-item extractions by winning strategy",
    ["strategy"],  # sequential, pattern
)

line_items_per_document = Histogram(
    "line_items_per_document",
    "Number of line items extracted per document",
    buckets=(0, 1, 2, 5, 10, 20, 50, 100),
)

reconciliation_mismatches_total = Counter(
    "reconciliation_mismatches_total",
    "Documents whose line-item sum does not match the stated subtotal",
)

cleanup_requests_total = Counter(
    "cleanup_requests_total",
    "Total cleanup requests",
    ["provider", "status"],  # applied, skipped
)


def record_extraction(result: ExtractionResult) -> None:
    """Record the extraction metrics of one successfully extracted document."""
    extraction_requests_total.labels(status="success").inc()
    extraction_processing_duration_seconds.observe(result.processing_time)
    line_item_extractions_total.labels(strategy=result.strategy or "none").inc()
    line_items_per_document.observe(len(result.line_items))
    if result.reconciliation.mismatch:
        reconciliation_mismatches_total.inc()


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
