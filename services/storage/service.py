"""Artifact storage for extraction results on S3-compatible object storage.

Every document gets one prefix, ``<bucket>/<document_id>/``, holding the
rendered artifacts (``result.json``, ``line_items.csv``, ``report.html``)
and the uploaded original. Uploads are independent: one failed artifact is
recorded in the manifest and the rest are still written.

Based on MinIO Python SDK:
https://min.io/docs/minio/linux/developers/python/API.html
"""

import io
import logging
import mimetypes
from datetime import timedelta
from pathlib import Path

from minio import Minio
from minio.error import S3Error
from pydantic import BaseModel, Field
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from services.export.renderers import render_artifacts
from services.extraction.schema import ExtractionResult
from services.shared.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class StoredArtifact(BaseModel):
    """One artifact written (or not) under a document prefix.

    Attributes:
        filename: Artifact name inside the document prefix
        object_name: Full object name, ``<document_id>/<filename>``
        size: Content length in bytes
        etag: ETag reported by the server on success
        error: Failure reason; None when the upload succeeded
    """

    filename: str
    object_name: str
    size: int
    etag: str | None = None
    error: str | None = None

    @property
    def stored(self) -> bool:
        return self.error is None


class ArtifactManifest(BaseModel):
    """Outcome of storing all artifacts of one document."""

    document_id: str
    bucket: str
    artifacts: list[StoredArtifact] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        """True when every artifact was stored."""
        return bool(self.artifacts) and all(a.stored for a in self.artifacts)

    @property
    def location(self) -> str:
        return f"{self.bucket}/{self.document_id}/"

    @property
    def failed(self) -> list[str]:
        return [a.filename for a in self.artifacts if not a.stored]


def _s3_reason(e: S3Error) -> str:
    return f"S3 error: {e.code} - {e.message}"


class StorageService:
    """Writes and reads extraction artifacts in MinIO.

    The client is created on first use so that a service with storage
    disabled never needs credentials.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._client: Minio | None = None
        self._known_buckets: set[str] = set()

    def _get_client(self) -> Minio:
        """Get or create the MinIO client.

        Raises:
            ValueError: If storage credentials are not configured
        """
        if self._client is not None:
            return self._client

        missing = [
            name
            for name, value in (
                ("APP_STORAGE_ACCESS_KEY", self.settings.storage_access_key),
                ("APP_STORAGE_SECRET_KEY", self.settings.storage_secret_key),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Storage credentials not configured. Set {', '.join(missing)}.")

        self._client = Minio(
            endpoint=self.settings.storage_endpoint,
            access_key=self.settings.storage_access_key,
            secret_key=self.settings.storage_secret_key,
            secure=self.settings.storage_secure,
        )
        logger.info(f"MinIO client initialized for endpoint: {self.settings.storage_endpoint}")
        return self._client

    def is_available(self) -> bool:
        """Check if storage is enabled and both credentials are set."""
        return self.settings.storage_enabled and bool(
            self.settings.storage_access_key and self.settings.storage_secret_key
        )

    def health_check(self) -> bool:
        """Check if the storage backend answers ``list_buckets``."""
        if not self.is_available():
            return False

        try:
            self._get_client().list_buckets()
        except (S3Error, ValueError, OSError) as e:
            logger.warning(f"Storage health check failed: {e}")
            return False
        return True

    def _ensure_bucket(self, bucket: str) -> None:
        if bucket in self._known_buckets:
            return

        client = self._get_client()
        if not client.bucket_exists(bucket):
            client.make_bucket(bucket)
            logger.info(f"Created bucket: {bucket}")
        self._known_buckets.add(bucket)

    @retry(
        retry=retry_if_exception_type(S3Error),
        stop=stop_after_attempt(3),
        wait=wait_exponential_jitter(initial=1, max=10),
        reraise=True,
    )
    def _put_with_retry(self, bucket: str, object_name: str, data: bytes, content_type: str) -> str:
        """Write one object, retrying S3 errors.

        Returns:
            ETag of the stored object
        """
        self._ensure_bucket(bucket)
        written = self._get_client().put_object(
            bucket_name=bucket,
            object_name=object_name,
            data=io.BytesIO(data),
            length=len(data),
            content_type=content_type,
        )
        etag: str = written.etag
        return etag

    def _store_one(
        self, bucket: str, document_id: str, filename: str, data: bytes, content_type: str | None
    ) -> StoredArtifact:
        object_name = f"{document_id}/{filename}"
        content_type = content_type or mimetypes.guess_type(filename)[0] or DEFAULT_CONTENT_TYPE
        artifact = StoredArtifact(filename=filename, object_name=object_name, size=len(data))

        try:
            artifact.etag = self._put_with_retry(bucket, object_name, data, content_type)
        except S3Error as e:
            logger.error(f"S3 error storing {object_name}: {e}")
            artifact.error = _s3_reason(e)
        except ValueError as e:
            logger.error(f"Cannot store {object_name}: {e}")
            artifact.error = str(e)
        else:
            logger.debug(f"Stored {object_name} in {bucket} ({len(data)} bytes)")
        return artifact

    def store_artifacts(
        self,
        document_id: str,
        artifacts: dict[str, tuple[bytes, str | None]],
        bucket: str | None = None,
    ) -> ArtifactManifest:
        """Store named artifacts under ``<document_id>/``.

        Args:
            document_id: Prefix shared by all artifacts of a document
            artifacts: File name to (content, content type); a None content
                type is guessed from the file name
            bucket: Target bucket (defaults to settings.storage_bucket)

        Returns:
            Manifest listing every artifact with its outcome
        """
        bucket = bucket or self.settings.storage_bucket
        manifest = ArtifactManifest(
            document_id=document_id,
            bucket=bucket,
            artifacts=[
                self._store_one(bucket, document_id, filename, data, content_type)
                for filename, (data, content_type) in artifacts.items()
            ],
        )

        if manifest.failed:
            logger.warning(
                f"Failed to store artifacts for {document_id}: {', '.join(manifest.failed)}"
            )
        else:
            logger.info(f"Stored {len(manifest.artifacts)} artifacts under {manifest.location}")
        return manifest

    def store_document(
        self,
        document_id: str,
        result: ExtractionResult,
        original: bytes,
        filename: str,
        content_type: str | None = None,
    ) -> ArtifactManifest:
        """Render an extraction result and store it next to the original upload.

        The original is stored as ``original<suffix>`` using the suffix of
        ``filename``.
        """
        artifacts: dict[str, tuple[bytes, str | None]] = dict(render_artifacts(result))
        artifacts[f"original{Path(filename).suffix}"] = (original, content_type)
        return self.store_artifacts(document_id, artifacts)

    def artifact_url(
        self, document_id: str, filename: str, expires_seconds: int = 3600
    ) -> str | None:
        """Presigned download URL for one artifact, or None if it cannot be signed."""
        object_name = f"{document_id}/{filename}"
        try:
            return self._get_client().presigned_get_object(
                bucket_name=self.settings.storage_bucket,
                object_name=object_name,
                expires=timedelta(seconds=expires_seconds),
            )
        except S3Error as e:
            logger.error(f"S3 error signing {object_name}: {e}")
        except ValueError as e:
            logger.error(f"Cannot sign {object_name}: {e}")
        return None

    def has_artifact(self, document_id: str, filename: str) -> bool:
        """Check whether an artifact exists for a document."""
        try:
            self._get_client().stat_object(
                bucket_name=self.settings.storage_bucket,
                object_name=f"{document_id}/{filename}",
            )
        except S3Error:
            return False
        return True
