"""S3-compatible blob store client for contract documents, with retry logic"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, TypeVar

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from court_monitor.config import settings
from court_monitor.domain.exceptions import DocumentStorageError
from court_monitor.infrastructure.observability.metrics import (
    document_store_failures_counter,
    document_store_latency_histogram,
)

logger = logging.getLogger(__name__)

RENEWAL_DOCUMENTS_CONTAINER = "contract-renewals"

_RETRYABLE_ERROR_CODES = {"Throttling", "ThrottlingException", "SlowDown", "RequestTimeout", "InternalError"}

T = TypeVar("T")


def _is_transient(error: Exception) -> bool:
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        return code in _RETRYABLE_ERROR_CODES or status >= 500
    # Connection resets, endpoint timeouts and similar transport failures
    return isinstance(error, BotoCoreError)


@dataclass
class DocumentUpload:
    """File received from a client, not yet stored"""

    filename: str
    data: bytes
    content_type: Optional[str] = None


def blob_name_for(folder: str, filename: str) -> str:
    """Blob key for an uploaded file; spaces are not allowed in stored names"""
    return f"{folder}/{filename.replace(' ', '_')}"


class DocumentStore:
    """Upload and delete documents by logical container name"""

    def __init__(
        self,
        client=None,
        buckets: Optional[Dict[str, str]] = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
    ):
        self._client = client
        self.buckets = buckets or {RENEWAL_DOCUMENTS_CONTAINER: settings.renewal_documents_bucket}
        self.max_retries = max_retries or settings.storage_max_retries
        self.backoff_base = settings.storage_backoff_base if backoff_base is None else backoff_base

    @property
    def client(self):
        """Lazy-initialize S3 client."""
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=settings.storage_endpoint_url,
                aws_access_key_id=settings.storage_access_key_id,
                aws_secret_access_key=settings.storage_secret_access_key,
                region_name=settings.storage_region,
            )
        return self._client

    def _bucket(self, container: str) -> str:
        if not container:
            raise DocumentStorageError("A container name is required")
        return self.buckets.get(container, container)

    def _with_retries(self, operation: str, action: Callable[[], T]) -> T:
        """
        Run a blob operation, retrying transient failures.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base ...
        - Retries on throttling, 5xx responses and transport errors
        - Permanent errors (auth, missing bucket) fail immediately
        """
        attempt = 0
        while True:
            try:
                with document_store_latency_histogram.time():
                    return action()
            except (BotoCoreError, ClientError) as e:
                attempt += 1
                if not _is_transient(e) or attempt >= self.max_retries:
                    document_store_failures_counter.labels(operation=operation).inc()
                    raise DocumentStorageError(f"Blob {operation} failed: {e}") from e

                backoff = self.backoff_base * (2 ** (attempt - 1))
                logger.warning(
                    "Transient blob store failure, retrying",
                    extra={"operation": operation, "attempt": attempt, "backoff_seconds": backoff},
                )
                time.sleep(backoff)

    def upload(self, container: str, folder: str, filename: str, data: bytes, content_type: str | None = None) -> str:
        """
        Store a document and return its blob name.

        Raises:
            DocumentStorageError: empty payload, missing name, or storage failure
        """
        if not filename:
            raise DocumentStorageError("The document must have a file name")
        if not data:
            raise DocumentStorageError("The document is empty")

        bucket = self._bucket(container)
        blob_name = blob_name_for(folder, filename)
        extra = {"ContentType": content_type} if content_type else {}

        self._with_retries(
            "upload",
            lambda: self.client.put_object(Bucket=bucket, Key=blob_name, Body=data, **extra),
        )
        logger.info("Document uploaded", extra={"container": container, "blob_name": blob_name, "size": len(data)})
        return blob_name

    def delete(self, container: str, blob_name: str) -> None:
        """Remove a document by blob name"""
        if not blob_name:
            raise DocumentStorageError("A blob name is required")

        bucket = self._bucket(container)
        self._with_retries("delete", lambda: self.client.delete_object(Bucket=bucket, Key=blob_name))
        logger.info("Document deleted", extra={"container": container, "blob_name": blob_name})


def delete_quietly(store: DocumentStore, container: str, blob_name: Optional[str]) -> bool:
    """
    Best-effort delete used after the database change is already committed.

    A failure leaves an orphaned blob; it is logged and reported as False but
    never propagated, so the committed database state stands.
    """
    if not blob_name:
        return True
    try:
        store.delete(container, blob_name)
        return True
    except DocumentStorageError as e:
        logger.error("Orphaned blob after database change", extra={"blob_name": blob_name, "error": str(e)})
        return False
