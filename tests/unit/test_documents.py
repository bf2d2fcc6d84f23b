"""Unit tests for the blob store client"""

import pytest
from unittest.mock import MagicMock
from botocore.exceptions import ClientError, EndpointConnectionError
from court_monitor.domain.exceptions import DocumentStorageError
from court_monitor.infrastructure.clients.documents import (
    RENEWAL_DOCUMENTS_CONTAINER,
    DocumentStore,
    blob_name_for,
    delete_quietly,
)


def _client_error(code: str, status: int) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        "PutObject",
    )


def test_blob_name_replaces_spaces():
    assert blob_name_for("client-7", "contrato firmado.pdf") == "client-7/contrato_firmado.pdf"


def test_upload_maps_container_to_bucket(store, s3):
    blob_name = store.upload(RENEWAL_DOCUMENTS_CONTAINER, "client-7", "acta 1.pdf", b"%PDF", "application/pdf")

    assert blob_name == "client-7/acta_1.pdf"
    assert s3.objects == {("contract-renewals", "client-7/acta_1.pdf"): b"%PDF"}


def test_upload_rejects_empty_document(store):
    with pytest.raises(DocumentStorageError):
        store.upload(RENEWAL_DOCUMENTS_CONTAINER, "client-7", "vacio.pdf", b"")
    with pytest.raises(DocumentStorageError):
        store.upload(RENEWAL_DOCUMENTS_CONTAINER, "client-7", "", b"data")


def test_transient_failures_are_retried():
    """Throttling and transport errors back off and retry"""
    s3 = MagicMock()
    s3.put_object.side_effect = [
        _client_error("SlowDown", 503),
        EndpointConnectionError(endpoint_url="http://blob"),
        {},
    ]
    store = DocumentStore(client=s3, max_retries=3, backoff_base=0)

    assert store.upload(RENEWAL_DOCUMENTS_CONTAINER, "client-1", "a.pdf", b"x") == "client-1/a.pdf"
    assert s3.put_object.call_count == 3


def test_retries_exhausted_raise_storage_error():
    s3 = MagicMock()
    s3.put_object.side_effect = _client_error("InternalError", 500)
    store = DocumentStore(client=s3, max_retries=2, backoff_base=0)

    with pytest.raises(DocumentStorageError):
        store.upload(RENEWAL_DOCUMENTS_CONTAINER, "client-1", "a.pdf", b"x")
    assert s3.put_object.call_count == 2


def test_permanent_failure_is_not_retried():
    s3 = MagicMock()
    s3.put_object.side_effect = _client_error("AccessDenied", 403)
    store = DocumentStore(client=s3, max_retries=5, backoff_base=0)

    with pytest.raises(DocumentStorageError):
        store.upload(RENEWAL_DOCUMENTS_CONTAINER, "client-1", "a.pdf", b"x")
    assert s3.put_object.call_count == 1


def test_delete_quietly_swallows_storage_errors(store, s3):
    s3.fail_deletes = True

    assert delete_quietly(store, RENEWAL_DOCUMENTS_CONTAINER, "client-1/a.pdf") is False
    assert delete_quietly(store, RENEWAL_DOCUMENTS_CONTAINER, None) is True
