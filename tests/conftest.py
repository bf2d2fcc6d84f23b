"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Callable, Generator
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from court_monitor.api.main import create_app
from court_monitor.api.dependencies import get_audit_writer, get_document_store
from court_monitor.infrastructure.clients.documents import DocumentStore
from court_monitor.infrastructure.database.models import Base, Client
from court_monitor.infrastructure.database.session import get_db
from court_monitor.services.audit import AuditLogWriter


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client"""

    def __init__(self):
        self.objects = {}
        self.fail_uploads = False
        self.fail_deletes = False

    def _error(self, operation: str) -> ClientError:
        return ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, operation)

    def put_object(self, Bucket, Key, Body, **kwargs):
        if self.fail_uploads:
            raise self._error("PutObject")
        self.objects[(Bucket, Key)] = Body
        return {}

    def delete_object(self, Bucket, Key):
        if self.fail_deletes:
            raise self._error("DeleteObject")
        self.objects.pop((Bucket, Key), None)
        return {}

    def keys(self) -> list:
        return [key for _, key in self.objects]


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    """Sessions independent of the request session, as the audit writer uses"""
    return TestingSessionLocal


@pytest.fixture
def s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def store(s3: FakeS3Client) -> DocumentStore:
    """Document store backed by the in-memory S3 client, no backoff delay"""
    return DocumentStore(client=s3, max_retries=3, backoff_base=0)


@pytest.fixture
def client(db: Session, store: DocumentStore) -> TestClient:
    """Create FastAPI test client with test database, blob store and audit writer"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_audit_writer] = lambda: AuditLogWriter(TestingSessionLocal)
    return TestClient(app)


@pytest.fixture
def make_client(db: Session) -> Callable[..., Client]:
    """Factory for monitored clients with a 12 month contract by default"""
    counter = {"next": 1000}

    def _make(
        placement_date: date | None = date(2025, 1, 1),
        contract_date: date | None = date(2025, 1, 1),
        contract_duration: int | None = 12,
        payment_frequency: str | None = "Mensual",
        defendant_name: str = "Juan Perez",
    ) -> Client:
        counter["next"] += 1
        record = Client(
            defendant_name=defendant_name,
            contract_number=counter["next"],
            placement_date=placement_date,
            contract_date=contract_date,
            contract_duration=contract_duration,
            payment_frequency=payment_frequency,
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make
