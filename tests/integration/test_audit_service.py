"""Integration tests for the fire-and-forget audit writer"""

from unittest.mock import MagicMock
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from court_monitor.domain.models import AuditEntry
from court_monitor.services.audit import AuditLogWriter, get_client_audit_log


def test_record_commits_on_own_session(db: Session, session_factory):
    writer = AuditLogWriter(session_factory)

    writer.record(AuditEntry(client_id=5, action_type="UPDATE", field_name="notes", old_value="a", new_value="b"))
    writer.record(AuditEntry(client_id=5, action_type="DELETE", field_name="renewal", old_value="3"))

    entries = get_client_audit_log(db, 5)
    assert len(entries) == 2
    assert {e.action_type for e in entries} == {"UPDATE", "DELETE"}
    assert all(e.user_name == "system" for e in entries)
    assert get_client_audit_log(db, 6) == []


def test_record_never_raises_on_database_error():
    """A failed audit write is rolled back and logged, not propagated"""
    session = MagicMock()
    session.commit.side_effect = OperationalError("INSERT", {}, Exception("database is locked"))
    writer = AuditLogWriter(lambda: session)

    writer.record(AuditEntry(client_id=1, action_type="CREATE"))

    session.rollback.assert_called_once()
    session.close.assert_called_once()
