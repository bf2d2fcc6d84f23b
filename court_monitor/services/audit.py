"""Client audit trail: fire-and-forget writer and reader"""

import logging
from typing import Callable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from court_monitor.domain.models import AuditEntry
from court_monitor.infrastructure.database.models import ClientAuditLog
from court_monitor.infrastructure.database.repositories import AuditLogRepository

logger = logging.getLogger(__name__)


class AuditLogWriter:
    """Writes audit entries on their own session, after the primary operation"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def record(self, entry: AuditEntry) -> None:
        """
        Persist an audit entry.

        Failure to log must not fail the operation being audited, so database
        errors are rolled back and logged here instead of propagated.
        """
        db = self.session_factory()
        try:
            AuditLogRepository(db).add(entry)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(
                "Audit log write failed",
                extra={"client_id": entry.client_id, "action_type": entry.action_type, "error": str(e)},
            )
        finally:
            db.close()


def get_client_audit_log(db: Session, client_id: int) -> List[ClientAuditLog]:
    """Audit entries for a client, newest first"""
    return AuditLogRepository(db).list_for_client(client_id)
