"""GET /v1/clients/{client_id}/audit-log - Client change history"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from court_monitor.api.dependencies import get_request_id
from court_monitor.api.errors import to_http_exception
from court_monitor.api.v1.schemas import AuditLogEntrySchema, AuditLogResponse
from court_monitor.infrastructure.database.session import get_db
from court_monitor.services.audit import get_client_audit_log

router = APIRouter()


@router.get("/clients/{client_id}/audit-log", response_model=AuditLogResponse)
def get_audit_log(client_id: int, request: Request, db: Session = Depends(get_db)):
    """Audit entries for a client, newest first"""
    try:
        entries = get_client_audit_log(db, client_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e

    return AuditLogResponse(
        client_id=client_id,
        entries=[AuditLogEntrySchema.model_validate(entry) for entry in entries],
    )
