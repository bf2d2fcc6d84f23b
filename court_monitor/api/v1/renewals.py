"""Renewal record management under /v1/renewals"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session

from court_monitor.api.dependencies import (
    Actor,
    get_actor,
    get_audit_writer,
    get_document_store,
    get_request_id,
)
from court_monitor.api.errors import to_http_exception
from court_monitor.api.v1.schemas import DeleteRenewalResponse, RenewalListItem, RenewalSchema
from court_monitor.domain.models import PaymentFrequency, RenewalField
from court_monitor.infrastructure.clients.documents import DocumentStore, DocumentUpload
from court_monitor.infrastructure.database.session import get_db
from court_monitor.services.audit import AuditLogWriter
from court_monitor.services.renewals import (
    create_renewal,
    delete_renewal,
    get_renewal,
    list_all_renewals,
    list_renewals,
    update_renewal,
)

router = APIRouter()


async def _read_upload(document: Optional[UploadFile]) -> Optional[DocumentUpload]:
    # Browsers send an empty part when no file was chosen
    if document is None or not document.filename:
        return None
    return DocumentUpload(
        filename=document.filename,
        data=await document.read(),
        content_type=document.content_type,
    )


@router.get("/renewals", response_model=List[RenewalListItem])
def get_all_renewals(request: Request, db: Session = Depends(get_db)):
    """Every renewal with the owning client's name and contract number"""
    try:
        rows = list_all_renewals(db)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e

    return [
        RenewalListItem(
            **RenewalSchema.model_validate(renewal).model_dump(),
            defendant_name=defendant_name,
            contract_number=contract_number,
        )
        for renewal, defendant_name, contract_number in rows
    ]


@router.get("/renewals/client/{client_id}", response_model=List[RenewalSchema])
def get_client_renewals(client_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        return list_renewals(db, client_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e


@router.get("/renewals/{renewal_id}", response_model=RenewalSchema)
def get_one_renewal(renewal_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        return get_renewal(db, renewal_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e


@router.post("/renewals", response_model=RenewalSchema, status_code=201)
async def create_renewal_record(
    background_tasks: BackgroundTasks,
    request: Request,
    client_id: int = Form(...),
    renewal_date: date = Form(...),
    renewal_duration: Optional[str] = Form(None, max_length=50),
    notes: Optional[str] = Form(None),
    document: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
    actor: Actor = Depends(get_actor),
    audit_writer: AuditLogWriter = Depends(get_audit_writer),
):
    """
    Record a renewal with an optional supporting document (multipart form).

    The document is stored first; a failed insert removes it again.
    """
    request_id = get_request_id(request)

    try:
        renewal = create_renewal(
            db,
            store,
            client_id,
            renewal_date,
            renewal_duration=renewal_duration,
            notes=notes,
            document=await _read_upload(document),
        )
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    logging.info(
        f"Renewal {renewal.renewal_id} recorded for client {client_id}",
        extra={"request_id": request_id},
    )
    background_tasks.add_task(
        audit_writer.record,
        actor.audit_entry(client_id, "CREATE", field_name="renewal", new_value=renewal_date.isoformat()),
    )
    return renewal


@router.put("/renewals/{renewal_id}", response_model=RenewalSchema)
async def update_renewal_record(
    renewal_id: int,
    background_tasks: BackgroundTasks,
    request: Request,
    renewal_date: Optional[date] = Form(None),
    renewal_duration: Optional[str] = Form(None, max_length=50),
    renewal_amount: Optional[Decimal] = Form(None, ge=0),
    payment_frequency: Optional[PaymentFrequency] = Form(None),
    notes: Optional[str] = Form(None),
    document: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
    actor: Actor = Depends(get_actor),
    audit_writer: AuditLogWriter = Depends(get_audit_writer),
):
    """
    Update renewal fields and optionally replace its document.

    A renewal amount or payment frequency is carried over to the renewal's
    payment plan, creating the plan when an amount is given and none exists.
    """
    request_id = get_request_id(request)

    submitted = {
        RenewalField.RENEWAL_DATE: renewal_date,
        RenewalField.RENEWAL_DURATION: renewal_duration,
        RenewalField.RENEWAL_AMOUNT: renewal_amount,
        RenewalField.NOTES: notes,
    }
    changes = {field: value for field, value in submitted.items() if value is not None}

    try:
        renewal = update_renewal(
            db,
            store,
            renewal_id,
            changes,
            payment_frequency=payment_frequency.value if payment_frequency else None,
            document=await _read_upload(document),
        )
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    changed = [field.value for field in changes]
    if document is not None and document.filename:
        changed.append("renewal_document")
    if payment_frequency is not None:
        changed.append("payment_frequency")

    background_tasks.add_task(
        audit_writer.record,
        actor.audit_entry(renewal.client_id, "UPDATE", field_name=",".join(changed), new_value=str(renewal_id)),
    )
    return renewal


@router.delete("/renewals/{renewal_id}", response_model=DeleteRenewalResponse)
async def delete_renewal_record(
    renewal_id: int,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
    actor: Actor = Depends(get_actor),
    audit_writer: AuditLogWriter = Depends(get_audit_writer),
):
    """Delete a renewal; its document is removed afterwards on a best-effort basis"""
    request_id = get_request_id(request)

    try:
        client_id = delete_renewal(db, store, renewal_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    background_tasks.add_task(
        audit_writer.record,
        actor.audit_entry(client_id, "DELETE", field_name="renewal", old_value=str(renewal_id)),
    )
    return DeleteRenewalResponse(renewal_id=renewal_id, client_id=client_id)
