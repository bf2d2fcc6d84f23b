"""Contract validity and renewal endpoints under /v1/clients/{client_id}"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from court_monitor.api.dependencies import Actor, get_actor, get_audit_writer, get_request_id
from court_monitor.api.errors import to_http_exception
from court_monitor.api.v1.schemas import (
    RenewalHistoryItemSchema,
    RenewalHistoryResponse,
    RenewalResultResponse,
    RenewContractRequest,
    ValidityResponse,
)
from court_monitor.domain.exceptions import DuplicateRenewal
from court_monitor.domain.models import IndeterminateContract
from court_monitor.infrastructure.database.session import get_db
from court_monitor.infrastructure.observability.logging import log_renewal
from court_monitor.infrastructure.observability.metrics import record_renewal, record_validity
from court_monitor.services.audit import AuditLogWriter
from court_monitor.services.renewals import get_contract_validity, renew_contract, renewal_history

router = APIRouter()


@router.get("/clients/{client_id}/validity", response_model=ValidityResponse)
def get_validity(client_id: int, request: Request, db: Session = Depends(get_db)):
    """
    Current contract validity (vigencia) of a client.

    Malformed stored data is not an error: the response carries
    status="indeterminate" and "N/A" for every field that cannot be derived.
    """
    request_id = get_request_id(request)

    try:
        validity = get_contract_validity(db, client_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    if isinstance(validity, IndeterminateContract):
        record_validity("indeterminate")
        logging.warning(
            f"Indeterminate validity for client {client_id}: {validity.reason.value}",
            extra={"request_id": request_id},
        )
    else:
        record_validity("active" if validity.is_active else "expired")

    return ValidityResponse.from_validity(validity)


@router.post("/clients/{client_id}/renewals", response_model=RenewalResultResponse, status_code=201)
async def create_contract_renewal(
    client_id: int,
    request_body: RenewContractRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    audit_writer: AuditLogWriter = Depends(get_audit_writer),
):
    """
    Renew a client's contract by a number of months.

    Flow:
    1. Reject a second renewal on the same calendar day (409)
    2. Resolve the current expiration from the latest renewal or the contract
    3. Insert the renewal row and commit
    4. Record the change in the audit trail in the background
    """
    request_id = get_request_id(request)

    try:
        result = renew_contract(
            db,
            client_id,
            request_body.months,
            renewal_date=request_body.renewal_date,
            document_ref=request_body.document_ref,
        )
    except DuplicateRenewal as e:
        record_renewal(duplicate=True)
        raise to_http_exception(e, request_id) from e
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    record_renewal(duplicate=False)
    log_renewal(
        request_id,
        client_id,
        result.previous_expiration_date,
        result.new_expiration_date,
        result.months_added,
        result.days_remaining,
    )
    background_tasks.add_task(
        audit_writer.record,
        actor.audit_entry(
            client_id,
            "RENEWAL",
            field_name="expiration_date",
            old_value=result.previous_expiration_date.isoformat(),
            new_value=result.new_expiration_date.isoformat(),
        ),
    )

    return RenewalResultResponse(
        client_id=result.client_id,
        renewal_id=result.renewal_id,
        previous_expiration_date=result.previous_expiration_date,
        new_expiration_date=result.new_expiration_date,
        days_remaining=result.days_remaining,
        months_added=result.months_added,
        renewal_date=result.renewal_date,
    )


@router.get("/clients/{client_id}/renewals/history", response_model=RenewalHistoryResponse)
def get_renewal_history(client_id: int, request: Request, db: Session = Depends(get_db)):
    """Renewals newest first, each with the expiration its own duration yields"""
    try:
        items = renewal_history(db, client_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e

    return RenewalHistoryResponse(
        client_id=client_id,
        renewals=[RenewalHistoryItemSchema(**vars(item)) for item in items],
    )
