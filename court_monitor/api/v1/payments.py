"""Client payments ledger endpoints"""

import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session

from court_monitor.api.dependencies import Actor, get_actor, get_audit_writer, get_request_id
from court_monitor.api.errors import to_http_exception
from court_monitor.api.v1.schemas import (
    CreatePaymentRequest,
    DeletePaymentResponse,
    PaymentSchema,
    PaymentsByTypeResponse,
    PaymentSummaryResponse,
    PaymentTypeTotalSchema,
    PaymentUpdate,
)
from court_monitor.infrastructure.database.session import get_db
from court_monitor.services.audit import AuditLogWriter
from court_monitor.services.payments import (
    DEFAULT_PAGE_SIZE,
    delete_payment,
    get_payment,
    list_client_payments,
    payment_summary,
    payment_totals_by_type,
    record_payment,
    update_payment,
)

router = APIRouter()


@router.get("/clients/{client_id}/payments", response_model=List[PaymentSchema])
def get_client_payments(
    client_id: int,
    request: Request,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Client payments, most recent first"""
    try:
        return list_client_payments(db, client_id, limit=limit, offset=offset)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e


@router.get("/clients/{client_id}/payments/summary", response_model=PaymentSummaryResponse)
def get_payment_summary(
    client_id: int,
    request: Request,
    total_contract_value: Optional[Decimal] = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    """
    Financial summary of a client.

    Returns:
        Total paid, payment count and last payment date; total_owed against
        total_contract_value when one is passed
    """
    try:
        summary = payment_summary(db, client_id, total_contract_value=total_contract_value)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e

    return PaymentSummaryResponse.from_summary(summary)


@router.get("/clients/{client_id}/payments/by-type", response_model=PaymentsByTypeResponse)
def get_payments_by_type(client_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        totals = payment_totals_by_type(db, client_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e

    return PaymentsByTypeResponse(
        client_id=client_id,
        totals=[PaymentTypeTotalSchema(payment_type=t.payment_type, total=t.total) for t in totals],
    )


@router.get("/payments/{payment_id}", response_model=PaymentSchema)
def get_one_payment(payment_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        return get_payment(db, payment_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e


@router.post("/payments", response_model=PaymentSchema, status_code=201)
async def create_payment(
    request_body: CreatePaymentRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    audit_writer: AuditLogWriter = Depends(get_audit_writer),
):
    """Record a payment received from a client"""
    request_id = get_request_id(request)

    try:
        payment = record_payment(
            db,
            request_body.client_id,
            request_body.payment_date,
            request_body.amount,
            request_body.payment_type,
            observations=request_body.observations,
        )
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    logging.info(f"Payment {payment.payment_id} recorded for client {payment.client_id}", extra={"request_id": request_id})
    background_tasks.add_task(
        audit_writer.record,
        actor.audit_entry(
            payment.client_id,
            "CREATE",
            field_name="payment",
            new_value=f"{payment.amount} {payment.payment_type}",
        ),
    )
    return payment


@router.put("/payments/{payment_id}", response_model=PaymentSchema)
async def edit_payment(
    payment_id: int,
    request_body: PaymentUpdate,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    audit_writer: AuditLogWriter = Depends(get_audit_writer),
):
    """
    Update payment fields; only the fields sent are changed.

    Unknown fields (client_id included) are rejected with 422, an empty body with 400.
    """
    request_id = get_request_id(request)
    changes = request_body.model_dump(exclude_unset=True)

    try:
        payment = update_payment(db, payment_id, changes)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    background_tasks.add_task(
        audit_writer.record,
        actor.audit_entry(
            payment.client_id,
            "UPDATE",
            field_name=",".join(changes),
            new_value=f"payment {payment_id}",
        ),
    )
    return payment


@router.delete("/payments/{payment_id}", response_model=DeletePaymentResponse)
async def remove_payment(
    payment_id: int,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    audit_writer: AuditLogWriter = Depends(get_audit_writer),
):
    request_id = get_request_id(request)

    try:
        client_id = delete_payment(db, payment_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    background_tasks.add_task(
        audit_writer.record,
        actor.audit_entry(client_id, "DELETE", field_name="payment", old_value=str(payment_id)),
    )
    return DeletePaymentResponse(payment_id=payment_id, client_id=client_id)
