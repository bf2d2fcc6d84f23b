"""Payment plan and installment endpoints"""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from court_monitor.api.dependencies import Actor, get_actor, get_audit_writer, get_request_id
from court_monitor.api.errors import to_http_exception
from court_monitor.api.v1.schemas import (
    AddInstallmentsRequest,
    CreatePaymentPlanRequest,
    DeleteInstallmentResponse,
    InstallmentSchema,
    InstallmentUpdate,
    PaymentPlanSchema,
    PlanDetailsResponse,
    PlansSummaryResponse,
    PlanTotalsSchema,
)
from court_monitor.infrastructure.database.session import get_db
from court_monitor.services.audit import AuditLogWriter
from court_monitor.services.payment_plans import (
    add_installments,
    create_payment_plan,
    delete_installment,
    get_plan_details,
    list_client_plans,
    plans_summary,
    update_installment,
)

router = APIRouter()


@router.get("/clients/{client_id}/payment-plans", response_model=List[PaymentPlanSchema])
def get_client_plans(client_id: int, request: Request, db: Session = Depends(get_db)):
    """Client plans, the original contract's plan first"""
    try:
        return list_client_plans(db, client_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e


@router.get("/clients/{client_id}/payment-plans-summary", response_model=PlansSummaryResponse)
def get_plans_summary(client_id: int, request: Request, db: Session = Depends(get_db)):
    try:
        summary = plans_summary(db, client_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e

    return PlansSummaryResponse.from_summary(summary)


@router.get("/payment-plans/{plan_id}", response_model=PlanDetailsResponse)
def get_plan(plan_id: int, request: Request, db: Session = Depends(get_db)):
    """
    Retrieve a payment plan with its installment schedule.

    Returns:
        Plan totals plus installments ordered by scheduled date
    """
    try:
        plan, installments = get_plan_details(db, plan_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, get_request_id(request)) from e

    return PlanDetailsResponse(
        **PaymentPlanSchema.model_validate(plan).model_dump(),
        installments=[InstallmentSchema.model_validate(i) for i in installments],
    )


@router.post("/payment-plans", response_model=PaymentPlanSchema, status_code=201)
async def create_plan(
    request_body: CreatePaymentPlanRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    audit_writer: AuditLogWriter = Depends(get_audit_writer),
):
    """Open a payment plan for the original contract or one renewal, with zero totals"""
    request_id = get_request_id(request)

    try:
        plan = create_payment_plan(
            db,
            request_body.client_id,
            request_body.contract_type,
            request_body.contract_start_date,
            renewal_id=request_body.renewal_id,
            contract_end_date=request_body.contract_end_date,
            contract_amount=request_body.contract_amount,
            payment_frequency=request_body.payment_frequency.value if request_body.payment_frequency else None,
        )
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    logging.info(f"Payment plan {plan.plan_id} created", extra={"request_id": request_id})
    background_tasks.add_task(
        audit_writer.record,
        actor.audit_entry(plan.client_id, "CREATE", field_name="payment_plan", new_value=plan.contract_id),
    )
    return plan


@router.post("/payment-plans/{plan_id}/installments", response_model=List[InstallmentSchema], status_code=201)
async def create_installments(
    plan_id: int,
    request_body: AddInstallmentsRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    audit_writer: AuditLogWriter = Depends(get_audit_writer),
):
    """Append installments; plan totals are recomputed in the same transaction"""
    request_id = get_request_id(request)

    try:
        created = add_installments(db, plan_id, [i.to_domain() for i in request_body.installments])
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    background_tasks.add_task(
        audit_writer.record,
        actor.audit_entry(
            created[0].client_id,
            "CREATE",
            field_name="installments",
            new_value=f"plan {plan_id}: {len(created)} added",
        ),
    )
    return created


@router.put("/payment-plans/{plan_id}/installments/{installment_id}", response_model=InstallmentSchema)
async def edit_installment(
    plan_id: int,
    installment_id: int,
    request_body: InstallmentUpdate,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    audit_writer: AuditLogWriter = Depends(get_audit_writer),
):
    """
    Update installment fields; only the fields sent are changed.

    Unknown fields are rejected with 422, an empty body with 400.
    """
    request_id = get_request_id(request)
    changes = request_body.model_dump(exclude_unset=True)

    try:
        installment = update_installment(db, plan_id, installment_id, changes)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    background_tasks.add_task(
        audit_writer.record,
        actor.audit_entry(
            installment.client_id,
            "UPDATE",
            field_name=",".join(changes),
            new_value=f"installment {installment_id}",
        ),
    )
    return installment


@router.delete("/payment-plans/{plan_id}/installments/{installment_id}", response_model=DeleteInstallmentResponse)
async def remove_installment(
    plan_id: int,
    installment_id: int,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    audit_writer: AuditLogWriter = Depends(get_audit_writer),
):
    """Delete an installment and return the plan's recomputed totals"""
    request_id = get_request_id(request)

    try:
        plan, _ = get_plan_details(db, plan_id)
        client_id = plan.client_id
        totals = delete_installment(db, plan_id, installment_id)
    except Exception as e:
        db.rollback()
        raise to_http_exception(e, request_id) from e

    background_tasks.add_task(
        audit_writer.record,
        actor.audit_entry(client_id, "DELETE", field_name="installment", old_value=str(installment_id)),
    )
    return DeleteInstallmentResponse(
        plan_id=plan_id,
        installment_id=installment_id,
        totals=PlanTotalsSchema(
            total_scheduled_amount=totals.total_scheduled_amount,
            total_paid_amount=totals.total_paid_amount,
            total_pending_amount=totals.total_pending_amount,
        ),
    )
