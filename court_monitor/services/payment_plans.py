"""Payment plans and installment reconciliation"""

import logging
import time
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from court_monitor.domain.exceptions import (
    ClientNotFound,
    InstallmentNotFound,
    InvalidInput,
    NoFieldsToUpdate,
    PlanNotFound,
    RenewalNotFound,
)
from court_monitor.domain.models import (
    ContractType,
    ContractTypeSummary,
    InstallmentField,
    NewInstallment,
    PlansSummary,
    PlanTotals,
)
from court_monitor.infrastructure.database.models import ContractRenewal, PaymentPlan, PlanInstallment
from court_monitor.infrastructure.database.repositories import (
    ClientRepository,
    PaymentPlanRepository,
    RenewalRepository,
)
from court_monitor.infrastructure.database.session import transaction
from court_monitor.infrastructure.observability.logging import log_plan_totals
from court_monitor.infrastructure.observability.metrics import plan_recompute_counter
from court_monitor.utils.date_utils import add_months, extract_months

logger = logging.getLogger(__name__)

_REQUIRED_INSTALLMENT_FIELDS = {
    InstallmentField.PAYMENT_TYPE,
    InstallmentField.SCHEDULED_AMOUNT,
    InstallmentField.SCHEDULED_DATE,
    InstallmentField.PAYMENT_STATUS,
}


def contract_id_for(contract_type: ContractType, client_id: int, renewal_id: Optional[int]) -> str:
    """Business identifier of the contract instance a plan covers"""
    if contract_type is ContractType.ORIGINAL:
        return f"ORIG_{client_id}"
    return f"REN_{renewal_id}_{int(time.time() * 1000)}"


def create_payment_plan(
    db: Session,
    client_id: int,
    contract_type: ContractType,
    contract_start_date: date,
    renewal_id: Optional[int] = None,
    contract_end_date: Optional[date] = None,
    contract_amount: Optional[Decimal] = None,
    payment_frequency: Optional[str] = None,
) -> PaymentPlan:
    """
    Open a payment plan for the original contract or one renewal.

    Raises:
        ClientNotFound: unknown client
        RenewalNotFound: renewal plan referencing a renewal the client does not own
    """
    with transaction(db):
        if not ClientRepository(db).exists(client_id):
            raise ClientNotFound(client_id)

        if contract_type is ContractType.RENEWAL and renewal_id is not None:
            if RenewalRepository(db).get_for_client(renewal_id, client_id) is None:
                raise RenewalNotFound(renewal_id)
        elif contract_type is ContractType.ORIGINAL:
            renewal_id = None

        plan = PaymentPlanRepository(db).create_plan(
            client_id=client_id,
            contract_id=contract_id_for(contract_type, client_id, renewal_id),
            contract_type=contract_type,
            renewal_id=renewal_id,
            contract_start_date=contract_start_date,
            contract_end_date=contract_end_date,
            contract_amount=contract_amount,
            payment_frequency=payment_frequency,
        )

    logger.info(
        "Payment plan created",
        extra={"plan_id": plan.plan_id, "client_id": client_id, "contract_type": contract_type.value},
    )
    return plan


def recompute_plan_totals(db: Session, plan_id: int) -> PlanTotals:
    """
    Rebuild a plan's aggregate totals from its live installment rows.

    Always a full SUM over the rows, never arithmetic on the previous totals, so
    a missed or partial write cannot leave the totals drifting. Pending ORM
    changes are flushed first so the aggregate sees them. Does not commit.

    Raises:
        PlanNotFound: unknown plan
    """
    plans = PaymentPlanRepository(db)
    plan = plans.get(plan_id)
    if plan is None:
        raise PlanNotFound(plan_id)

    db.flush()
    scheduled, paid = plans.sum_installments(plan_id)

    plan.total_scheduled_amount = scheduled
    plan.total_paid_amount = paid
    plan.total_pending_amount = scheduled - paid
    db.flush()

    plan_recompute_counter.inc()
    return PlanTotals(
        total_scheduled_amount=scheduled,
        total_paid_amount=paid,
        total_pending_amount=scheduled - paid,
    )


def add_installments(db: Session, plan_id: int, installments: List[NewInstallment]) -> List[PlanInstallment]:
    """Append installments to a plan and recompute its totals, atomically"""
    plans = PaymentPlanRepository(db)
    with transaction(db):
        plan = plans.get(plan_id)
        if plan is None:
            raise PlanNotFound(plan_id)

        created = [plans.add_installment(plan, new) for new in installments]
        totals = recompute_plan_totals(db, plan_id)

    log_plan_totals(plan_id, "add", totals.total_scheduled_amount, totals.total_paid_amount, totals.total_pending_amount)
    return created


def _installment_changes(changes: Mapping[Any, Any]) -> Dict[InstallmentField, Any]:
    """Map caller keys onto the enumerated mutable fields; unknown keys are an error"""
    resolved = {}
    for key, value in changes.items():
        try:
            field = InstallmentField(key)
        except ValueError as e:
            raise InvalidInput(f"Unknown installment field: {key}") from e
        if field in _REQUIRED_INSTALLMENT_FIELDS and value is None:
            raise InvalidInput(f"Installment field {field.value} cannot be cleared")
        resolved[field] = value
    return resolved


def update_installment(
    db: Session,
    plan_id: int,
    installment_id: int,
    changes: Mapping[Any, Any],
) -> PlanInstallment:
    """
    Apply field changes to one installment and recompute the plan totals.

    Raises:
        InstallmentNotFound: installment not under this plan
        NoFieldsToUpdate: no field supplied
        InvalidInput: a key outside InstallmentField, or clearing a required field
    """
    plans = PaymentPlanRepository(db)
    with transaction(db):
        installment = plans.get_installment(plan_id, installment_id)
        if installment is None:
            raise InstallmentNotFound(plan_id, installment_id)

        fields = _installment_changes(changes)
        if not fields:
            raise NoFieldsToUpdate("No installment fields to update")

        for field, value in fields.items():
            setattr(installment, field.value, value)

        totals = recompute_plan_totals(db, plan_id)

    log_plan_totals(plan_id, "update", totals.total_scheduled_amount, totals.total_paid_amount, totals.total_pending_amount)
    return installment


def delete_installment(db: Session, plan_id: int, installment_id: int) -> PlanTotals:
    """Remove one installment and return the recomputed plan totals"""
    plans = PaymentPlanRepository(db)
    with transaction(db):
        installment = plans.get_installment(plan_id, installment_id)
        if installment is None:
            raise InstallmentNotFound(plan_id, installment_id)

        plans.delete_installment(installment)
        totals = recompute_plan_totals(db, plan_id)

    log_plan_totals(plan_id, "delete", totals.total_scheduled_amount, totals.total_paid_amount, totals.total_pending_amount)
    return totals


def list_client_plans(db: Session, client_id: int) -> List[PaymentPlan]:
    if not ClientRepository(db).exists(client_id):
        raise ClientNotFound(client_id)
    return PaymentPlanRepository(db).list_for_client(client_id)


def get_plan_details(db: Session, plan_id: int) -> Tuple[PaymentPlan, List[PlanInstallment]]:
    """Plan with its installments in schedule order"""
    plans = PaymentPlanRepository(db)
    plan = plans.get(plan_id)
    if plan is None:
        raise PlanNotFound(plan_id)
    return plan, plans.list_installments(plan_id)


def plans_summary(db: Session, client_id: int) -> PlansSummary:
    """Per contract type and overall totals across a client's plans"""
    if not ClientRepository(db).exists(client_id):
        raise ClientNotFound(client_id)

    by_type = {
        row["contract_type"]: ContractTypeSummary(**row)
        for row in PaymentPlanRepository(db).summarize_by_type(client_id)
    }
    groups = list(by_type.values())

    return PlansSummary(
        client_id=client_id,
        original=by_type.get(ContractType.ORIGINAL),
        renewals=by_type.get(ContractType.RENEWAL),
        total_plans=sum(g.total_plans for g in groups),
        total_scheduled_amount=sum((g.total_scheduled_amount for g in groups), Decimal("0")),
        total_paid_amount=sum((g.total_paid_amount for g in groups), Decimal("0")),
        total_pending_amount=sum((g.total_pending_amount for g in groups), Decimal("0")),
    )


def sync_renewal_plan(
    db: Session,
    renewal: ContractRenewal,
    renewal_amount: Optional[Decimal] = None,
    payment_frequency: Optional[str] = None,
) -> Optional[PaymentPlan]:
    """
    Keep a renewal's payment plan in line with the renewal.

    Existence of the plan selects the path: an existing plan is updated in place
    and its contract dates realigned to the renewal's date and duration; a missing
    one is created only when an amount is given. Runs inside the caller's
    transaction.
    """
    plans = PaymentPlanRepository(db)
    existing = plans.get_for_renewal(renewal.renewal_id)

    if existing is None and renewal_amount is None:
        return None

    months = extract_months(renewal.renewal_duration)
    end_date = add_months(renewal.renewal_date, months) if months > 0 else None

    if existing is None:
        if payment_frequency is None:
            client = ClientRepository(db).get(renewal.client_id)
            payment_frequency = client.payment_frequency if client else None

        plan = plans.create_plan(
            client_id=renewal.client_id,
            contract_id=contract_id_for(ContractType.RENEWAL, renewal.client_id, renewal.renewal_id),
            contract_type=ContractType.RENEWAL,
            renewal_id=renewal.renewal_id,
            contract_start_date=renewal.renewal_date,
            contract_end_date=end_date,
            contract_amount=renewal_amount,
            payment_frequency=payment_frequency,
        )
        logger.info("Renewal payment plan created", extra={"plan_id": plan.plan_id, "renewal_id": renewal.renewal_id})
        return plan

    existing.contract_start_date = renewal.renewal_date
    existing.contract_end_date = end_date
    if renewal_amount is not None:
        existing.contract_amount = renewal_amount
    if payment_frequency is not None:
        existing.payment_frequency = payment_frequency
    db.flush()
    return existing
