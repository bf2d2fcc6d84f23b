"""Integration tests for payment plan reconciliation against SQLite"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session
from court_monitor.domain.exceptions import (
    ClientNotFound,
    InstallmentNotFound,
    InvalidInput,
    NoFieldsToUpdate,
    PlanNotFound,
    RenewalNotFound,
)
from court_monitor.domain.models import ContractType, InstallmentField, NewInstallment
from court_monitor.infrastructure.database.models import ContractRenewal, PaymentPlan, PlanInstallment
from court_monitor.services.payment_plans import (
    add_installments,
    create_payment_plan,
    delete_installment,
    get_plan_details,
    list_client_plans,
    plans_summary,
    recompute_plan_totals,
    sync_renewal_plan,
    update_installment,
)
from court_monitor.services.renewals import renew_contract


def _assert_totals_match_rows(db: Session, plan_id: int):
    """Stored totals always equal the live sums over the plan's installments"""
    db.expire_all()
    plan = db.get(PaymentPlan, plan_id)
    rows = db.query(PlanInstallment).filter(PlanInstallment.plan_id == plan_id).all()
    scheduled = sum((r.scheduled_amount for r in rows), Decimal("0"))
    paid = sum((r.paid_amount or Decimal("0") for r in rows), Decimal("0"))

    assert plan.total_scheduled_amount == scheduled
    assert plan.total_paid_amount == paid
    assert plan.total_pending_amount == scheduled - paid


@pytest.fixture
def original_plan(db: Session, make_client) -> PaymentPlan:
    monitored = make_client()
    return create_payment_plan(
        db,
        monitored.client_id,
        ContractType.ORIGINAL,
        date(2025, 1, 1),
        contract_end_date=date(2026, 1, 1),
        contract_amount=Decimal("12000.00"),
        payment_frequency="Mensual",
    )


def test_create_original_plan_starts_at_zero(original_plan: PaymentPlan):
    assert original_plan.contract_id == f"ORIG_{original_plan.client_id}"
    assert original_plan.contract_type == "original"
    assert original_plan.renewal_id is None
    assert original_plan.status == "Activo"
    assert original_plan.total_scheduled_amount == Decimal("0")
    assert original_plan.total_paid_amount == Decimal("0")
    assert original_plan.total_pending_amount == Decimal("0")


def test_create_renewal_plan_references_renewal(db: Session, make_client):
    monitored = make_client()
    renewal = renew_contract(db, monitored.client_id, 6, renewal_date=date(2025, 10, 1))

    plan = create_payment_plan(
        db,
        monitored.client_id,
        ContractType.RENEWAL,
        date(2025, 10, 1),
        renewal_id=renewal.renewal_id,
    )

    assert plan.contract_id.startswith(f"REN_{renewal.renewal_id}_")
    assert plan.renewal_id == renewal.renewal_id


def test_create_plan_validation(db: Session, make_client):
    monitored = make_client()
    other = make_client()
    renewal = renew_contract(db, other.client_id, 6, renewal_date=date(2025, 10, 1))

    with pytest.raises(ClientNotFound):
        create_payment_plan(db, 999, ContractType.ORIGINAL, date(2025, 1, 1))
    with pytest.raises(RenewalNotFound):
        create_payment_plan(
            db, monitored.client_id, ContractType.RENEWAL, date(2025, 10, 1), renewal_id=renewal.renewal_id
        )


def test_add_installments_recomputes_totals(db: Session, original_plan: PaymentPlan):
    created = add_installments(
        db,
        original_plan.plan_id,
        [
            NewInstallment(scheduled_amount=Decimal("1000.00"), scheduled_date=date(2025, 2, 1), paid_amount=Decimal("400.00")),
            NewInstallment(scheduled_amount=Decimal("500.50"), scheduled_date=date(2025, 3, 1)),
        ],
    )

    assert len(created) == 2
    assert all(i.client_id == original_plan.client_id for i in created)

    _, installments = get_plan_details(db, original_plan.plan_id)
    assert [i.scheduled_date for i in installments] == [date(2025, 2, 1), date(2025, 3, 1)]

    db.refresh(original_plan)
    assert original_plan.total_scheduled_amount == Decimal("1500.50")
    assert original_plan.total_paid_amount == Decimal("400.00")
    assert original_plan.total_pending_amount == Decimal("1100.50")
    _assert_totals_match_rows(db, original_plan.plan_id)


def test_add_installments_unknown_plan(db: Session):
    with pytest.raises(PlanNotFound):
        add_installments(db, 42, [NewInstallment(scheduled_amount=Decimal("1"), scheduled_date=date(2025, 1, 1))])


def test_update_installment_recomputes_totals(db: Session, original_plan: PaymentPlan):
    (installment,) = add_installments(
        db,
        original_plan.plan_id,
        [NewInstallment(scheduled_amount=Decimal("1000.00"), scheduled_date=date(2025, 2, 1))],
    )

    updated = update_installment(
        db,
        original_plan.plan_id,
        installment.installment_id,
        {InstallmentField.PAID_AMOUNT: Decimal("1000.00"), "payment_status": "Pagado", "paid_date": date(2025, 2, 3)},
    )

    assert updated.payment_status == "Pagado"
    db.refresh(original_plan)
    assert original_plan.total_paid_amount == Decimal("1000.00")
    assert original_plan.total_pending_amount == Decimal("0")
    _assert_totals_match_rows(db, original_plan.plan_id)


def test_update_installment_rejects_bad_changes(db: Session, original_plan: PaymentPlan):
    (installment,) = add_installments(
        db,
        original_plan.plan_id,
        [NewInstallment(scheduled_amount=Decimal("1000.00"), scheduled_date=date(2025, 2, 1))],
    )

    with pytest.raises(NoFieldsToUpdate):
        update_installment(db, original_plan.plan_id, installment.installment_id, {})
    with pytest.raises(InvalidInput):
        update_installment(db, original_plan.plan_id, installment.installment_id, {"plan_id": 99})
    with pytest.raises(InvalidInput):
        update_installment(db, original_plan.plan_id, installment.installment_id, {"scheduled_amount": None})
    with pytest.raises(InstallmentNotFound):
        update_installment(db, original_plan.plan_id, 9999, {"notes": "x"})

    _assert_totals_match_rows(db, original_plan.plan_id)


def test_installment_must_belong_to_plan(db: Session, original_plan: PaymentPlan, make_client):
    other_client = make_client()
    other_plan = create_payment_plan(db, other_client.client_id, ContractType.ORIGINAL, date(2025, 1, 1))
    (installment,) = add_installments(
        db,
        other_plan.plan_id,
        [NewInstallment(scheduled_amount=Decimal("10"), scheduled_date=date(2025, 1, 5))],
    )

    with pytest.raises(InstallmentNotFound):
        delete_installment(db, original_plan.plan_id, installment.installment_id)


def test_deleting_only_installment_zeroes_totals(db: Session, original_plan: PaymentPlan):
    (installment,) = add_installments(
        db,
        original_plan.plan_id,
        [NewInstallment(scheduled_amount=Decimal("1000"), scheduled_date=date(2025, 2, 1), paid_amount=Decimal("400"))],
    )
    db.refresh(original_plan)
    assert original_plan.total_pending_amount == Decimal("600")

    totals = delete_installment(db, original_plan.plan_id, installment.installment_id)

    assert totals.total_scheduled_amount == Decimal("0")
    assert totals.total_paid_amount == Decimal("0")
    assert totals.total_pending_amount == Decimal("0")
    _assert_totals_match_rows(db, original_plan.plan_id)


def test_recompute_is_idempotent_and_repairs_drift(db: Session, original_plan: PaymentPlan):
    add_installments(
        db,
        original_plan.plan_id,
        [NewInstallment(scheduled_amount=Decimal("250"), scheduled_date=date(2025, 2, 1), paid_amount=Decimal("100"))],
    )
    original_plan.total_scheduled_amount = Decimal("99999")
    db.commit()

    first = recompute_plan_totals(db, original_plan.plan_id)
    second = recompute_plan_totals(db, original_plan.plan_id)
    db.commit()

    assert first == second
    assert first.total_scheduled_amount == Decimal("250")
    assert first.total_pending_amount == Decimal("150")
    _assert_totals_match_rows(db, original_plan.plan_id)


def test_recompute_unknown_plan(db: Session):
    with pytest.raises(PlanNotFound):
        recompute_plan_totals(db, 31337)


def test_list_plans_original_first(db: Session, make_client):
    monitored = make_client()
    renewal = renew_contract(db, monitored.client_id, 6, renewal_date=date(2025, 10, 1))
    create_payment_plan(db, monitored.client_id, ContractType.RENEWAL, date(2025, 10, 1), renewal_id=renewal.renewal_id)
    create_payment_plan(db, monitored.client_id, ContractType.ORIGINAL, date(2025, 1, 1))

    plans = list_client_plans(db, monitored.client_id)

    assert [p.contract_type for p in plans] == ["original", "renewal"]

    with pytest.raises(ClientNotFound):
        list_client_plans(db, 5050)


def test_plans_summary_by_type(db: Session, make_client):
    monitored = make_client()
    original = create_payment_plan(db, monitored.client_id, ContractType.ORIGINAL, date(2025, 1, 1))
    renewal = renew_contract(db, monitored.client_id, 6, renewal_date=date(2025, 10, 1))
    renewal_plan = create_payment_plan(
        db, monitored.client_id, ContractType.RENEWAL, date(2025, 10, 1), renewal_id=renewal.renewal_id
    )
    add_installments(
        db,
        original.plan_id,
        [NewInstallment(scheduled_amount=Decimal("1000"), scheduled_date=date(2025, 2, 1), paid_amount=Decimal("1000"))],
    )
    add_installments(
        db,
        renewal_plan.plan_id,
        [NewInstallment(scheduled_amount=Decimal("600"), scheduled_date=date(2025, 11, 1), paid_amount=Decimal("200"))],
    )

    summary = plans_summary(db, monitored.client_id)

    assert summary.total_plans == 2
    assert summary.original.total_plans == 1
    assert summary.original.active_plans == 1
    assert summary.original.total_pending_amount == Decimal("0")
    assert summary.renewals.total_scheduled_amount == Decimal("600")
    assert summary.renewals.total_pending_amount == Decimal("400")
    assert summary.total_scheduled_amount == Decimal("1600")
    assert summary.total_paid_amount == Decimal("1200")
    assert summary.total_pending_amount == Decimal("400")


def test_plans_summary_without_plans(db: Session, make_client):
    monitored = make_client()

    summary = plans_summary(db, monitored.client_id)

    assert summary.original is None
    assert summary.renewals is None
    assert summary.total_plans == 0
    assert summary.total_pending_amount == Decimal("0")


def test_sync_renewal_plan_requires_amount_to_create(db: Session, make_client):
    monitored = make_client(payment_frequency="Bimestral")
    result = renew_contract(db, monitored.client_id, 6, renewal_date=date(2025, 10, 31))
    renewal = db.get(ContractRenewal, result.renewal_id)

    assert sync_renewal_plan(db, renewal) is None

    plan = sync_renewal_plan(db, renewal, renewal_amount=Decimal("900"))
    db.commit()

    assert plan.contract_start_date == date(2025, 10, 31)
    assert plan.contract_end_date == date(2026, 4, 30)
    assert plan.payment_frequency == "Bimestral"
    assert plan.contract_amount == Decimal("900")

    same = sync_renewal_plan(db, renewal, payment_frequency="Contado")
    db.commit()

    assert same.plan_id == plan.plan_id
    assert same.payment_frequency == "Contado"
    assert same.contract_amount == Decimal("900")


def test_sync_renewal_plan_realigns_dates_of_existing_plan(db: Session, make_client):
    monitored = make_client()
    result = renew_contract(db, monitored.client_id, 6, renewal_date=date(2025, 10, 31))
    renewal = db.get(ContractRenewal, result.renewal_id)
    plan = sync_renewal_plan(db, renewal, renewal_amount=Decimal("900"))
    db.commit()

    renewal.renewal_date = date(2025, 12, 1)
    renewal.renewal_duration = "4 meses"
    same = sync_renewal_plan(db, renewal)
    db.commit()

    assert same.plan_id == plan.plan_id
    assert same.contract_start_date == date(2025, 12, 1)
    assert same.contract_end_date == date(2026, 4, 1)
    assert same.contract_amount == Decimal("900")
