"""Data access layer for contract entities"""

from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy import case, func
from sqlalchemy.orm import Session
from court_monitor.infrastructure.database.models import (
    Client,
    ContractRenewal,
    PaymentPlan,
    PlanInstallment,
    ClientAuditLog,
    ClientPayment,
)
from court_monitor.domain.models import AuditEntry, ContractType, NewInstallment, PaymentType


def _money(value) -> Decimal:
    """Normalize driver aggregate output (Decimal, float or None) to Decimal"""
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


class ClientRepository:
    """Repository for monitored clients"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, client_id: int) -> Optional[Client]:
        return self.db.query(Client).filter(Client.client_id == client_id).first()

    def exists(self, client_id: int) -> bool:
        return self.db.query(Client.client_id).filter(Client.client_id == client_id).first() is not None


class RenewalRepository:
    """Repository for contract renewals"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, renewal_id: int) -> Optional[ContractRenewal]:
        return self.db.query(ContractRenewal).filter(ContractRenewal.renewal_id == renewal_id).first()

    def get_for_client(self, renewal_id: int, client_id: int) -> Optional[ContractRenewal]:
        return (
            self.db.query(ContractRenewal)
            .filter(ContractRenewal.renewal_id == renewal_id, ContractRenewal.client_id == client_id)
            .first()
        )

    def list_for_client(self, client_id: int) -> List[ContractRenewal]:
        """All renewals of a client, most recent renewal date first"""
        return (
            self.db.query(ContractRenewal)
            .filter(ContractRenewal.client_id == client_id)
            .order_by(ContractRenewal.renewal_date.desc(), ContractRenewal.renewal_id.desc())
            .all()
        )

    def list_all(self) -> List[Tuple[ContractRenewal, str, Optional[int]]]:
        """Every renewal joined with the owning client's name and contract number"""
        return (
            self.db.query(ContractRenewal, Client.defendant_name, Client.contract_number)
            .join(Client, ContractRenewal.client_id == Client.client_id)
            .order_by(ContractRenewal.renewal_date.desc(), ContractRenewal.renewal_id.desc())
            .all()
        )

    def exists_on_day(self, client_id: int, renewal_date: date, exclude_renewal_id: int | None = None) -> bool:
        """Whether the client already has a renewal dated on this calendar day"""
        query = self.db.query(func.count(ContractRenewal.renewal_id)).filter(
            ContractRenewal.client_id == client_id,
            ContractRenewal.renewal_date == renewal_date,
        )
        if exclude_renewal_id is not None:
            query = query.filter(ContractRenewal.renewal_id != exclude_renewal_id)
        return query.scalar() > 0

    def create(
        self,
        client_id: int,
        renewal_date: date,
        renewal_duration: Optional[str],
        renewal_document: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ContractRenewal:
        """Insert renewal row (flushed, not committed)"""
        renewal = ContractRenewal(
            client_id=client_id,
            renewal_date=renewal_date,
            renewal_duration=renewal_duration,
            renewal_document=renewal_document,
            notes=notes,
        )
        self.db.add(renewal)
        self.db.flush()  # Get ID and surface constraint violations without committing
        return renewal

    def delete(self, renewal: ContractRenewal) -> None:
        self.db.delete(renewal)
        self.db.flush()


class PaymentPlanRepository:
    """Repository for payment plans and their installments"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, plan_id: int) -> Optional[PaymentPlan]:
        return self.db.query(PaymentPlan).filter(PaymentPlan.plan_id == plan_id).first()

    def get_for_renewal(self, renewal_id: int) -> Optional[PaymentPlan]:
        return (
            self.db.query(PaymentPlan)
            .filter(
                PaymentPlan.renewal_id == renewal_id,
                PaymentPlan.contract_type == ContractType.RENEWAL.value,
            )
            .first()
        )

    def list_for_client(self, client_id: int) -> List[PaymentPlan]:
        """Client plans: the original contract first, then renewals by start date"""
        return (
            self.db.query(PaymentPlan)
            .filter(PaymentPlan.client_id == client_id)
            .order_by(
                case((PaymentPlan.contract_type == ContractType.ORIGINAL.value, 0), else_=1),
                PaymentPlan.contract_start_date.desc(),
            )
            .all()
        )

    def create_plan(
        self,
        client_id: int,
        contract_id: str,
        contract_type: ContractType,
        renewal_id: Optional[int],
        contract_start_date: date,
        contract_end_date: Optional[date],
        contract_amount: Optional[Decimal],
        payment_frequency: Optional[str],
    ) -> PaymentPlan:
        """Create plan with all totals at zero"""
        plan = PaymentPlan(
            client_id=client_id,
            contract_id=contract_id,
            contract_type=contract_type.value,
            renewal_id=renewal_id,
            contract_start_date=contract_start_date,
            contract_end_date=contract_end_date,
            contract_amount=contract_amount,
            payment_frequency=payment_frequency,
            total_scheduled_amount=Decimal("0"),
            total_paid_amount=Decimal("0"),
            total_pending_amount=Decimal("0"),
            status="Activo",
        )
        self.db.add(plan)
        self.db.flush()
        return plan

    def delete_plan(self, plan: PaymentPlan) -> None:
        """Delete a plan; its installments go with it through the ORM cascade"""
        self.db.delete(plan)
        self.db.flush()

    def get_installment(self, plan_id: int, installment_id: int) -> Optional[PlanInstallment]:
        return (
            self.db.query(PlanInstallment)
            .filter(PlanInstallment.installment_id == installment_id, PlanInstallment.plan_id == plan_id)
            .first()
        )

    def list_installments(self, plan_id: int) -> List[PlanInstallment]:
        return (
            self.db.query(PlanInstallment)
            .filter(PlanInstallment.plan_id == plan_id)
            .order_by(
                PlanInstallment.scheduled_date.asc(),
                PlanInstallment.created_at.asc(),
                PlanInstallment.installment_id.asc(),
            )
            .all()
        )

    def add_installment(self, plan: PaymentPlan, new: NewInstallment) -> PlanInstallment:
        installment = PlanInstallment(
            plan_id=plan.plan_id,
            client_id=plan.client_id,
            payment_type=new.payment_type,
            scheduled_amount=new.scheduled_amount,
            scheduled_date=new.scheduled_date,
            paid_amount=new.paid_amount,
            paid_date=new.paid_date,
            payment_status=new.payment_status,
            description=new.description,
            payment_method=new.payment_method,
            reference_number=new.reference_number,
            notes=new.notes,
            travel_expenses=new.travel_expenses,
            travel_expenses_date=new.travel_expenses_date,
            other_expenses=new.other_expenses,
            other_expenses_date=new.other_expenses_date,
            other_expenses_description=new.other_expenses_description,
        )
        self.db.add(installment)
        return installment

    def delete_installment(self, installment: PlanInstallment) -> None:
        self.db.delete(installment)

    def sum_installments(self, plan_id: int) -> Tuple[Decimal, Decimal]:
        """Live (scheduled, paid) sums over the plan's installment rows"""
        scheduled, paid = (
            self.db.query(
                func.coalesce(func.sum(PlanInstallment.scheduled_amount), 0),
                func.coalesce(func.sum(PlanInstallment.paid_amount), 0),
            )
            .filter(PlanInstallment.plan_id == plan_id)
            .one()
        )
        return _money(scheduled), _money(paid)

    def summarize_by_type(self, client_id: int) -> List[dict]:
        """Plan counts and summed totals per contract type for a client"""
        rows = (
            self.db.query(
                PaymentPlan.contract_type,
                func.count(PaymentPlan.plan_id),
                func.sum(case((PaymentPlan.status == "Activo", 1), else_=0)),
                func.sum(case((PaymentPlan.status == "Completado", 1), else_=0)),
                func.sum(PaymentPlan.total_scheduled_amount),
                func.sum(PaymentPlan.total_paid_amount),
                func.sum(PaymentPlan.total_pending_amount),
            )
            .filter(PaymentPlan.client_id == client_id)
            .group_by(PaymentPlan.contract_type)
            .all()
        )
        return [
            {
                "contract_type": ContractType(row[0]),
                "total_plans": int(row[1] or 0),
                "active_plans": int(row[2] or 0),
                "completed_plans": int(row[3] or 0),
                "total_scheduled_amount": _money(row[4]),
                "total_paid_amount": _money(row[5]),
                "total_pending_amount": _money(row[6]),
            }
            for row in rows
        ]


class PaymentRepository:
    """Repository for the client payments ledger"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, payment_id: int) -> Optional[ClientPayment]:
        return self.db.query(ClientPayment).filter(ClientPayment.payment_id == payment_id).first()

    def list_for_client(self, client_id: int, limit: Optional[int] = None, offset: int = 0) -> List[ClientPayment]:
        """Client payments, most recent payment date first"""
        query = (
            self.db.query(ClientPayment)
            .filter(ClientPayment.client_id == client_id)
            .order_by(ClientPayment.payment_date.desc(), ClientPayment.payment_id.desc())
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def create(
        self,
        client_id: int,
        payment_date: date,
        amount: Decimal,
        payment_type: PaymentType,
        observations: Optional[str] = None,
    ) -> ClientPayment:
        payment = ClientPayment(
            client_id=client_id,
            payment_date=payment_date,
            amount=amount,
            payment_type=payment_type.value,
            observations=observations,
        )
        self.db.add(payment)
        self.db.flush()
        return payment

    def delete(self, payment: ClientPayment) -> None:
        self.db.delete(payment)
        self.db.flush()

    def totals(self, client_id: int) -> Tuple[Decimal, int, Optional[date]]:
        """(total paid, payment count, last payment date) over a client's payments"""
        total, count, last_date = (
            self.db.query(
                func.coalesce(func.sum(ClientPayment.amount), 0),
                func.count(ClientPayment.payment_id),
                func.max(ClientPayment.payment_date),
            )
            .filter(ClientPayment.client_id == client_id)
            .one()
        )
        return _money(total), int(count or 0), last_date

    def totals_by_type(self, client_id: int) -> List[Tuple[PaymentType, Decimal]]:
        """Summed amount per payment type, largest first"""
        total = func.sum(ClientPayment.amount)
        rows = (
            self.db.query(ClientPayment.payment_type, total)
            .filter(ClientPayment.client_id == client_id)
            .group_by(ClientPayment.payment_type)
            .order_by(total.desc())
            .all()
        )
        return [(PaymentType(row[0]), _money(row[1])) for row in rows]


class AuditLogRepository:
    """Repository for the client audit trail"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, entry: AuditEntry) -> ClientAuditLog:
        record = ClientAuditLog(
            client_id=entry.client_id,
            user_id=entry.user_id,
            user_name=entry.user_name,
            action_type=entry.action_type,
            field_name=entry.field_name,
            old_value=entry.old_value,
            new_value=entry.new_value,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
        )
        self.db.add(record)
        return record

    def list_for_client(self, client_id: int, limit: int = 200) -> List[ClientAuditLog]:
        return (
            self.db.query(ClientAuditLog)
            .filter(ClientAuditLog.client_id == client_id)
            .order_by(ClientAuditLog.created_at.desc(), ClientAuditLog.audit_id.desc())
            .limit(limit)
            .all()
        )
