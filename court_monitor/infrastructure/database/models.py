"""SQLAlchemy ORM models for clients, renewals, payment plans, payments and the audit trail"""

from sqlalchemy import (
    Column,
    String,
    Numeric,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(12, 2)


class Client(Base):
    """Monitored defendant under an electronic-monitoring contract"""

    __tablename__ = "clients"

    client_id = Column(Integer, primary_key=True)
    defendant_name = Column(String(200), nullable=False)
    contract_number = Column(Integer, nullable=True, unique=True)
    placement_date = Column(Date, nullable=True)
    contract_date = Column(Date, nullable=True)
    contract_duration = Column(Integer, nullable=True)  # months
    payment_frequency = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    renewals = relationship("ContractRenewal", back_populates="client", cascade="all, delete-orphan")
    payment_plans = relationship("PaymentPlan", back_populates="client", cascade="all, delete-orphan")
    payments = relationship("ClientPayment", back_populates="client", cascade="all, delete-orphan")


class ContractRenewal(Base):
    """Dated extension of a client's contract"""

    __tablename__ = "contract_renewals"
    __table_args__ = (
        UniqueConstraint("client_id", "renewal_date", name="uq_contract_renewals_client_day"),
    )

    renewal_id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.client_id", ondelete="CASCADE"), nullable=False, index=True)
    renewal_date = Column(Date, nullable=False)
    renewal_duration = Column(String(50), nullable=True)  # display text, e.g. "6 meses"
    renewal_document = Column(String(500), nullable=True)  # blob name in the renewals container
    renewal_amount = Column(MONEY, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="renewals")


class PaymentPlan(Base):
    """Payment plan for one contract instance (the original or a single renewal)"""

    __tablename__ = "contract_payment_plans"

    plan_id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.client_id", ondelete="CASCADE"), nullable=False, index=True)
    contract_id = Column(String(60), nullable=False)
    contract_type = Column(String(20), nullable=False)  # original | renewal
    renewal_id = Column(Integer, ForeignKey("contract_renewals.renewal_id", ondelete="SET NULL"), nullable=True)
    contract_start_date = Column(Date, nullable=False)
    contract_end_date = Column(Date, nullable=True)
    contract_amount = Column(MONEY, nullable=True)
    payment_frequency = Column(String(20), nullable=True)
    total_scheduled_amount = Column(MONEY, nullable=False, default=0)
    total_paid_amount = Column(MONEY, nullable=False, default=0)
    total_pending_amount = Column(MONEY, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="Activo")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="payment_plans")
    installments = relationship(
        "PlanInstallment",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="PlanInstallment.scheduled_date",
    )


class PlanInstallment(Base):
    """Single scheduled (and possibly paid) payment within a plan"""

    __tablename__ = "contract_plan_payments"
    __table_args__ = (
        Index("ix_contract_plan_payments_plan_id", "plan_id"),
    )

    installment_id = Column(Integer, primary_key=True)
    plan_id = Column(Integer, ForeignKey("contract_payment_plans.plan_id", ondelete="CASCADE"), nullable=False)
    client_id = Column(Integer, ForeignKey("clients.client_id", ondelete="CASCADE"), nullable=False)
    payment_type = Column(String(50), nullable=False, default="Pago")
    scheduled_amount = Column(MONEY, nullable=False)
    scheduled_date = Column(Date, nullable=False)
    paid_amount = Column(MONEY, nullable=True, default=0)
    paid_date = Column(Date, nullable=True)
    payment_status = Column(String(30), nullable=False, default="Pendiente")
    description = Column(Text, nullable=True)
    payment_method = Column(String(50), nullable=True)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    travel_expenses = Column(MONEY, nullable=True, default=0)
    travel_expenses_date = Column(Date, nullable=True)
    other_expenses = Column(MONEY, nullable=True, default=0)
    other_expenses_date = Column(Date, nullable=True)
    other_expenses_description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    plan = relationship("PaymentPlan", back_populates="installments")


class ClientPayment(Base):
    """Money received from a client, independent of any payment plan"""

    __tablename__ = "client_payments"

    payment_id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.client_id", ondelete="CASCADE"), nullable=False, index=True)
    payment_date = Column(Date, nullable=False)
    amount = Column(MONEY, nullable=False)
    payment_type = Column(String(20), nullable=False)  # contado | credito | viatico | otro
    observations = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="payments")


class ClientAuditLog(Base):
    """Append-only trail of changes made to a client's contract data"""

    __tablename__ = "client_audit_log"

    audit_id = Column(Integer, primary_key=True)
    client_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=True)
    user_name = Column(String(120), nullable=False)
    action_type = Column(String(30), nullable=False)
    field_name = Column(String(100), nullable=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
