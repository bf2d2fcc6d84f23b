"""Domain models - pure Python dataclasses representing business entities"""

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Union


@dataclass
class ContractTerms:
    """Monitoring contract data held on the client record"""

    client_id: int
    placement_date: Optional[date]  # Device installation date
    contract_date: Optional[date]  # Contract signing date
    contract_duration: Optional[int]  # Initial length in months


@dataclass
class RenewalEntry:
    """One recorded contract extension"""

    renewal_id: Optional[int]
    renewal_date: Optional[date]
    renewal_duration: Optional[str]  # Display text, e.g. "6 meses"
    renewal_document: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class LastRenewal:
    """Most recent renewal by date and the months it added"""

    renewal_date: date
    months_added: int


class IndeterminateReason(str, enum.Enum):
    INVALID_CONTRACT_DATA = "invalid_contract_data"
    INVALID_RENEWAL_DATA = "invalid_renewal_data"


@dataclass
class ValidContract:
    """Validity snapshot for a contract whose dates and durations are usable"""

    client_id: int
    placement_date: Optional[date]
    contract_date: Optional[date]
    contract_duration: int
    expiration_date: date
    months_contracted: int
    days_remaining: int
    is_active: bool
    last_renewal: Optional[LastRenewal] = None


@dataclass
class IndeterminateContract:
    """Validity could not be derived from the stored data; never active"""

    client_id: int
    reason: IndeterminateReason
    placement_date: Optional[date] = None
    contract_date: Optional[date] = None
    contract_duration: Optional[int] = None
    months_contracted: Optional[int] = None
    is_active: bool = False


ContractValidity = Union[ValidContract, IndeterminateContract]


@dataclass
class RenewalResult:
    """Outcome of a committed contract renewal"""

    client_id: int
    renewal_id: int
    previous_expiration_date: date
    new_expiration_date: date
    days_remaining: int
    months_added: int
    renewal_date: date


@dataclass
class RenewalHistoryItem:
    """Renewal row with its own derived expiration"""

    renewal_id: Optional[int]
    renewal_date: date
    months_added: int
    renewal_document: Optional[str]
    new_expiration_date: Optional[date]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContractType(str, enum.Enum):
    ORIGINAL = "original"
    RENEWAL = "renewal"


class PaymentFrequency(str, enum.Enum):
    MENSUAL = "Mensual"
    BIMESTRAL = "Bimestral"
    TRIMESTRAL = "Trimestral"
    SEMESTRAL = "Semestral"
    CONTADO = "Contado"


class InstallmentField(str, enum.Enum):
    """Mutable installment columns; the only keys an update may carry"""

    PAYMENT_TYPE = "payment_type"
    SCHEDULED_AMOUNT = "scheduled_amount"
    SCHEDULED_DATE = "scheduled_date"
    PAID_AMOUNT = "paid_amount"
    PAID_DATE = "paid_date"
    PAYMENT_STATUS = "payment_status"
    DESCRIPTION = "description"
    PAYMENT_METHOD = "payment_method"
    REFERENCE_NUMBER = "reference_number"
    NOTES = "notes"
    TRAVEL_EXPENSES = "travel_expenses"
    TRAVEL_EXPENSES_DATE = "travel_expenses_date"
    OTHER_EXPENSES = "other_expenses"
    OTHER_EXPENSES_DATE = "other_expenses_date"
    OTHER_EXPENSES_DESCRIPTION = "other_expenses_description"


class RenewalField(str, enum.Enum):
    """Mutable renewal columns"""

    RENEWAL_DATE = "renewal_date"
    RENEWAL_DURATION = "renewal_duration"
    RENEWAL_AMOUNT = "renewal_amount"
    NOTES = "notes"


@dataclass
class NewInstallment:
    """Installment to append to a payment plan"""

    scheduled_amount: Decimal
    scheduled_date: date
    payment_type: str = "Pago"
    paid_amount: Decimal = Decimal("0")
    paid_date: Optional[date] = None
    payment_status: str = "Pendiente"
    description: Optional[str] = None
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    travel_expenses: Decimal = Decimal("0")
    travel_expenses_date: Optional[date] = None
    other_expenses: Decimal = Decimal("0")
    other_expenses_date: Optional[date] = None
    other_expenses_description: Optional[str] = None


@dataclass
class PlanTotals:
    """Aggregate amounts derived from a plan's installment rows"""

    total_scheduled_amount: Decimal
    total_paid_amount: Decimal
    total_pending_amount: Decimal


@dataclass
class ContractTypeSummary:
    """Plan aggregates for one contract type"""

    contract_type: ContractType
    total_plans: int
    active_plans: int
    completed_plans: int
    total_scheduled_amount: Decimal
    total_paid_amount: Decimal
    total_pending_amount: Decimal


@dataclass
class PlansSummary:
    """Per-type and overall payment plan aggregates for a client"""

    client_id: int
    original: Optional[ContractTypeSummary]
    renewals: Optional[ContractTypeSummary]
    total_plans: int = 0
    total_scheduled_amount: Decimal = Decimal("0")
    total_paid_amount: Decimal = Decimal("0")
    total_pending_amount: Decimal = Decimal("0")


class PaymentType(str, enum.Enum):
    """How a client payment was settled"""

    CONTADO = "contado"
    CREDITO = "credito"
    VIATICO = "viatico"
    OTRO = "otro"


class PaymentField(str, enum.Enum):
    """Mutable client payment columns"""

    PAYMENT_DATE = "payment_date"
    AMOUNT = "amount"
    PAYMENT_TYPE = "payment_type"
    OBSERVATIONS = "observations"


@dataclass
class PaymentSummary:
    """
    Financial position of a client from the payments ledger.

    total_owed is only meaningful when a contract value is supplied; without one
    it stays at zero.
    """

    client_id: int
    total_paid: Decimal = Decimal("0")
    total_owed: Decimal = Decimal("0")
    total_contract_value: Optional[Decimal] = None
    payment_count: int = 0
    last_payment_date: Optional[date] = None
    payments: List[Any] = field(default_factory=list)


@dataclass
class PaymentTypeTotal:
    payment_type: PaymentType
    total: Decimal


@dataclass
class AuditEntry:
    """Client change to record in the audit trail"""

    client_id: int
    action_type: str
    user_id: Optional[int] = None
    user_name: str = "system"
    field_name: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
