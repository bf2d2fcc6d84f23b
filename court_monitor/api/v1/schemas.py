"""Pydantic schemas for API request/response validation"""

from dataclasses import asdict
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from court_monitor.domain.models import (
    ContractType,
    ContractValidity,
    IndeterminateContract,
    NewInstallment,
    PaymentFrequency,
    PaymentSummary,
    PaymentType,
    PlansSummary,
)

NOT_AVAILABLE = "N/A"


class LastRenewalSchema(BaseModel):
    renewal_date: date
    months_added: int


class ValidityResponse(BaseModel):
    """
    Response for GET /v1/clients/{client_id}/validity

    Fields that cannot be derived from the stored contract data are rendered
    as "N/A" and status is "indeterminate".
    """

    client_id: int
    status: Literal["valid", "indeterminate"]
    reason: Optional[str] = None
    placement_date: Union[date, str]
    contract_date: Union[date, str]
    contract_duration: Union[int, str]
    expiration_date: Union[date, str]
    months_contracted: Union[int, str]
    days_remaining: Union[int, str]
    is_active: bool
    last_renewal: Optional[LastRenewalSchema] = None

    @classmethod
    def from_validity(cls, validity: ContractValidity) -> "ValidityResponse":
        def shown(value):
            return NOT_AVAILABLE if value is None else value

        if isinstance(validity, IndeterminateContract):
            return cls(
                client_id=validity.client_id,
                status="indeterminate",
                reason=validity.reason.value,
                placement_date=shown(validity.placement_date),
                contract_date=shown(validity.contract_date),
                contract_duration=shown(validity.contract_duration),
                expiration_date=NOT_AVAILABLE,
                months_contracted=shown(validity.months_contracted),
                days_remaining=NOT_AVAILABLE,
                is_active=False,
            )

        last_renewal = None
        if validity.last_renewal is not None:
            last_renewal = LastRenewalSchema(**asdict(validity.last_renewal))

        return cls(
            client_id=validity.client_id,
            status="valid",
            placement_date=shown(validity.placement_date),
            contract_date=shown(validity.contract_date),
            contract_duration=validity.contract_duration,
            expiration_date=validity.expiration_date,
            months_contracted=validity.months_contracted,
            days_remaining=validity.days_remaining,
            is_active=validity.is_active,
            last_renewal=last_renewal,
        )


class RenewContractRequest(BaseModel):
    """Request body for POST /v1/clients/{client_id}/renewals"""

    months: int = Field(..., gt=0, le=1200, description="Months to extend the contract by")
    renewal_date: Optional[date] = Field(None, description="Defaults to today")
    document_ref: Optional[str] = Field(None, max_length=500)


class RenewalResultResponse(BaseModel):
    """Response for POST /v1/clients/{client_id}/renewals"""

    client_id: int
    renewal_id: int
    previous_expiration_date: date
    new_expiration_date: date
    days_remaining: int
    months_added: int
    renewal_date: date


class RenewalHistoryItemSchema(BaseModel):
    renewal_id: Optional[int]
    renewal_date: date
    months_added: int
    renewal_document: Optional[str] = None
    new_expiration_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RenewalHistoryResponse(BaseModel):
    client_id: int
    renewals: List[RenewalHistoryItemSchema]


class RenewalSchema(BaseModel):
    """Stored renewal record"""

    model_config = ConfigDict(from_attributes=True)

    renewal_id: int
    client_id: int
    renewal_date: date
    renewal_duration: Optional[str] = None
    renewal_document: Optional[str] = None
    renewal_amount: Optional[Decimal] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RenewalListItem(RenewalSchema):
    """Renewal with the owning client's identifying fields"""

    defendant_name: str
    contract_number: Optional[int] = None


class DeleteRenewalResponse(BaseModel):
    renewal_id: int
    client_id: int
    deleted: bool = True


class CreatePaymentPlanRequest(BaseModel):
    """Request body for POST /v1/payment-plans"""

    client_id: int
    contract_type: ContractType
    renewal_id: Optional[int] = None
    contract_start_date: date
    contract_end_date: Optional[date] = None
    contract_amount: Optional[Decimal] = Field(None, ge=0)
    payment_frequency: Optional[PaymentFrequency] = None


class PaymentPlanSchema(BaseModel):
    """Stored payment plan with its aggregate totals"""

    model_config = ConfigDict(from_attributes=True)

    plan_id: int
    client_id: int
    contract_id: str
    contract_type: ContractType
    renewal_id: Optional[int] = None
    contract_start_date: date
    contract_end_date: Optional[date] = None
    contract_amount: Optional[Decimal] = None
    payment_frequency: Optional[str] = None
    total_scheduled_amount: Decimal
    total_paid_amount: Decimal
    total_pending_amount: Decimal
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class InstallmentSchema(BaseModel):
    """Single installment in a payment plan"""

    model_config = ConfigDict(from_attributes=True)

    installment_id: int
    plan_id: int
    client_id: int
    payment_type: str
    scheduled_amount: Decimal
    scheduled_date: date
    paid_amount: Optional[Decimal] = None
    paid_date: Optional[date] = None
    payment_status: str
    description: Optional[str] = None
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    travel_expenses: Optional[Decimal] = None
    travel_expenses_date: Optional[date] = None
    other_expenses: Optional[Decimal] = None
    other_expenses_date: Optional[date] = None
    other_expenses_description: Optional[str] = None


class PlanDetailsResponse(PaymentPlanSchema):
    """Response for GET /v1/payment-plans/{plan_id}"""

    installments: List[InstallmentSchema]


class InstallmentCreate(BaseModel):
    payment_type: str = Field("Pago", max_length=50)
    scheduled_amount: Decimal = Field(..., ge=0)
    scheduled_date: date
    paid_amount: Decimal = Field(Decimal("0"), ge=0)
    paid_date: Optional[date] = None
    payment_status: str = Field("Pendiente", max_length=30)
    description: Optional[str] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    travel_expenses: Decimal = Field(Decimal("0"), ge=0)
    travel_expenses_date: Optional[date] = None
    other_expenses: Decimal = Field(Decimal("0"), ge=0)
    other_expenses_date: Optional[date] = None
    other_expenses_description: Optional[str] = None

    def to_domain(self) -> NewInstallment:
        return NewInstallment(**self.model_dump())


class AddInstallmentsRequest(BaseModel):
    """Request body for POST /v1/payment-plans/{plan_id}/installments"""

    installments: List[InstallmentCreate] = Field(..., min_length=1)


class InstallmentUpdate(BaseModel):
    """Request body for PUT /v1/payment-plans/{plan_id}/installments/{installment_id}"""

    model_config = ConfigDict(extra="forbid")

    payment_type: Optional[str] = Field(None, max_length=50)
    scheduled_amount: Optional[Decimal] = Field(None, ge=0)
    scheduled_date: Optional[date] = None
    paid_amount: Optional[Decimal] = Field(None, ge=0)
    paid_date: Optional[date] = None
    payment_status: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    travel_expenses: Optional[Decimal] = Field(None, ge=0)
    travel_expenses_date: Optional[date] = None
    other_expenses: Optional[Decimal] = Field(None, ge=0)
    other_expenses_date: Optional[date] = None
    other_expenses_description: Optional[str] = None


class PlanTotalsSchema(BaseModel):
    total_scheduled_amount: Decimal
    total_paid_amount: Decimal
    total_pending_amount: Decimal


class DeleteInstallmentResponse(BaseModel):
    plan_id: int
    installment_id: int
    totals: PlanTotalsSchema


class ContractTypeSummarySchema(BaseModel):
    contract_type: ContractType
    total_plans: int
    active_plans: int
    completed_plans: int
    total_scheduled_amount: Decimal
    total_paid_amount: Decimal
    total_pending_amount: Decimal


class PlansSummaryResponse(BaseModel):
    """Response for GET /v1/clients/{client_id}/payment-plans-summary"""

    client_id: int
    original: Optional[ContractTypeSummarySchema] = None
    renewals: Optional[ContractTypeSummarySchema] = None
    total_plans: int
    total_scheduled_amount: Decimal
    total_paid_amount: Decimal
    total_pending_amount: Decimal

    @classmethod
    def from_summary(cls, summary: PlansSummary) -> "PlansSummaryResponse":
        return cls(**asdict(summary))


class CreatePaymentRequest(BaseModel):
    """Request body for POST /v1/payments"""

    client_id: int
    payment_date: date
    amount: Decimal = Field(..., gt=0)
    payment_type: PaymentType
    observations: Optional[str] = None


class PaymentUpdate(BaseModel):
    """Request body for PUT /v1/payments/{payment_id}; the owning client is fixed"""

    model_config = ConfigDict(extra="forbid")

    payment_date: Optional[date] = None
    amount: Optional[Decimal] = Field(None, gt=0)
    payment_type: Optional[PaymentType] = None
    observations: Optional[str] = None


class PaymentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_id: int
    client_id: int
    payment_date: date
    amount: Decimal
    payment_type: str
    observations: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DeletePaymentResponse(BaseModel):
    payment_id: int
    client_id: int
    deleted: bool = True


class PaymentSummaryResponse(BaseModel):
    """Client financial position from the payments ledger"""

    client_id: int
    total_paid: Decimal
    total_owed: Decimal
    total_contract_value: Optional[Decimal] = None
    payment_count: int
    last_payment_date: Optional[date] = None
    payments: List[PaymentSchema]

    @classmethod
    def from_summary(cls, summary: PaymentSummary) -> "PaymentSummaryResponse":
        return cls(
            client_id=summary.client_id,
            total_paid=summary.total_paid,
            total_owed=summary.total_owed,
            total_contract_value=summary.total_contract_value,
            payment_count=summary.payment_count,
            last_payment_date=summary.last_payment_date,
            payments=[PaymentSchema.model_validate(p) for p in summary.payments],
        )


class PaymentTypeTotalSchema(BaseModel):
    payment_type: PaymentType
    total: Decimal


class PaymentsByTypeResponse(BaseModel):
    client_id: int
    totals: List[PaymentTypeTotalSchema]


class AuditLogEntrySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    audit_id: int
    client_id: int
    user_id: Optional[int] = None
    user_name: str
    action_type: str
    field_name: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None


class AuditLogResponse(BaseModel):
    client_id: int
    entries: List[AuditLogEntrySchema]
