"""Client payments ledger: recorded payments and the financial summary built from them"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from court_monitor.domain.exceptions import (
    ClientNotFound,
    InvalidInput,
    NoFieldsToUpdate,
    PaymentNotFound,
)
from court_monitor.domain.models import PaymentField, PaymentSummary, PaymentType, PaymentTypeTotal
from court_monitor.infrastructure.database.models import ClientPayment
from court_monitor.infrastructure.database.repositories import ClientRepository, PaymentRepository
from court_monitor.infrastructure.database.session import transaction
from court_monitor.utils.date_utils import is_valid_contract_date

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
_REQUIRED_PAYMENT_FIELDS = {PaymentField.PAYMENT_DATE, PaymentField.AMOUNT, PaymentField.PAYMENT_TYPE}


def _positive_amount(value) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidInput(f"Invalid payment amount: {value!r}") from e
    if not amount.is_finite() or amount <= 0:
        raise InvalidInput("Payment amount must be greater than 0")
    return amount


def _payment_date(value) -> date:
    if not isinstance(value, date) or not is_valid_contract_date(value):
        raise InvalidInput(f"Invalid payment date: {value!r}")
    return value


def _payment_type(value) -> PaymentType:
    try:
        return PaymentType(value)
    except ValueError as e:
        raise InvalidInput(f"Unknown payment type: {value}") from e


def _require_client(db: Session, client_id: int) -> None:
    if not ClientRepository(db).exists(client_id):
        raise ClientNotFound(client_id)


def record_payment(
    db: Session,
    client_id: int,
    payment_date: date,
    amount: Decimal,
    payment_type: PaymentType,
    observations: Optional[str] = None,
) -> ClientPayment:
    """
    Record money received from a client.

    Raises:
        ClientNotFound: unknown client
        InvalidInput: amount not positive, date outside the contract years, or unknown type
    """
    amount = _positive_amount(amount)
    payment_date = _payment_date(payment_date)
    payment_type = _payment_type(payment_type)

    with transaction(db):
        _require_client(db, client_id)
        payment = PaymentRepository(db).create(
            client_id=client_id,
            payment_date=payment_date,
            amount=amount,
            payment_type=payment_type,
            observations=observations or None,
        )

    logger.info(
        "Payment recorded",
        extra={"payment_id": payment.payment_id, "client_id": client_id, "amount": str(amount)},
    )
    return payment


def get_payment(db: Session, payment_id: int) -> ClientPayment:
    payment = PaymentRepository(db).get(payment_id)
    if payment is None:
        raise PaymentNotFound(payment_id)
    return payment


def list_client_payments(
    db: Session,
    client_id: int,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> List[ClientPayment]:
    _require_client(db, client_id)
    return PaymentRepository(db).list_for_client(client_id, limit=limit, offset=offset)


def _payment_changes(changes: Mapping[Any, Any]) -> Dict[PaymentField, Any]:
    resolved = {}
    for key, value in changes.items():
        try:
            field = PaymentField(key)
        except ValueError as e:
            raise InvalidInput(f"Unknown payment field: {key}") from e
        if field in _REQUIRED_PAYMENT_FIELDS and value is None:
            raise InvalidInput(f"Payment field {field.value} cannot be cleared")

        if field is PaymentField.AMOUNT:
            value = _positive_amount(value)
        elif field is PaymentField.PAYMENT_DATE:
            value = _payment_date(value)
        elif field is PaymentField.PAYMENT_TYPE:
            value = _payment_type(value).value
        elif field is PaymentField.OBSERVATIONS:
            value = value or None
        resolved[field] = value
    return resolved


def update_payment(db: Session, payment_id: int, changes: Mapping[Any, Any]) -> ClientPayment:
    """
    Apply field changes to a recorded payment. The owning client cannot change.

    Raises:
        PaymentNotFound: unknown payment
        NoFieldsToUpdate: no field supplied
        InvalidInput: a key outside PaymentField, or an invalid value
    """
    fields = _payment_changes(changes)
    if not fields:
        raise NoFieldsToUpdate("No payment fields to update")

    with transaction(db):
        payment = PaymentRepository(db).get(payment_id)
        if payment is None:
            raise PaymentNotFound(payment_id)

        for field, value in fields.items():
            setattr(payment, field.value, value)
        db.flush()

    logger.info("Payment updated", extra={"payment_id": payment_id, "fields": [f.value for f in fields]})
    return payment


def delete_payment(db: Session, payment_id: int) -> int:
    """Delete a recorded payment. Returns the owning client id."""
    payments = PaymentRepository(db)
    with transaction(db):
        payment = payments.get(payment_id)
        if payment is None:
            raise PaymentNotFound(payment_id)
        client_id = payment.client_id
        payments.delete(payment)

    logger.info("Payment deleted", extra={"payment_id": payment_id, "client_id": client_id})
    return client_id


def payment_summary(
    db: Session,
    client_id: int,
    total_contract_value: Optional[Decimal] = None,
) -> PaymentSummary:
    """
    Total paid, payment count and last payment date for a client, with every payment.

    When a contract value is given, total_owed is what remains of it after the
    payments, floored at zero.
    """
    _require_client(db, client_id)
    payments = PaymentRepository(db)
    total_paid, payment_count, last_payment_date = payments.totals(client_id)

    total_owed = Decimal("0")
    if total_contract_value:
        total_owed = max(Decimal("0"), total_contract_value - total_paid)

    return PaymentSummary(
        client_id=client_id,
        total_paid=total_paid,
        total_owed=total_owed,
        total_contract_value=total_contract_value,
        payment_count=payment_count,
        last_payment_date=last_payment_date,
        payments=payments.list_for_client(client_id),
    )


def payment_totals_by_type(db: Session, client_id: int) -> List[PaymentTypeTotal]:
    """Amount received per payment type, largest first"""
    _require_client(db, client_id)
    return [
        PaymentTypeTotal(payment_type=payment_type, total=total)
        for payment_type, total in PaymentRepository(db).totals_by_type(client_id)
    ]
