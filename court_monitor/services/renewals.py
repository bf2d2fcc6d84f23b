"""Contract renewals: validity lookup, renewal transaction and record management"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from court_monitor.domain.exceptions import (
    ClientNotFound,
    DuplicateRenewal,
    InvalidInput,
    NoFieldsToUpdate,
    RenewalNotFound,
)
from court_monitor.domain.models import (
    ContractTerms,
    ContractValidity,
    RenewalEntry,
    RenewalField,
    RenewalHistoryItem,
    RenewalResult,
)
from court_monitor.domain.validity import (
    build_renewal_history,
    calculate_validity,
    latest_renewal,
    resolve_current_expiration,
)
from court_monitor.infrastructure.clients.documents import (
    RENEWAL_DOCUMENTS_CONTAINER,
    DocumentStore,
    DocumentUpload,
    delete_quietly,
)
from court_monitor.infrastructure.database.models import Client, ContractRenewal
from court_monitor.infrastructure.database.repositories import (
    ClientRepository,
    PaymentPlanRepository,
    RenewalRepository,
)
from court_monitor.infrastructure.database.session import transaction
from court_monitor.services.payment_plans import sync_renewal_plan
from court_monitor.utils.date_utils import (
    add_months,
    days_remaining,
    format_duration,
    is_valid_contract_date,
)

logger = logging.getLogger(__name__)


def to_contract_terms(client: Client) -> ContractTerms:
    return ContractTerms(
        client_id=client.client_id,
        placement_date=client.placement_date,
        contract_date=client.contract_date,
        contract_duration=client.contract_duration,
    )


def to_renewal_entry(renewal: ContractRenewal) -> RenewalEntry:
    return RenewalEntry(
        renewal_id=renewal.renewal_id,
        renewal_date=renewal.renewal_date,
        renewal_duration=renewal.renewal_duration,
        renewal_document=renewal.renewal_document,
        created_at=renewal.created_at,
        updated_at=renewal.updated_at,
    )


def _as_date(value) -> date:
    """Renewal date as a date with a year in the accepted contract range"""
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        raise InvalidInput(f"Invalid renewal date: {value!r}")
    if not is_valid_contract_date(value):
        raise InvalidInput(f"Renewal date out of range: {value.isoformat()}")
    return value


def _load_client(db: Session, client_id: int) -> Client:
    client = ClientRepository(db).get(client_id)
    if client is None:
        raise ClientNotFound(client_id)
    return client


def get_contract_validity(db: Session, client_id: int, today: date | None = None) -> ContractValidity:
    """Validity snapshot of a client's contract from its stored terms and renewals"""
    client = _load_client(db, client_id)
    renewals = RenewalRepository(db).list_for_client(client_id)
    return calculate_validity(
        to_contract_terms(client),
        [to_renewal_entry(r) for r in renewals],
        today=today,
    )


def renew_contract(
    db: Session,
    client_id: int,
    months_new: int,
    renewal_date: date | None = None,
    document_ref: str | None = None,
    today: date | None = None,
) -> RenewalResult:
    """
    Extend a client's contract by months_new, atomically.

    The same-day duplicate check, the expiration lookup and the insert share one
    transaction. The unique (client_id, renewal_date) constraint backs the check
    against a concurrent insert of the same day.

    Raises:
        DuplicateRenewal: the client already renewed on renewal_date
        ClientNotFound: unknown client
        InvalidInput: months_new not positive, or no usable expiration basis
    """
    renewal_date = _as_date(renewal_date or today or date.today())
    renewals = RenewalRepository(db)

    try:
        with transaction(db):
            if renewals.exists_on_day(client_id, renewal_date):
                raise DuplicateRenewal(client_id, renewal_date)

            client = _load_client(db, client_id)
            entries = [to_renewal_entry(r) for r in renewals.list_for_client(client_id)]

            previous_expiration = resolve_current_expiration(to_contract_terms(client), latest_renewal(entries))
            new_expiration = add_months(previous_expiration, months_new)
            if not is_valid_contract_date(new_expiration):
                raise InvalidInput(f"New expiration out of range: {new_expiration.isoformat()}")

            renewal = renewals.create(
                client_id=client_id,
                renewal_date=renewal_date,
                renewal_duration=format_duration(months_new),
                renewal_document=document_ref,
            )
            renewal_id = renewal.renewal_id
    except IntegrityError as e:
        logger.warning("Concurrent same-day renewal rejected", extra={"client_id": client_id})
        raise DuplicateRenewal(client_id, renewal_date) from e

    return RenewalResult(
        client_id=client_id,
        renewal_id=renewal_id,
        previous_expiration_date=previous_expiration,
        new_expiration_date=new_expiration,
        days_remaining=days_remaining(new_expiration, today=today),
        months_added=months_new,
        renewal_date=renewal_date,
    )


def renewal_history(db: Session, client_id: int) -> List[RenewalHistoryItem]:
    if not ClientRepository(db).exists(client_id):
        raise ClientNotFound(client_id)
    renewals = RenewalRepository(db).list_for_client(client_id)
    return build_renewal_history(to_renewal_entry(r) for r in renewals)


def list_renewals(db: Session, client_id: int) -> List[ContractRenewal]:
    return RenewalRepository(db).list_for_client(client_id)


def list_all_renewals(db: Session) -> List[Tuple[ContractRenewal, str, Optional[int]]]:
    return RenewalRepository(db).list_all()


def get_renewal(db: Session, renewal_id: int) -> ContractRenewal:
    renewal = RenewalRepository(db).get(renewal_id)
    if renewal is None:
        raise RenewalNotFound(renewal_id)
    return renewal


def _document_folder(client_id: int) -> str:
    return f"client-{client_id}"


def create_renewal(
    db: Session,
    store: DocumentStore,
    client_id: int,
    renewal_date: date,
    renewal_duration: str | None = None,
    notes: str | None = None,
    document: DocumentUpload | None = None,
) -> ContractRenewal:
    """
    Record a renewal with an optional supporting document.

    The document is uploaded before the row is inserted; if the insert fails the
    uploaded blob is removed again on a best-effort basis.
    """
    renewal_date = _as_date(renewal_date)
    renewals = RenewalRepository(db)
    blob_name = None

    try:
        with transaction(db):
            if not ClientRepository(db).exists(client_id):
                raise ClientNotFound(client_id)
            if renewals.exists_on_day(client_id, renewal_date):
                raise DuplicateRenewal(client_id, renewal_date)

            if document is not None:
                blob_name = store.upload(
                    RENEWAL_DOCUMENTS_CONTAINER,
                    _document_folder(client_id),
                    document.filename,
                    document.data,
                    document.content_type,
                )

            renewal = renewals.create(
                client_id=client_id,
                renewal_date=renewal_date,
                renewal_duration=renewal_duration,
                renewal_document=blob_name,
                notes=notes,
            )
    except IntegrityError as e:
        delete_quietly(store, RENEWAL_DOCUMENTS_CONTAINER, blob_name)
        raise DuplicateRenewal(client_id, renewal_date) from e
    except Exception:
        delete_quietly(store, RENEWAL_DOCUMENTS_CONTAINER, blob_name)
        raise

    logger.info("Renewal recorded", extra={"client_id": client_id, "renewal_id": renewal.renewal_id})
    return renewal


def _renewal_changes(changes: Mapping[Any, Any]) -> Dict[RenewalField, Any]:
    resolved = {}
    for key, value in changes.items():
        try:
            resolved[RenewalField(key)] = value
        except ValueError as e:
            raise InvalidInput(f"Unknown renewal field: {key}") from e
    return resolved


def update_renewal(
    db: Session,
    store: DocumentStore,
    renewal_id: int,
    changes: Mapping[Any, Any],
    payment_frequency: str | None = None,
    document: DocumentUpload | None = None,
) -> ContractRenewal:
    """
    Update a renewal's fields, optionally replacing its document.

    A renewal amount or payment frequency is propagated to the renewal's payment
    plan in the same transaction, and a new date or duration realigns that plan's
    contract dates. A replaced document is deleted only after the update commits.

    Raises:
        RenewalNotFound: unknown renewal
        NoFieldsToUpdate: nothing to change
        DuplicateRenewal: the new date collides with another renewal of the client
    """
    fields = _renewal_changes(changes)
    if RenewalField.RENEWAL_DATE in fields:
        fields[RenewalField.RENEWAL_DATE] = _as_date(fields[RenewalField.RENEWAL_DATE])
    if not fields and document is None and payment_frequency is None:
        raise NoFieldsToUpdate("No renewal fields to update")

    renewals = RenewalRepository(db)
    client_id = None
    new_blob = None
    previous_blob = None

    try:
        with transaction(db):
            renewal = renewals.get(renewal_id)
            if renewal is None:
                raise RenewalNotFound(renewal_id)
            client_id = renewal.client_id

            new_date = fields.get(RenewalField.RENEWAL_DATE)
            if new_date is not None and renewals.exists_on_day(client_id, new_date, exclude_renewal_id=renewal_id):
                raise DuplicateRenewal(client_id, new_date)

            if document is not None:
                new_blob = store.upload(
                    RENEWAL_DOCUMENTS_CONTAINER,
                    _document_folder(client_id),
                    document.filename,
                    document.data,
                    document.content_type,
                )
                previous_blob = renewal.renewal_document
                renewal.renewal_document = new_blob

            for field, value in fields.items():
                setattr(renewal, field.value, value)
            db.flush()

            amount = fields.get(RenewalField.RENEWAL_AMOUNT)
            reschedules = RenewalField.RENEWAL_DATE in fields or RenewalField.RENEWAL_DURATION in fields
            if amount is not None or payment_frequency is not None or reschedules:
                sync_renewal_plan(
                    db,
                    renewal,
                    renewal_amount=Decimal(str(amount)) if amount is not None else None,
                    payment_frequency=payment_frequency,
                )
    except IntegrityError as e:
        delete_quietly(store, RENEWAL_DOCUMENTS_CONTAINER, new_blob)
        raise DuplicateRenewal(client_id, fields.get(RenewalField.RENEWAL_DATE)) from e
    except Exception:
        delete_quietly(store, RENEWAL_DOCUMENTS_CONTAINER, new_blob)
        raise

    if previous_blob and previous_blob != new_blob:
        delete_quietly(store, RENEWAL_DOCUMENTS_CONTAINER, previous_blob)

    logger.info("Renewal updated", extra={"renewal_id": renewal_id, "fields": [f.value for f in fields]})
    return renewal


def delete_renewal(db: Session, store: DocumentStore, renewal_id: int) -> int:
    """
    Delete a renewal and its payment plan, then its document. Returns the owning
    client id.

    The renewal's plan and installments are removed in the same transaction as
    the row. That delete commits first; a failed blob delete is logged and leaves
    the database change in place.
    """
    renewals = RenewalRepository(db)
    plans = PaymentPlanRepository(db)
    with transaction(db):
        renewal = renewals.get(renewal_id)
        if renewal is None:
            raise RenewalNotFound(renewal_id)
        client_id = renewal.client_id
        blob_name = renewal.renewal_document

        plan = plans.get_for_renewal(renewal_id)
        if plan is not None:
            plans.delete_plan(plan)
            logger.info("Renewal payment plan deleted", extra={"plan_id": plan.plan_id, "renewal_id": renewal_id})
        renewals.delete(renewal)

    delete_quietly(store, RENEWAL_DOCUMENTS_CONTAINER, blob_name)
    logger.info("Renewal deleted", extra={"renewal_id": renewal_id, "client_id": client_id})
    return client_id
