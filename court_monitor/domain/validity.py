"""Contract validity (vigencia) calculation - core business logic for renewals"""

import logging
from datetime import date
from typing import Iterable, List, Optional

from court_monitor.domain.exceptions import InvalidInput
from court_monitor.domain.models import (
    ContractTerms,
    ContractValidity,
    IndeterminateContract,
    IndeterminateReason,
    LastRenewal,
    RenewalEntry,
    RenewalHistoryItem,
    ValidContract,
)
from court_monitor.utils.date_utils import (
    add_months,
    days_remaining,
    extract_months,
    is_valid_contract_date,
)

logger = logging.getLogger(__name__)


def _duration_months(contract_duration) -> int:
    """Initial contract duration as an int, 0 when missing or malformed"""
    try:
        return int(contract_duration)
    except (TypeError, ValueError):
        return 0


def latest_renewal(renewals: Iterable[RenewalEntry]) -> Optional[RenewalEntry]:
    """Most recent renewal by renewal_date (not by insertion order)"""
    dated = [r for r in renewals if r.renewal_date is not None]
    return max(dated, key=lambda r: r.renewal_date, default=None)


def resolve_current_expiration(contract: ContractTerms, latest: Optional[RenewalEntry]) -> date:
    """
    Current expiration basis of a contract.

    With a renewal on file, the latest renewal's date plus that renewal's own
    months. Otherwise the placement date (or the contract date when the placement
    date is unusable) plus the initial contract duration.

    Raises:
        InvalidInput: no usable basis date or month count
    """
    if latest is not None:
        return add_months(latest.renewal_date, extract_months(latest.renewal_duration))

    if is_valid_contract_date(contract.placement_date):
        basis_date = contract.placement_date
    else:
        basis_date = contract.contract_date
    return add_months(basis_date, _duration_months(contract.contract_duration))


def calculate_validity(
    contract: ContractTerms,
    renewals: List[RenewalEntry],
    today: date | None = None,
) -> ContractValidity:
    """
    Determine expiration, contracted months and active status of a contract.

    months_contracted sums the initial duration and every renewal ever granted,
    while the expiration date chains only from the latest renewal and its own
    duration. The two figures are reported independently and need not agree.

    Malformed stored data yields an IndeterminateContract instead of raising, so
    a single bad legacy row cannot break listings over many clients.
    """
    duration = _duration_months(contract.contract_duration)
    placement_ok = is_valid_contract_date(contract.placement_date)
    contract_date_ok = is_valid_contract_date(contract.contract_date)

    if duration <= 0 or not (placement_ok or contract_date_ok):
        return IndeterminateContract(
            client_id=contract.client_id,
            reason=IndeterminateReason.INVALID_CONTRACT_DATA,
            placement_date=contract.placement_date if placement_ok else None,
            contract_date=contract.contract_date if contract_date_ok else None,
            contract_duration=duration if duration > 0 else None,
        )

    months_contracted = duration + sum(extract_months(r.renewal_duration) for r in renewals)

    latest = latest_renewal(renewals)
    try:
        expiration_date = resolve_current_expiration(contract, latest)
    except InvalidInput:
        return IndeterminateContract(
            client_id=contract.client_id,
            reason=IndeterminateReason.INVALID_RENEWAL_DATA,
            placement_date=contract.placement_date if placement_ok else None,
            contract_date=contract.contract_date if contract_date_ok else None,
            contract_duration=duration,
            months_contracted=months_contracted,
        )

    last_renewal = None
    if latest is not None:
        last_renewal = LastRenewal(
            renewal_date=latest.renewal_date,
            months_added=extract_months(latest.renewal_duration),
        )

    remaining = days_remaining(expiration_date, today=today)

    return ValidContract(
        client_id=contract.client_id,
        placement_date=contract.placement_date if placement_ok else None,
        contract_date=contract.contract_date if contract_date_ok else None,
        contract_duration=duration,
        expiration_date=expiration_date,
        months_contracted=months_contracted,
        days_remaining=remaining,
        is_active=remaining > 0,
        last_renewal=last_renewal,
    )


def build_renewal_history(renewals: Iterable[RenewalEntry]) -> List[RenewalHistoryItem]:
    """Renewals newest first, each with the expiration its own duration yields"""
    history = []
    for renewal in sorted(
        (r for r in renewals if r.renewal_date is not None and r.renewal_duration),
        key=lambda r: r.renewal_date,
        reverse=True,
    ):
        months = extract_months(renewal.renewal_duration)
        new_expiration = None
        if months > 0:
            try:
                new_expiration = add_months(renewal.renewal_date, months)
            except InvalidInput:
                logger.warning("Renewal expiration not computable", extra={"renewal_id": renewal.renewal_id})
        history.append(
            RenewalHistoryItem(
                renewal_id=renewal.renewal_id,
                renewal_date=renewal.renewal_date,
                months_added=months,
                renewal_document=renewal.renewal_document,
                new_expiration_date=new_expiration,
                created_at=renewal.created_at,
                updated_at=renewal.updated_at,
            )
        )
    return history
