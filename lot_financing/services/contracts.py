"""Contract lifecycle: drafting, submission, approval, rejection, cancellation and closing.

Every public operation runs in one database transaction and returns the
notifications/jobs it produced; the caller dispatches them after commit.
"""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from lot_financing.config import settings
from lot_financing.domain.events import DomainEvent, notify_staff, notify_user
from lot_financing.domain.exceptions import LedgerError, ValidationError
from lot_financing.domain.models import BALANCE_ENTRY_TYPES, ContractStatus, LedgerEntryType, LotStatus
from lot_financing.domain.money import ZERO, to_money
from lot_financing.domain.schedule import generate_schedule
from lot_financing.domain.schemas import ContractTerms
from lot_financing.domain.state_machine import ContractEvent, next_contract_status
from lot_financing.infrastructure.database.models import Contract, Lot, Payment, User
from lot_financing.infrastructure.database.repositories import (
    ContractRepository,
    LedgerRepository,
    PaymentRepository,
)
from lot_financing.infrastructure.database.session import transaction
from lot_financing.infrastructure.observability.logging import log_transition
from lot_financing.infrastructure.observability.metrics import record_contract_transition
from lot_financing.utils.date_utils import to_date, utcnow

SYSTEM_ACTOR = "system"


def create_contract(
    db: Session,
    lot: Lot,
    applicant: Optional[User],
    terms: ContractTerms,
    creator: Optional[User] = None,
    now: Optional[datetime] = None,
) -> Contract:
    """
    Draft a pending contract for a lot at the lot's effective price.

    The caller is expected to mark the lot reserved.

    Raises:
        ValidationError: lot already under an active contract, or reserve
            plus down payment larger than the price
    """
    with transaction(db):
        if ContractRepository(db).active_for_lot(lot.id) is not None:
            raise ValidationError(f"Lot {lot.name} already has an active contract")

        amount = to_money(lot.effective_price)
        if terms.reserve_amount + terms.down_payment > amount:
            raise ValidationError("Reserve amount plus down payment exceeds the lot price")

        contract = Contract(
            lot=lot,
            applicant=applicant,
            creator=creator,
            payment_term=terms.payment_term,
            financing_type=terms.financing_type.value,
            amount=amount,
            balance=amount,
            reserve_amount=to_money(terms.reserve_amount),
            down_payment=to_money(terms.down_payment),
            status=ContractStatus.PENDING.value,
            active=False,
            note=terms.note,
        )
        if now is not None:
            contract.created_at = now
        db.add(contract)
        db.flush()

    logging.info("Contract created", extra={"contract_id": str(contract.id), "lot_id": str(lot.id)})
    return contract


def submit_contract(db: Session, contract_id: uuid.UUID) -> List[DomainEvent]:
    with transaction(db):
        contract = ContractRepository(db).get(contract_id, for_update=True)
        new_status = next_contract_status(contract.status, ContractEvent.SUBMIT)
        _require_complete(contract)
        _set_status(contract, ContractEvent.SUBMIT, new_status)

    return [
        notify_staff(
            "Contract submitted",
            f"Contract #{contract.id} for {contract.lot.name} was submitted for approval.",
            "contract_submitted",
        )
    ]


def approve_contract(
    db: Session,
    contract_id: uuid.UUID,
    now: Optional[datetime] = None,
    today: Optional[date] = None,
    absorb_remainder: bool = False,
) -> List[DomainEvent]:
    """
    Approve a contract and generate its payment schedule.

    Flow:
    1. Check the transition and the submission guard
    2. Refuse if another contract is already active on the lot
    3. Stamp approved_at, activate the contract
    4. Create payments and their ledger entries
    """
    now = now or utcnow()
    today = today or now.date()

    with transaction(db):
        repo = ContractRepository(db)
        contract = repo.get(contract_id, for_update=True)
        new_status = next_contract_status(contract.status, ContractEvent.APPROVE)
        _require_complete(contract)

        if repo.active_for_lot(contract.lot_id, exclude_id=contract.id) is not None:
            raise ValidationError(f"Lot {contract.lot.name} already has an active contract")

        schedule = generate_schedule(
            financing_type=contract.financing_type,
            amount=to_money(contract.amount),
            reserve_amount=to_money(contract.reserve_amount),
            down_payment=to_money(contract.down_payment),
            payment_term=contract.payment_term,
            contract_date=to_date(contract.created_at or now),
            today=today,
            project_name=contract.lot.project.name if contract.lot.project else "",
            reservation_due_days=settings.reservation_due_days,
            absorb_remainder=absorb_remainder,
        )

        _set_status(contract, ContractEvent.APPROVE, new_status)
        contract.approved_at = now
        contract.active = True
        PaymentRepository(db).create_schedule(contract, schedule)

    lot_name = contract.lot.name
    events: List[DomainEvent] = [
        notify_user(
            contract.applicant_user_id,
            "Contract approved",
            f"Your contract for {lot_name} has been approved.",
            "contract_approved",
        )
    ]
    if contract.creator_id is not None:
        events.append(
            notify_user(
                contract.creator_id,
                "Contract approved",
                f"Contract #{contract.id} for {lot_name} has been approved.",
                "contract_approved",
            )
        )
    events.append(
        notify_staff("Contract approved", f"Contract #{contract.id} for {lot_name} has been approved.", "contract_approved")
    )
    return events


def reject_contract(db: Session, contract_id: uuid.UUID, reason: str) -> List[DomainEvent]:
    if not reason or not reason.strip():
        raise ValidationError("A rejection reason is required")

    with transaction(db):
        contract = ContractRepository(db).get(contract_id, for_update=True)
        new_status = next_contract_status(contract.status, ContractEvent.REJECT)
        _set_status(contract, ContractEvent.REJECT, new_status)
        contract.rejection_reason = reason

    return [
        notify_user(
            contract.applicant_user_id,
            "Contract rejected",
            f"Your contract for {contract.lot.name} has been rejected, detail: {reason}",
            "contract_rejected",
        )
    ]


def cancel_contract(
    db: Session,
    contract_id: uuid.UUID,
    actor: str = SYSTEM_ACTOR,
    now: Optional[datetime] = None,
) -> List[DomainEvent]:
    """
    Cancel a contract: deactivate it, release the lot and delete its payments
    and ledger entries. `actor` is recorded in the contract note.
    """
    now = now or utcnow()

    with transaction(db):
        contract = ContractRepository(db).get(contract_id, for_update=True)
        new_status = next_contract_status(contract.status, ContractEvent.CANCEL)

        _set_status(contract, ContractEvent.CANCEL, new_status)
        contract.active = False
        contract.lot.status = LotStatus.AVAILABLE.value
        contract.note = _append_note(contract.note, f"Contract cancelled on {now:%Y-%m-%d %H:%M} by {actor or SYSTEM_ACTOR}")

        # delete-orphan cascade removes the rows; entries go before the payments they reference
        contract.ledger_entries.clear()
        contract.payments.clear()

    lot_name = contract.lot.name
    return [
        notify_user(
            contract.applicant_user_id,
            "Contract cancelled",
            f"Your contract for {lot_name} has been cancelled, lot released.",
            "contract_cancelled",
        ),
        notify_staff(
            "Contract cancelled",
            f"Contract #{contract.id} for {lot_name} has been cancelled, lot released.",
            "contract_cancelled",
        ),
    ]


def close_contract(db: Session, contract_id: uuid.UUID, now: Optional[datetime] = None) -> List[DomainEvent]:
    """Close a settled contract. Closing an already closed or cancelled contract does nothing."""
    with transaction(db):
        contract = ContractRepository(db).get(contract_id, for_update=True)
        if ContractStatus(contract.status) in (ContractStatus.CLOSED, ContractStatus.CANCELLED):
            return []

        next_contract_status(contract.status, ContractEvent.CLOSE)
        if to_money(contract.balance) > ZERO:
            raise ValidationError(f"Contract still has a pending balance of {contract.balance}")

        events = close_if_settled(contract, now)

    return events


def apply_balance_change(
    db: Session,
    contract: Contract,
    amount: Decimal,
    description: str,
    entry_type: LedgerEntryType,
    payment: Optional[Payment] = None,
) -> Decimal:
    """
    Write a payment/prepayment ledger entry and move the cached balance by the same signed amount.

    Must run inside the caller's transaction. The cached balance is checked
    against the ledger afterwards; a mismatch raises LedgerError so the
    whole unit rolls back.
    """
    if LedgerEntryType(entry_type) not in BALANCE_ENTRY_TYPES:
        raise LedgerError(f"Entry type {entry_type} does not affect the balance")

    ledger = LedgerRepository(db)
    ledger.append(contract, amount, description, entry_type, payment=payment)
    contract.balance = to_money(contract.balance) + to_money(amount)

    reconciled = ledger.reconcile_balance(contract)
    if reconciled != contract.balance:
        raise LedgerError(
            f"Contract {contract.id} balance {contract.balance} does not match ledger balance {reconciled}"
        )
    return contract.balance


def close_if_settled(contract: Contract, now: Optional[datetime] = None) -> List[DomainEvent]:
    """Close an approved contract whose balance reached zero. Runs inside the caller's transaction."""
    if ContractStatus(contract.status) is not ContractStatus.APPROVED or to_money(contract.balance) > ZERO:
        return []

    _set_status(contract, ContractEvent.CLOSE, ContractStatus.CLOSED)
    contract.closed_at = now or utcnow()

    return [
        notify_user(
            contract.applicant_user_id,
            "Contract closed",
            f"Your contract #{contract.id} has been closed. Balance paid in full!",
            "contract_closed",
        ),
        notify_staff(
            "Contract closed",
            f"Contract #{contract.id} was closed automatically after its balance was settled.",
            "contract_closed",
        ),
    ]


def _require_complete(contract: Contract) -> None:
    missing = [
        name
        for name in ("payment_term", "financing_type", "reserve_amount", "down_payment", "applicant_user_id")
        if getattr(contract, name) is None
    ]
    if missing:
        raise ValidationError(f"Contract is missing required fields: {', '.join(missing)}")


def _set_status(contract: Contract, event: ContractEvent, new_status: ContractStatus) -> None:
    old_status = contract.status
    contract.status = new_status.value
    log_transition("contract", contract.id, event.value, old_status, new_status.value)
    record_contract_transition(event.value)


def _append_note(note: Optional[str], line: str) -> str:
    return f"{note}\n{line}" if note else line
