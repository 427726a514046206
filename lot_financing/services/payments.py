"""Payment lifecycle: receipt submission, approval, rejection and undo"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from lot_financing.domain.events import DomainEvent, notify_staff, notify_user
from lot_financing.domain.exceptions import ValidationError
from lot_financing.domain.models import ContractStatus, LedgerEntryType, PaymentStatus
from lot_financing.domain.money import CENT, ZERO, to_money
from lot_financing.domain.state_machine import PaymentEvent, next_payment_status
from lot_financing.infrastructure.database.models import Contract, Payment
from lot_financing.infrastructure.database.repositories import (
    ContractRepository,
    LedgerRepository,
    PaymentRepository,
)
from lot_financing.infrastructure.database.session import transaction
from lot_financing.infrastructure.observability.logging import log_transition
from lot_financing.infrastructure.observability.metrics import record_payment_transition
from lot_financing.services.contracts import apply_balance_change, close_if_settled
from lot_financing.utils.date_utils import utcnow


def submit_payment(
    db: Session,
    payment_id: uuid.UUID,
    receipt_url: Optional[str] = None,
    today: Optional[date] = None,
) -> List[DomainEvent]:
    """Submit a payment for review. A receipt must be attached, here or beforehand."""
    today = today or date.today()

    with transaction(db):
        payment = PaymentRepository(db).get(payment_id, for_update=True)
        new_status = next_payment_status(payment.status, PaymentEvent.SUBMIT)

        if receipt_url:
            payment.receipt_url = receipt_url
        if not payment.has_receipt:
            raise ValidationError("A receipt must be attached before submitting a payment")

        set_payment_status(payment, PaymentEvent.SUBMIT, new_status)
        payment.payment_date = today

    borrower_id = payment.contract.applicant_user_id
    return [
        notify_user(
            borrower_id,
            "Payment update",
            f"Payment #{payment.id} has been submitted for approval.",
            "payment_submitted",
        ),
        notify_staff(
            "Payment receipt uploaded",
            f"A receipt for payment #{payment.id} ({payment.description}) is waiting for review.",
            "payment_submitted",
        ),
    ]


def approve_payment(
    db: Session,
    payment_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> List[DomainEvent]:
    """
    Approve a submitted payment and apply it to the contract balance.

    paid_amount is the scheduled principal. Accrued late interest is
    collected alongside it as a separate negative interest entry and does
    not touch the balance.

    Equal installments can leave a few cents on the balance. When the last
    outstanding payment is approved that residual is written off with a
    payment entry so the contract closes at exactly zero.

    Raises:
        ValidationError: contract not approved, no pending balance, or the
            amount exceeds the balance
    """
    now = now or utcnow()

    with transaction(db):
        payment = PaymentRepository(db).get(payment_id, for_update=True)
        contract = ContractRepository(db).get(payment.contract_id, for_update=True)
        new_status = next_payment_status(payment.status, PaymentEvent.APPROVE)
        _require_approvable(payment, contract)

        amount = to_money(payment.amount)
        set_payment_status(payment, PaymentEvent.APPROVE, new_status)
        payment.approved_at = now
        payment.payment_date = payment.payment_date or now.date()
        payment.paid_amount = amount

        apply_balance_change(
            db, contract, -amount, f"Payment for {payment.description}", LedgerEntryType.PAYMENT, payment=payment
        )

        interest = to_money(payment.interest_amount or ZERO)
        if interest > ZERO:
            LedgerRepository(db).append(
                contract,
                -interest,
                f"Late interest collected for {payment.description}",
                LedgerEntryType.INTEREST,
                payment=payment,
            )

        _settle_rounding_residual(db, contract, payment)
        closing_events = close_if_settled(contract, now)

    events: List[DomainEvent] = [
        notify_user(
            contract.applicant_user_id,
            "Payment approved",
            f"Payment #{payment.id} of {payment.paid_amount} has been approved.",
            "payment_approved",
        ),
        notify_staff(
            "Payment approved",
            f"Payment #{payment.id} on contract #{contract.id} has been approved.",
            "payment_approved",
        ),
    ]
    return events + closing_events


def reject_payment(db: Session, payment_id: uuid.UUID, reason: str = "") -> List[DomainEvent]:
    with transaction(db):
        payment = PaymentRepository(db).get(payment_id, for_update=True)
        new_status = next_payment_status(payment.status, PaymentEvent.REJECT)
        set_payment_status(payment, PaymentEvent.REJECT, new_status)

    message = f"Payment #{payment.id} has been rejected."
    if reason:
        message = f"{message} Reason: {reason}"
    return [notify_user(payment.contract.applicant_user_id, "Payment update", message, "payment_rejected")]


def undo_payment(db: Session, payment_id: uuid.UUID) -> List[DomainEvent]:
    """
    Reverse an approved payment back to submitted.

    Writes positive reversal entries, restores the balance and clears the
    approval stamps. The contract must still be approved: a closed contract
    cannot be reopened.
    """
    with transaction(db):
        payment = PaymentRepository(db).get(payment_id, for_update=True)
        contract = ContractRepository(db).get(payment.contract_id, for_update=True)
        new_status = next_payment_status(payment.status, PaymentEvent.UNDO)
        if ContractStatus(contract.status) is not ContractStatus.APPROVED:
            raise ValidationError(f"Cannot undo a payment on a {contract.status} contract")

        paid_amount = to_money(payment.paid_amount or payment.amount)
        apply_balance_change(
            db,
            contract,
            paid_amount,
            f"Reversal of payment for {payment.description}",
            LedgerEntryType.PAYMENT,
            payment=payment,
        )

        interest = to_money(payment.interest_amount or ZERO)
        if interest > ZERO:
            LedgerRepository(db).append(
                contract,
                interest,
                f"Reversal of late interest for {payment.description}",
                LedgerEntryType.INTEREST,
                payment=payment,
            )

        set_payment_status(payment, PaymentEvent.UNDO, new_status)
        payment.paid_amount = None
        payment.approved_at = None
        payment.payment_date = None

    return [
        notify_user(
            contract.applicant_user_id,
            "Payment update",
            f"Approval of payment #{payment.id} has been reverted.",
            "payment_reverted",
        )
    ]


def set_payment_status(payment: Payment, event: PaymentEvent, new_status) -> None:
    old_status = payment.status
    payment.status = new_status.value
    log_transition("payment", payment.id, event.value, old_status, new_status.value)
    record_payment_transition(event.value)


def _require_approvable(payment: Payment, contract: Contract) -> None:
    if ContractStatus(contract.status) is not ContractStatus.APPROVED:
        raise ValidationError(f"Cannot approve payments on a {contract.status} contract")
    if payment.amount is None or to_money(payment.amount) <= ZERO:
        raise ValidationError("Payment amount is not specified")

    balance = to_money(contract.balance)
    if balance <= ZERO:
        raise ValidationError("Contract has no pending balance")
    if to_money(payment.amount) > balance:
        raise ValidationError(f"Payment amount {payment.amount} exceeds the contract's pending balance")


def _settle_rounding_residual(db: Session, contract: Contract, payment: Payment) -> None:
    balance = to_money(contract.balance)
    # Installment rounding leaves less than a cent per payment
    if balance <= ZERO or balance >= CENT * len(contract.payments):
        return
    if any(p.status != PaymentStatus.PAID.value for p in contract.payments):
        return

    apply_balance_change(
        db,
        contract,
        -balance,
        f"Rounding adjustment for {payment.description}",
        LedgerEntryType.PAYMENT,
        payment=payment,
    )
