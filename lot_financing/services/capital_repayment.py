"""Capital repayment: early principal reduction and readjustment marking"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from lot_financing.domain.events import UPDATE_CREDIT_SCORE, DomainEvent, JobRequest, notify_staff, notify_user
from lot_financing.domain.exceptions import ValidationError
from lot_financing.domain.models import ContractStatus, LedgerEntryType
from lot_financing.domain.money import ZERO, to_money
from lot_financing.domain.reallocation import select_for_readjustment
from lot_financing.domain.state_machine import PaymentEvent, next_payment_status
from lot_financing.infrastructure.database.models import Contract, Payment
from lot_financing.infrastructure.database.repositories import ContractRepository, PaymentRepository
from lot_financing.infrastructure.database.session import transaction
from lot_financing.infrastructure.observability.metrics import record_capital_repayment
from lot_financing.services.contracts import apply_balance_change, close_if_settled
from lot_financing.services.payments import set_payment_status
from lot_financing.utils.date_utils import utcnow


@dataclass
class CapitalRepaymentResult:
    contract: Contract
    readjusted_payments: List[Payment] = field(default_factory=list)
    events: List[DomainEvent] = field(default_factory=list)


def apply_capital_repayment(
    db: Session,
    contract_id: uuid.UUID,
    amount: Decimal,
    now: Optional[datetime] = None,
) -> CapitalRepaymentResult:
    """
    Reduce the contract balance by a capital repayment.

    Flow:
    1. Validate 0 < amount <= balance on an approved contract
    2. Write a negative prepayment entry and lower the balance
    3. Mark the latest-due pending payments covering the remaining balance
       as readjustment
    4. Close the contract if nothing is left, request a credit score update

    Raises:
        ValidationError: amount out of bounds or contract not approved; nothing is changed
    """
    if amount is None or to_money(amount) <= ZERO:
        raise ValidationError("Capital repayment amount must be positive")
    amount = to_money(amount)
    now = now or utcnow()

    with transaction(db):
        contract = ContractRepository(db).get(contract_id, for_update=True)
        if ContractStatus(contract.status) is not ContractStatus.APPROVED:
            raise ValidationError(f"Cannot apply a capital repayment to a {contract.status} contract")
        if amount > to_money(contract.balance):
            raise ValidationError(
                f"Capital repayment {amount} exceeds the contract's pending balance {contract.balance}"
            )

        remaining = apply_balance_change(db, contract, -amount, "Capital repayment", LedgerEntryType.PREPAYMENT)

        pending = PaymentRepository(db).pending_for_contract(contract.id)
        readjusted = select_for_readjustment(pending, remaining)
        for payment in readjusted:
            new_status = next_payment_status(payment.status, PaymentEvent.MARK_READJUSTMENT)
            set_payment_status(payment, PaymentEvent.MARK_READJUSTMENT, new_status)

        closing_events = close_if_settled(contract, now)

    record_capital_repayment(amount, len(readjusted))
    logging.info(
        "Capital repayment applied",
        extra={
            "contract_id": str(contract.id),
            "amount": str(amount),
            "remaining_balance": str(remaining),
            "readjusted_payments": len(readjusted),
        },
    )

    borrower_id = contract.applicant_user_id
    events: List[DomainEvent] = [
        JobRequest(job=UPDATE_CREDIT_SCORE, payload={"user_id": str(borrower_id)}),
        notify_user(
            borrower_id,
            "Capital repayment processed",
            f"A capital repayment of {amount} was applied to contract #{contract.id}. "
            f"Remaining balance: {remaining}.",
            "capital_repayment",
        ),
        notify_staff(
            "Capital repayment processed",
            f"Contract #{contract.id} received a capital repayment of {amount}; "
            f"{len(readjusted)} payment(s) need readjustment.",
            "capital_repayment",
        ),
    ]
    return CapitalRepaymentResult(contract=contract, readjusted_payments=readjusted, events=events + closing_events)
