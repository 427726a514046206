"""Contract and payment lifecycles as transition tables.

Each table maps (current state, event) to the next state. Anything not
listed is an invalid transition and raises InvalidTransitionError, so the
legal graph can be asserted directly in tests.
"""

from typing import Dict, Tuple, Type, TypeVar
from enum import Enum

from lot_financing.domain.exceptions import InvalidTransitionError
from lot_financing.domain.models import ContractStatus, PaymentStatus

S = TypeVar("S", bound=Enum)


class ContractEvent(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    CLOSE = "close"


class PaymentEvent(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    UNDO = "undo"
    MARK_READJUSTMENT = "mark_readjustment"


CONTRACT_TRANSITIONS: Dict[Tuple[ContractStatus, ContractEvent], ContractStatus] = {
    (ContractStatus.PENDING, ContractEvent.SUBMIT): ContractStatus.SUBMITTED,
    (ContractStatus.PENDING, ContractEvent.APPROVE): ContractStatus.APPROVED,
    (ContractStatus.SUBMITTED, ContractEvent.APPROVE): ContractStatus.APPROVED,
    (ContractStatus.REJECTED, ContractEvent.APPROVE): ContractStatus.APPROVED,
    (ContractStatus.PENDING, ContractEvent.REJECT): ContractStatus.REJECTED,
    (ContractStatus.SUBMITTED, ContractEvent.REJECT): ContractStatus.REJECTED,
    (ContractStatus.PENDING, ContractEvent.CANCEL): ContractStatus.CANCELLED,
    (ContractStatus.SUBMITTED, ContractEvent.CANCEL): ContractStatus.CANCELLED,
    (ContractStatus.REJECTED, ContractEvent.CANCEL): ContractStatus.CANCELLED,
    (ContractStatus.APPROVED, ContractEvent.CLOSE): ContractStatus.CLOSED,
}

PAYMENT_TRANSITIONS: Dict[Tuple[PaymentStatus, PaymentEvent], PaymentStatus] = {
    (PaymentStatus.PENDING, PaymentEvent.SUBMIT): PaymentStatus.SUBMITTED,
    (PaymentStatus.SUBMITTED, PaymentEvent.APPROVE): PaymentStatus.PAID,
    (PaymentStatus.SUBMITTED, PaymentEvent.REJECT): PaymentStatus.REJECTED,
    (PaymentStatus.PAID, PaymentEvent.UNDO): PaymentStatus.SUBMITTED,
    (PaymentStatus.PENDING, PaymentEvent.MARK_READJUSTMENT): PaymentStatus.READJUSTMENT,
}


def _next_state(
    table: Dict[Tuple[S, Enum], S],
    state_type: Type[S],
    entity: str,
    current: str,
    event: Enum,
) -> S:
    state = state_type(current)
    try:
        return table[(state, event)]
    except KeyError:
        raise InvalidTransitionError(entity, state.value, event.value) from None


def next_contract_status(current: str, event: ContractEvent) -> ContractStatus:
    """Resolve the contract status after `event`, or raise InvalidTransitionError"""
    return _next_state(CONTRACT_TRANSITIONS, ContractStatus, "contract", current, event)


def next_payment_status(current: str, event: PaymentEvent) -> PaymentStatus:
    """Resolve the payment status after `event`, or raise InvalidTransitionError"""
    return _next_state(PAYMENT_TRANSITIONS, PaymentStatus, "payment", current, event)


def contract_may(current: str, event: ContractEvent) -> bool:
    return (ContractStatus(current), event) in CONTRACT_TRANSITIONS


def payment_may(current: str, event: PaymentEvent) -> bool:
    return (PaymentStatus(current), event) in PAYMENT_TRANSITIONS
