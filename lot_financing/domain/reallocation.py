"""Selection of scheduled payments to recompute after a capital repayment"""

from decimal import Decimal
from typing import List, Protocol, Sequence, TypeVar
from datetime import date

from lot_financing.domain.money import ZERO


class ScheduledItem(Protocol):
    amount: Decimal
    due_date: date


T = TypeVar("T", bound=ScheduledItem)


def select_for_readjustment(pending: Sequence[T], remaining_balance: Decimal) -> List[T]:
    """
    Pick the latest-due pending payments whose amounts cover the remaining balance.

    Payments are walked by due date descending and marking stops as soon as
    the accumulated amount reaches `remaining_balance` (the balance after the
    repayment, not the repayment itself).

    Example: five pending payments of 5000, balance 25000, repayment 20000
        remaining 5000 -> only the last payment is selected
    """
    selected: List[T] = []
    covered = ZERO

    for payment in sorted(pending, key=lambda p: p.due_date, reverse=True):
        if covered >= remaining_balance:
            break
        selected.append(payment)
        covered += payment.amount

    return selected
