"""Payment schedule generation for approved contracts"""

from datetime import date, timedelta
from decimal import Decimal
from typing import List

from lot_financing.domain.exceptions import ValidationError
from lot_financing.domain.models import FinancingType, PaymentType, ScheduledPayment
from lot_financing.domain.money import ZERO, to_money
from lot_financing.utils.date_utils import add_months

RESERVATION_DUE_DAYS = 15


def split_installments(
    total: Decimal,
    count: int,
    absorb_remainder: bool = False,
) -> List[Decimal]:
    """
    Split `total` into `count` installments rounded to cents.

    By default every installment carries the same rounded amount. The
    sub-cent residual stays on the balance until the last payment is
    approved, which writes it off:
        40000 / 12 -> 12 x 3333.33 (0.04 settled with the last payment)

    With absorb_remainder the last installment takes the residual instead:
        40000 / 12 -> 11 x 3333.33 + 3333.37
    """
    if count <= 0:
        raise ValidationError("Installment count must be greater than zero")

    base_amount = to_money(total / count)
    amounts = [base_amount] * count

    if absorb_remainder:
        remainder = to_money(total) - base_amount * count
        amounts[-1] = base_amount + remainder

    return amounts


def generate_direct_schedule(
    amount: Decimal,
    reserve_amount: Decimal,
    down_payment: Decimal,
    payment_term: int,
    contract_date: date,
    project_name: str = "",
    reservation_due_days: int = RESERVATION_DUE_DAYS,
    absorb_remainder: bool = False,
) -> List[ScheduledPayment]:
    """
    Reservation, down payment and monthly installments for direct financing.

    Dates:
    - reservation: contract_date + 15 days
    - down payment: reservation due + 1 month
    - installment i (1-based): down payment due + i months

    Example:
        contract 2024-01-15 -> reservation 2024-01-30, down payment
        2024-02-29, first installment 2024-03-29
    """
    prefix = _description_prefix(project_name)
    schedule: List[ScheduledPayment] = []

    reservation_due = contract_date + timedelta(days=reservation_due_days)
    if reserve_amount > ZERO:
        schedule.append(
            ScheduledPayment(PaymentType.RESERVATION, f"{prefix}Reservation", reservation_due, to_money(reserve_amount))
        )

    down_payment_due = add_months(reservation_due, 1)
    if down_payment > ZERO:
        schedule.append(
            ScheduledPayment(PaymentType.DOWN_PAYMENT, f"{prefix}Down payment", down_payment_due, to_money(down_payment))
        )

    financed = amount - reserve_amount - down_payment
    if financed > ZERO:
        for i, installment in enumerate(split_installments(financed, payment_term, absorb_remainder)):
            schedule.append(
                ScheduledPayment(
                    PaymentType.INSTALLMENT,
                    f"{prefix}Installment {i + 1}",
                    add_months(down_payment_due, i + 1),
                    installment,
                )
            )

    return schedule


def generate_single_payment_schedule(
    amount: Decimal,
    reserve_amount: Decimal,
    today: date,
    project_name: str = "",
    reservation_due_days: int = RESERVATION_DUE_DAYS,
) -> List[ScheduledPayment]:
    """Reservation plus one lump payment a month later, for bank and cash financing"""
    prefix = _description_prefix(project_name)
    schedule: List[ScheduledPayment] = []

    reservation_due = today + timedelta(days=reservation_due_days)
    if reserve_amount > ZERO:
        schedule.append(
            ScheduledPayment(PaymentType.RESERVATION, f"{prefix}Reservation", reservation_due, to_money(reserve_amount))
        )

    remaining = amount - reserve_amount
    if remaining > ZERO:
        schedule.append(
            ScheduledPayment(PaymentType.FULL, f"{prefix}Full payment", add_months(reservation_due, 1), to_money(remaining))
        )

    return schedule


def generate_schedule(
    financing_type: str,
    amount: Decimal,
    reserve_amount: Decimal,
    down_payment: Decimal,
    payment_term: int,
    contract_date: date,
    today: date,
    project_name: str = "",
    reservation_due_days: int = RESERVATION_DUE_DAYS,
    absorb_remainder: bool = False,
) -> List[ScheduledPayment]:
    """Main entry point: pick the algorithm for the contract's financing type"""
    try:
        kind = FinancingType(financing_type)
    except ValueError:
        raise ValidationError(f"Unknown financing type: {financing_type}") from None

    if kind is FinancingType.DIRECT:
        return generate_direct_schedule(
            amount,
            reserve_amount,
            down_payment,
            payment_term,
            contract_date,
            project_name=project_name,
            reservation_due_days=reservation_due_days,
            absorb_remainder=absorb_remainder,
        )

    return generate_single_payment_schedule(
        amount,
        reserve_amount,
        today,
        project_name=project_name,
        reservation_due_days=reservation_due_days,
    )


def _description_prefix(project_name: str) -> str:
    return f"Project {project_name} - " if project_name else ""
