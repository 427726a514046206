"""Credit scoring engine - derives a borrower score from contract history"""

from datetime import date
from decimal import Decimal
from typing import List

from lot_financing.domain.models import ContractSnapshot, CreditFactors
from lot_financing.domain.money import round_half_up

PAYMENT_HISTORY_WEIGHT = 0.40
CREDIT_UTILIZATION_WEIGHT = 0.20
CREDIT_AGE_WEIGHT = 0.21
TOTAL_ACCOUNTS_WEIGHT = 0.19

DAYS_PER_YEAR = 365.0


def calculate_payment_history(contracts: List[ContractSnapshot]) -> int:
    """
    Percentage of payments made on or before their due date.

    Only payments with both dates set are counted; a borrower with none
    scores a perfect 100.
    """
    total_payments = 0
    on_time_payments = 0

    for contract in contracts:
        for payment in contract.payments:
            if payment.due_date is None or payment.payment_date is None:
                continue
            total_payments += 1
            if payment.due_date >= payment.payment_date:
                on_time_payments += 1

    if total_payments == 0:
        return 100

    return round_half_up(on_time_payments / total_payments * 100)


def calculate_credit_utilization(contracts: List[ContractSnapshot]) -> float:
    """Outstanding balance as a percentage of total financed amount"""
    total_credit = sum((c.amount for c in contracts), Decimal("0"))
    total_balance = sum((c.balance for c in contracts), Decimal("0"))

    if total_credit == 0:
        return 0.0

    return round(float(total_balance / total_credit * 100), 2)


def calculate_credit_age(contracts: List[ContractSnapshot], today: date) -> float:
    """Average contract age in years"""
    if not contracts:
        return 0.0

    total_age_days = sum((today - c.created_on).days for c in contracts)
    return round(total_age_days / len(contracts) / DAYS_PER_YEAR, 2)


def calculate_total_accounts(contracts: List[ContractSnapshot]) -> int:
    # Raw count, deliberately not normalized to 0-100
    return len(contracts)


def analyze_history(contracts: List[ContractSnapshot], today: date | None = None) -> CreditFactors:
    if today is None:
        today = date.today()

    return CreditFactors(
        payment_history=calculate_payment_history(contracts),
        credit_utilization=calculate_credit_utilization(contracts),
        credit_age=calculate_credit_age(contracts, today),
        total_accounts=calculate_total_accounts(contracts),
    )


def calculate_credit_score(factors: CreditFactors) -> int:
    """
    Weighted sum of the four factors, rounded half-up.

    Scoring weights:
    - 40%: payment history (0-100)
    - 20%: credit utilization (0-100)
    - 21%: credit age (years)
    - 19%: total accounts (count)

    A borrower with no contracts scores 40 (history defaults to 100).
    """
    score = (
        factors.payment_history * PAYMENT_HISTORY_WEIGHT
        + factors.credit_utilization * CREDIT_UTILIZATION_WEIGHT
        + factors.credit_age * CREDIT_AGE_WEIGHT
        + factors.total_accounts * TOTAL_ACCOUNTS_WEIGHT
    )
    return round_half_up(score)


def score_borrower(contracts: List[ContractSnapshot], today: date | None = None) -> int:
    """Main entry point: analyze contract history and compute the score"""
    return calculate_credit_score(analyze_history(contracts, today))
