"""Unit tests for credit scoring logic"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from lot_financing.domain.models import ContractSnapshot, CreditFactors, PaymentRecord
from lot_financing.domain.scoring import (
    analyze_history,
    calculate_credit_age,
    calculate_credit_score,
    calculate_credit_utilization,
    calculate_payment_history,
    calculate_total_accounts,
    score_borrower,
)

TODAY = date(2024, 1, 1)


def _contract(amount="100000", balance="50000", created_on=date(2023, 1, 1), payments=None) -> ContractSnapshot:
    return ContractSnapshot(
        amount=Decimal(amount),
        balance=Decimal(balance),
        created_on=created_on,
        payments=payments or [],
    )


def test_no_history_baseline():
    """A borrower without contracts only gets the payment history weight: 100 x 0.40"""
    assert score_borrower([], TODAY) == 40


def test_payment_history_on_time_percentage():
    due = date(2023, 6, 1)
    payments = [
        PaymentRecord(due_date=due, payment_date=due),  # same day counts as on time
        PaymentRecord(due_date=due, payment_date=due - timedelta(days=3)),
        PaymentRecord(due_date=due, payment_date=due + timedelta(days=1)),
        PaymentRecord(due_date=due, payment_date=None),  # unpaid, ignored
    ]

    assert calculate_payment_history([_contract(payments=payments)]) == 67  # 2/3 rounded half-up


def test_payment_history_defaults_to_100_without_dated_payments():
    payments = [PaymentRecord(due_date=date(2023, 6, 1), payment_date=None)]
    assert calculate_payment_history([_contract(payments=payments)]) == 100


def test_credit_utilization():
    contracts = [_contract("100000", "50000"), _contract("100000", "0")]
    assert calculate_credit_utilization(contracts) == 25.0


def test_credit_utilization_zero_total():
    assert calculate_credit_utilization([_contract("0", "0")]) == 0.0


def test_credit_age_in_years():
    contracts = [
        _contract(created_on=TODAY - timedelta(days=365)),
        _contract(created_on=TODAY - timedelta(days=730)),
    ]
    assert calculate_credit_age(contracts, TODAY) == 1.5
    assert calculate_credit_age([], TODAY) == 0.0


def test_total_accounts_is_raw_count():
    assert calculate_total_accounts([_contract() for _ in range(7)]) == 7


def test_calculate_credit_score_weights():
    factors = CreditFactors(payment_history=75, credit_utilization=50.0, credit_age=1.0, total_accounts=1)
    # 30 + 10 + 0.21 + 0.19
    assert calculate_credit_score(factors) == 40


@pytest.mark.parametrize(
    "payment_history,expected",
    [
        (100, 40),
        (99, 40),  # 39.6 rounds up
        (96, 38),  # 38.4 rounds down
    ],
)
def test_calculate_credit_score_rounding(payment_history: int, expected: int):
    factors = CreditFactors(payment_history=payment_history, credit_utilization=0.0, credit_age=0.0, total_accounts=0)
    assert calculate_credit_score(factors) == expected


def test_analyze_history_integration():
    due = date(2023, 3, 1)
    payments = [
        PaymentRecord(due_date=due, payment_date=due),
        PaymentRecord(due_date=due, payment_date=due),
        PaymentRecord(due_date=due, payment_date=due),
        PaymentRecord(due_date=due, payment_date=due + timedelta(days=10)),
    ]
    contracts = [_contract(payments=payments)]

    factors = analyze_history(contracts, TODAY)

    assert factors.payment_history == 75
    assert factors.credit_utilization == 50.0
    assert factors.credit_age == 1.0
    assert factors.total_accounts == 1
    assert score_borrower(contracts, TODAY) == 40
