"""Integration tests for credit score persistence"""

import uuid

from datetime import date
from sqlalchemy.orm import Session
from lot_financing.infrastructure.database.models import Contract, User
from lot_financing.services.credit_score import update_credit_score, update_credit_scores
from lot_financing.services.payments import approve_payment, submit_payment

ONE_YEAR_LATER = date(2025, 1, 14)  # 365 days after the contract date


def test_score_without_contracts(db: Session, borrower: User):
    assert update_credit_score(db, borrower.id) == 40

    db.refresh(borrower)
    assert borrower.credit_score == 40


def test_score_from_contract_history(db: Session, approved_contract: Contract, borrower: User):
    # history 100, utilization 100, age 1 year, 1 account: 40 + 20 + 0.21 + 0.19
    score = update_credit_score(db, borrower.id, today=ONE_YEAR_LATER)

    assert score == 60
    db.refresh(borrower)
    assert borrower.credit_score == 60


def test_late_payment_lowers_score(db: Session, approved_contract: Contract, borrower: User):
    reservation = approved_contract.payments[0]  # due 2024-01-30
    submit_payment(db, reservation.id, receipt_url="https://files.example.com/r.pdf", today=date(2024, 2, 10))
    approve_payment(db, reservation.id)

    # history 0, utilization 83.33: 0 + 16.67 + 0.21 + 0.19
    assert update_credit_score(db, borrower.id, today=ONE_YEAR_LATER) == 17


def test_update_all_borrowers(db: Session, borrower: User, seller: User):
    scores = update_credit_scores(db)

    assert scores == {borrower.id: 40}
    db.refresh(seller)
    assert seller.credit_score is None


def test_unknown_user_does_not_stop_batch(db: Session, borrower: User):
    scores = update_credit_scores(db, [uuid.uuid4(), borrower.id])

    assert scores == {borrower.id: 40}
