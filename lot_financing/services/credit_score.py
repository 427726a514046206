"""Credit score recomputation for borrowers"""

import logging
import uuid
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from lot_financing.domain.models import ContractSnapshot, PaymentRecord
from lot_financing.domain.money import ZERO, to_money
from lot_financing.domain.scoring import score_borrower
from lot_financing.infrastructure.database.models import Contract
from lot_financing.infrastructure.database.repositories import ContractRepository, UserRepository
from lot_financing.infrastructure.database.session import transaction
from lot_financing.utils.date_utils import to_date


def snapshot_contract(contract: Contract, today: date) -> ContractSnapshot:
    return ContractSnapshot(
        amount=to_money(contract.amount or ZERO),
        balance=to_money(contract.balance or ZERO),
        created_on=to_date(contract.created_at) if contract.created_at else today,
        payments=[PaymentRecord(due_date=p.due_date, payment_date=p.payment_date) for p in contract.payments],
    )


def update_credit_score(db: Session, user_id: uuid.UUID, today: Optional[date] = None) -> int:
    """
    Recompute and store a borrower's credit score.

    The score itself is computed from plain snapshots; the only write is
    User.credit_score.
    """
    today = today or date.today()

    with transaction(db):
        user = UserRepository(db).get(user_id)
        contracts = ContractRepository(db).for_applicant(user.id)
        score = score_borrower([snapshot_contract(c, today) for c in contracts], today)
        user.credit_score = score

    logging.info("Credit score updated", extra={"user_id": str(user_id), "credit_score": score})
    return score


def update_credit_scores(
    db: Session,
    user_ids: Optional[Iterable[uuid.UUID]] = None,
    today: Optional[date] = None,
) -> Dict[uuid.UUID, int]:
    """Recompute scores for the given users, or every borrower; one failing user does not stop the rest"""
    if user_ids is None:
        user_ids = [u.id for u in UserRepository(db).borrowers()]
        db.rollback()

    scores: Dict[uuid.UUID, int] = {}
    failed: List[uuid.UUID] = []
    for user_id in user_ids:
        try:
            scores[user_id] = update_credit_score(db, user_id, today)
        except Exception as e:
            failed.append(user_id)
            logging.error(f"Credit score update failed: {e}", extra={"user_id": str(user_id)})

    if failed:
        logging.warning("Some credit scores were not updated", extra={"failed": len(failed)})
    return scores
