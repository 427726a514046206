"""Reminders for borrowers with overdue payments"""

import time
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from lot_financing.domain.events import Notification, notify_user
from lot_financing.infrastructure.database.models import Payment
from lot_financing.infrastructure.database.repositories import PaymentRepository
from lot_financing.infrastructure.observability.logging import log_batch_summary
from lot_financing.infrastructure.observability.metrics import overdue_reminder_counter

JOB_NAME = "overdue_payment_reminders"


def remind_overdue_payments(db: Session, today: Optional[date] = None) -> List[Notification]:
    """
    Build one reminder per borrower listing all of their overdue payments.

    A payment is overdue when it is still pending and its due date is
    strictly before `today`. Read only: nothing is written.
    """
    today = today or date.today()
    started = time.perf_counter()

    by_borrower: Dict[str, List[Payment]] = defaultdict(list)
    for payment in PaymentRepository(db).overdue_pending(today):
        by_borrower[str(payment.contract.applicant_user_id)].append(payment)

    reminders = [_reminder(user_id, payments) for user_id, payments in by_borrower.items()]
    overdue_reminder_counter.inc(len(reminders))

    duration_ms = (time.perf_counter() - started) * 1000
    log_batch_summary(JOB_NAME, processed=len(reminders), failed=0, duration_ms=duration_ms)
    return reminders


def _reminder(user_id: str, payments: List[Payment]) -> Notification:
    lines = [f"- {p.description}: {p.amount} due {p.due_date.isoformat()}" for p in payments]
    return notify_user(
        user_id,
        "Overdue payments",
        f"You have {len(payments)} overdue payment(s):\n" + "\n".join(lines),
        "payment_overdue",
    )
