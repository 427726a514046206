"""Overdue interest accrual batch"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from lot_financing.config import settings
from lot_financing.domain.events import NOTIFY_STAFF, DomainEvent, JobRequest, notify_user
from lot_financing.domain.exceptions import ValidationError
from lot_financing.domain.interest import calculate_overdue_interest
from lot_financing.domain.models import LedgerEntryType, PaymentStatus
from lot_financing.domain.money import ZERO, to_money
from lot_financing.infrastructure.database.repositories import LedgerRepository, PaymentRepository
from lot_financing.infrastructure.database.session import transaction
from lot_financing.infrastructure.observability.logging import log_batch_summary
from lot_financing.infrastructure.observability.metrics import overdue_interest_counter

JOB_NAME = "overdue_interest_accrual"


@dataclass
class AccrualSummary:
    updated: int = 0
    skipped: int = 0
    failed_payment_ids: List[uuid.UUID] = field(default_factory=list)
    events: List[DomainEvent] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_payment_ids)


def accrue_overdue_interest(db: Session, today: Optional[date] = None) -> AccrualSummary:
    """
    Recompute late interest on every pending payment due before `today`.

    Each payment is committed on its own: a failure is logged, rolled back
    and counted, and the batch moves on. Re-running on unchanged data
    changes nothing and notifies nobody.

    Returns:
        AccrualSummary with counts and the notifications/jobs to dispatch
    """
    today = today or date.today()
    started = time.perf_counter()
    summary = AccrualSummary()

    payment_ids = [p.id for p in PaymentRepository(db).overdue_pending(today)]
    db.rollback()  # release the read snapshot before per-payment transactions

    for payment_id in payment_ids:
        try:
            with transaction(db):
                event = _accrue_one(db, payment_id, today)
        except Exception as e:
            summary.failed_payment_ids.append(payment_id)
            overdue_interest_counter.labels(outcome="failed").inc()
            logging.error(
                f"Overdue interest accrual failed: {e}",
                extra={"payment_id": str(payment_id), "error_type": type(e).__name__},
            )
            continue

        if event is None:
            summary.skipped += 1
            overdue_interest_counter.labels(outcome="skipped").inc()
        else:
            summary.updated += 1
            summary.events.append(event)
            overdue_interest_counter.labels(outcome="updated").inc()

    if summary.updated:
        summary.events.append(
            JobRequest(
                job=NOTIFY_STAFF,
                payload={
                    "title": "Overdue interest updated",
                    "message": f"Overdue interest was updated on {summary.updated} payment(s).",
                    "category": "overdue_interest",
                },
            )
        )

    duration_ms = (time.perf_counter() - started) * 1000
    log_batch_summary(JOB_NAME, processed=summary.updated + summary.skipped, failed=summary.failed, duration_ms=duration_ms)
    return summary


def _accrue_one(db: Session, payment_id: uuid.UUID, today: date) -> Optional[DomainEvent]:
    payment = PaymentRepository(db).get(payment_id, for_update=True)
    if payment.status != PaymentStatus.PENDING.value:
        return None

    contract = payment.contract
    project = contract.lot.project if contract.lot else None
    if project is None or project.interest_rate is None:
        raise ValidationError(f"No interest rate configured for contract {contract.id}")

    interest = calculate_overdue_interest(
        amount=to_money(payment.amount),
        annual_rate_percent=project.interest_rate,
        due_date=payment.due_date,
        today=today,
        grace_days=settings.overdue_grace_days,
        days_per_year=settings.days_per_year,
    )
    current = to_money(payment.interest_amount or ZERO)

    if interest == current:
        return None
    if interest < current:
        # Interest only grows while the payment stays overdue
        logging.warning(
            "Computed interest below stored value, keeping stored value",
            extra={"payment_id": str(payment.id), "stored": str(current), "computed": str(interest)},
        )
        return None

    payment.interest_amount = interest
    LedgerRepository(db).append(
        contract,
        interest - current,
        f"Late interest for {payment.description}",
        LedgerEntryType.INTEREST,
        payment=payment,
    )

    return notify_user(
        contract.applicant_user_id,
        "Overdue interest applied",
        f"Payment #{payment.id} ({payment.description}) is overdue; interest is now {interest}.",
        "overdue_interest",
    )
