"""Periodic tasks and background job handlers"""

import argparse
import asyncio
import logging
import uuid
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from lot_financing.config import settings
from lot_financing.domain.events import NOTIFY_STAFF, UPDATE_CREDIT_SCORE, notify_staff
from lot_financing.infrastructure.clients.notifications import NotificationSink, WebhookNotificationSink
from lot_financing.infrastructure.database.session import SessionLocal
from lot_financing.infrastructure.dispatch import dispatch_events
from lot_financing.infrastructure.jobs import InProcessJobQueue, JobQueue
from lot_financing.infrastructure.observability.logging import setup_logging
from lot_financing.services.credit_score import update_credit_score, update_credit_scores
from lot_financing.services.overdue_interest import AccrualSummary, accrue_overdue_interest
from lot_financing.services.overdue_reminders import remind_overdue_payments

SessionFactory = Callable[[], Session]


def build_job_queue(sink: NotificationSink, session_factory: SessionFactory = SessionLocal) -> InProcessJobQueue:
    """Queue wired with the handlers for every job the engine requests"""
    queue = InProcessJobQueue()

    def update_score(user_id: uuid.UUID) -> None:
        db = session_factory()
        try:
            update_credit_score(db, user_id)
        finally:
            db.close()

    async def handle_update_credit_score(payload: Dict[str, Any]) -> None:
        # Session work is blocking; keep it off the event loop
        await asyncio.to_thread(update_score, uuid.UUID(str(payload["user_id"])))

    async def handle_notify_staff(payload: Dict[str, Any]) -> None:
        await sink.send(notify_staff(payload["title"], payload["message"], payload.get("category", "general")))

    queue.register(UPDATE_CREDIT_SCORE, handle_update_credit_score)
    queue.register(NOTIFY_STAFF, handle_notify_staff)
    return queue


def run_overdue_interest_accrual(
    sink: Optional[NotificationSink] = None,
    jobs: Optional[JobQueue] = None,
    session_factory: SessionFactory = SessionLocal,
    today: Optional[date] = None,
) -> AccrualSummary:
    """Daily entry point: accrue interest, then deliver notifications and the staff summary"""
    sink = sink or WebhookNotificationSink()
    jobs = jobs or build_job_queue(sink, session_factory)

    db = session_factory()
    try:
        summary = accrue_overdue_interest(db, today)
    finally:
        db.close()

    asyncio.run(dispatch_events(summary.events, sink, jobs))
    return summary


def run_overdue_reminders(
    sink: Optional[NotificationSink] = None,
    session_factory: SessionFactory = SessionLocal,
    today: Optional[date] = None,
) -> int:
    """Daily entry point: remind every borrower with overdue payments. Returns the number of reminders sent."""
    sink = sink or WebhookNotificationSink()

    db = session_factory()
    try:
        reminders = remind_overdue_payments(db, today)
    finally:
        db.close()

    return asyncio.run(dispatch_events(reminders, sink, InProcessJobQueue()))


def run_credit_score_update(
    user_ids: Iterable[uuid.UUID],
    session_factory: SessionFactory = SessionLocal,
    today: Optional[date] = None,
) -> Dict[uuid.UUID, int]:
    db = session_factory()
    try:
        scores = update_credit_scores(db, list(user_ids), today)
    finally:
        db.close()

    logging.info("Credit score task finished", extra={"updated": len(scores)})
    return scores


def run_credit_scores_for_all_users(
    session_factory: SessionFactory = SessionLocal,
    today: Optional[date] = None,
) -> Dict[uuid.UUID, int]:
    db = session_factory()
    try:
        scores = update_credit_scores(db, None, today)
    finally:
        db.close()

    logging.info("Credit score task finished", extra={"updated": len(scores)})
    return scores


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point for the scheduler (cron, k8s CronJob)"""
    parser = argparse.ArgumentParser(prog="lot-financing-tasks")
    subparsers = parser.add_subparsers(dest="task", required=True)
    subparsers.add_parser("overdue-interest", help="Accrue interest on overdue payments")
    subparsers.add_parser("overdue-reminders", help="Remind borrowers about overdue payments")
    scores = subparsers.add_parser("credit-scores", help="Recompute borrower credit scores")
    scores.add_argument("--user-id", action="append", type=uuid.UUID, dest="user_ids")
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)

    if args.task == "overdue-interest":
        summary = run_overdue_interest_accrual()
        return 1 if summary.failed else 0

    if args.task == "overdue-reminders":
        run_overdue_reminders()
        return 0

    if args.user_ids:
        run_credit_score_update(args.user_ids)
    else:
        run_credit_scores_for_all_users()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
