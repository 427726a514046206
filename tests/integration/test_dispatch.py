"""Integration tests for post-commit event delivery, jobs and scheduled tasks"""

import uuid

import pytest
from datetime import date
from sqlalchemy.orm import Session
from lot_financing.domain.events import NOTIFY_STAFF, STAFF, UPDATE_CREDIT_SCORE, JobRequest, notify_user
from lot_financing.infrastructure.database.models import Contract, User
from lot_financing.infrastructure.dispatch import dispatch_events
from lot_financing.infrastructure.jobs import InProcessJobQueue, UnknownJobError
from lot_financing.services.contracts import submit_contract
from lot_financing import tasks
from lot_financing.services.overdue_interest import AccrualSummary
from lot_financing.tasks import (
    build_job_queue,
    run_credit_score_update,
    run_credit_scores_for_all_users,
    run_overdue_interest_accrual,
)
from conftest import RecordingJobQueue, RecordingSink, TestingSessionLocal


class FailingSink:
    async def send(self, notification) -> None:
        raise RuntimeError("SMTP down")


async def test_dispatch_delivers_notifications_and_jobs(sink: RecordingSink, job_queue: RecordingJobQueue):
    events = [
        notify_user("u1", "Hello", "World", "general"),
        JobRequest(job=UPDATE_CREDIT_SCORE, payload={"user_id": "u1"}),
    ]

    delivered = await dispatch_events(events, sink, job_queue)

    assert delivered == 2
    assert [n.recipient for n in sink.sent] == ["u1"]
    assert job_queue.jobs == [(UPDATE_CREDIT_SCORE, {"user_id": "u1"})]


async def test_notification_failure_is_swallowed(job_queue: RecordingJobQueue):
    events = [
        notify_user("u1", "Hello", "World", "general"),
        JobRequest(job=NOTIFY_STAFF, payload={"title": "t", "message": "m"}),
    ]

    delivered = await dispatch_events(events, FailingSink(), job_queue)

    assert delivered == 1
    assert len(job_queue.jobs) == 1


async def test_unknown_job_is_swallowed_by_dispatch(sink: RecordingSink):
    delivered = await dispatch_events([JobRequest(job="reindex")], sink, InProcessJobQueue())
    assert delivered == 0


async def test_in_process_queue_rejects_unknown_job():
    with pytest.raises(UnknownJobError):
        await InProcessJobQueue().enqueue("reindex", {})


async def test_committed_transition_survives_failed_notification(
    db: Session, contract: Contract, job_queue: RecordingJobQueue
):
    events = submit_contract(db, contract.id)

    await dispatch_events(events, FailingSink(), job_queue)

    db.refresh(contract)
    assert contract.status == "submitted"


async def test_notify_staff_job_reaches_sink(sink: RecordingSink):
    queue = build_job_queue(sink, session_factory=TestingSessionLocal)

    await queue.enqueue(NOTIFY_STAFF, {"title": "Summary", "message": "3 updated", "category": "overdue_interest"})

    assert len(sink.sent) == 1
    assert sink.sent[0].recipient == STAFF
    assert sink.sent[0].message == "3 updated"


async def test_update_credit_score_job(db: Session, borrower: User, sink: RecordingSink):
    queue = build_job_queue(sink, session_factory=TestingSessionLocal)

    await queue.enqueue(UPDATE_CREDIT_SCORE, {"user_id": str(borrower.id)})

    db.refresh(borrower)
    assert borrower.credit_score == 40


def test_run_overdue_interest_accrual(db: Session, approved_contract: Contract, sink: RecordingSink):
    jobs = build_job_queue(sink, session_factory=TestingSessionLocal)

    summary = run_overdue_interest_accrual(
        sink=sink, jobs=jobs, session_factory=TestingSessionLocal, today=date(2024, 2, 1)
    )

    assert summary.updated == 1
    # Borrower notice plus the staff summary delivered through the notify_staff job
    assert [n.recipient for n in sink.sent] == [str(approved_contract.applicant_user_id), STAFF]


def test_run_credit_score_tasks(db: Session, borrower: User, seller: User):
    assert run_credit_score_update([seller.id], session_factory=TestingSessionLocal) == {seller.id: 40}
    assert run_credit_scores_for_all_users(session_factory=TestingSessionLocal) == {borrower.id: 40}


def test_main_runs_selected_task(monkeypatch: pytest.MonkeyPatch):
    calls = []
    monkeypatch.setattr(tasks, "setup_logging", lambda level: None)
    monkeypatch.setattr(tasks, "run_overdue_interest_accrual", lambda: calls.append("interest") or AccrualSummary())
    monkeypatch.setattr(tasks, "run_overdue_reminders", lambda: calls.append("reminders") or 0)
    monkeypatch.setattr(tasks, "run_credit_score_update", lambda user_ids: calls.append(("scores", user_ids)))
    monkeypatch.setattr(tasks, "run_credit_scores_for_all_users", lambda: calls.append("all_scores"))
    user_id = uuid.uuid4()

    assert tasks.main(["overdue-interest"]) == 0
    assert tasks.main(["overdue-reminders"]) == 0
    assert tasks.main(["credit-scores", "--user-id", str(user_id)]) == 0
    assert tasks.main(["credit-scores"]) == 0

    assert calls == ["interest", "reminders", ("scores", [user_id]), "all_scores"]
