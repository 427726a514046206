"""Post-commit delivery of the side effects returned by engine operations"""

import logging
from typing import Iterable

from lot_financing.domain.events import DomainEvent, JobRequest, Notification
from lot_financing.infrastructure.clients.notifications import NotificationSink
from lot_financing.infrastructure.jobs import JobQueue
from lot_financing.infrastructure.observability.metrics import dispatch_failure_counter


async def dispatch_events(
    events: Iterable[DomainEvent],
    sink: NotificationSink,
    jobs: JobQueue,
) -> int:
    """
    Deliver notifications and job requests after the financial transaction committed.

    A failed delivery is logged and counted, then skipped: it never reaches
    the caller, so it can never undo a committed transition.

    Returns:
        Number of events delivered successfully
    """
    delivered = 0
    for event in events:
        kind = "job" if isinstance(event, JobRequest) else "notification"
        try:
            if isinstance(event, Notification):
                await sink.send(event)
            else:
                await jobs.enqueue(event.job, event.payload)
            delivered += 1
        except Exception as e:
            dispatch_failure_counter.labels(kind=kind).inc()
            logging.error(f"Failed to dispatch {kind}: {e}", extra={"event": repr(event)})

    return delivered
