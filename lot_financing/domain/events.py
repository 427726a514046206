"""Side effects produced by transitions, dispatched by the caller after commit"""

from dataclasses import dataclass, field
from typing import Any, Dict, Union

# Recipient used for messages addressed to all admin staff
STAFF = "staff"

# Background job names understood by the job queue
UPDATE_CREDIT_SCORE = "update_credit_score"
NOTIFY_STAFF = "notify_staff"


@dataclass(frozen=True)
class Notification:
    """Fire-and-forget message for the notification sink"""

    recipient: str  # user id or STAFF
    title: str
    message: str
    category: str


@dataclass(frozen=True)
class JobRequest:
    """Background job to enqueue"""

    job: str
    payload: Dict[str, Any] = field(default_factory=dict)


DomainEvent = Union[Notification, JobRequest]


def notify_user(user_id: Any, title: str, message: str, category: str) -> Notification:
    return Notification(recipient=str(user_id), title=title, message=message, category=category)


def notify_staff(title: str, message: str, category: str) -> Notification:
    return Notification(recipient=STAFF, title=title, message=message, category=category)
