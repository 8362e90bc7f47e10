"""
Status-transition events and their delivery.

The state machine emits one ``TransitionEvent`` per committed transition. The
dispatcher hands it to every subscriber; a failing subscriber is logged and
never propagates, so a lost e-mail can never undo a status change.
"""

import inspect
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from core.utils.formatting import mask_email
from database.models.applications import ApplicationStatus

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    ASSESSMENT_INVITE = "assessment_invite"
    REJECTION = "rejection"
    INTERVIEW_READY = "interview_ready"
    OFFER = "offer"
    WELCOME = "welcome"


STATUS_NOTIFICATIONS: dict[ApplicationStatus, NotificationKind] = {
    ApplicationStatus.TEST_PENDING: NotificationKind.ASSESSMENT_INVITE,
    ApplicationStatus.REJECTED: NotificationKind.REJECTION,
    ApplicationStatus.INTERVIEW: NotificationKind.INTERVIEW_READY,
    ApplicationStatus.OFFER: NotificationKind.OFFER,
    ApplicationStatus.HIRED: NotificationKind.WELCOME,
}


@dataclass
class TransitionEvent:
    application_id: str
    from_status: Optional[ApplicationStatus]
    to_status: ApplicationStatus
    candidate_email: Optional[str] = None
    candidate_name: Optional[str] = None
    job_title: Optional[str] = None
    reason: Optional[str] = None
    context: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def kind(self) -> NotificationKind:
        return STATUS_NOTIFICATIONS[self.to_status]

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe form for the task queue."""
        payload = asdict(self)
        payload["from_status"] = self.from_status.value if self.from_status else None
        payload["to_status"] = self.to_status.value
        payload["occurred_at"] = self.occurred_at.isoformat()
        payload["kind"] = self.kind.value
        return payload


Subscriber = Callable[[TransitionEvent], Union[Awaitable[None], None]]


class NotificationDispatcher:
    """Fans transition events out to subscribers, isolating their failures."""

    def __init__(self, subscribers: Optional[list[Subscriber]] = None):
        self.subscribers: list[Subscriber] = list(subscribers or [])

    def subscribe(self, subscriber: Subscriber) -> Subscriber:
        self.subscribers.append(subscriber)
        return subscriber

    async def dispatch(self, event: TransitionEvent) -> None:
        for subscriber in self.subscribers:
            try:
                result = subscriber(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Notification %s for application %s (%s) failed in %s",
                    event.kind.value,
                    event.application_id,
                    mask_email(event.candidate_email),
                    getattr(subscriber, "__name__", repr(subscriber)),
                )


def enqueue_email_notification(event: TransitionEvent) -> None:
    """Default subscriber: hand the event to the Celery e-mail task."""
    if not event.candidate_email:
        logger.warning(
            "No e-mail address for application %s, %s notification skipped",
            event.application_id, event.kind.value,
        )
        return

    from workers.tasks.notifications import send_notification

    send_notification.delay(event.to_payload())
    logger.info(
        "Queued %s notification for application %s", event.kind.value, event.application_id
    )


def create_default_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher([enqueue_email_notification])
