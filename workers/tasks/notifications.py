"""Candidate notification tasks."""

import logging

from celery import Task

from core.integrations.email import get_email_service, render_notification
from core.utils.formatting import mask_email
from workers.celery_app import celery_app

logger = logging.getLogger(__name__)


class NotificationNotSent(Exception):
    """SMTP delivery failed; raised so Celery can retry."""


@celery_app.task(
    name="workers.tasks.notifications.send_notification",
    bind=True,
    max_retries=3,
)
def send_notification(self: Task, payload: dict) -> dict:
    """Render and send the e-mail for one status transition.

    Args:
        payload: ``TransitionEvent.to_payload()`` output

    Returns:
        Dictionary with send status
    """
    kind = payload["kind"]
    message = render_notification(kind, payload)
    sent = get_email_service().send_email(
        to_email=payload["candidate_email"],
        subject=message["subject"],
        body=message["body"],
        html=message["html"],
    )
    if not sent:
        logger.warning(
            "Notification %s to %s not sent (attempt %d)",
            kind, mask_email(payload["candidate_email"]), self.request.retries + 1,
        )
        raise self.retry(
            exc=NotificationNotSent(f"{kind} for {payload['application_id']}"),
            countdown=60 * (self.request.retries + 1),
        )

    return {
        "status": "sent",
        "kind": kind,
        "application_id": payload["application_id"],
    }
