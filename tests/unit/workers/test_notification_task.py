"""Tests for the notification Celery task."""

from unittest.mock import Mock, patch

import pytest

from core.notifications import TransitionEvent
from database.models.applications import ApplicationStatus
from workers.tasks.notifications import NotificationNotSent, send_notification


@pytest.fixture
def payload():
    return TransitionEvent(
        application_id="app-1",
        from_status=ApplicationStatus.NEW,
        to_status=ApplicationStatus.TEST_PENDING,
        candidate_email="ada@example.com",
        candidate_name="Ada",
        job_title="Backend Engineer",
    ).to_payload()


@pytest.fixture
def email_service():
    service = Mock()
    service.send_email.return_value = True
    with patch("workers.tasks.notifications.get_email_service", return_value=service):
        yield service


class TestSendNotification:
    def test_sends_rendered_email(self, payload, email_service):
        result = send_notification.apply(args=[payload]).get()

        assert result == {"status": "sent", "kind": "assessment_invite", "application_id": "app-1"}
        kwargs = email_service.send_email.call_args.kwargs
        assert kwargs["to_email"] == "ada@example.com"
        assert kwargs["subject"] == "Complete Your Technical Assessment"
        assert kwargs["html"] is True

    def test_failed_send_is_retried(self, payload, email_service):
        email_service.send_email.return_value = False

        with patch.object(send_notification, "retry", return_value=RuntimeError("retrying")) as retry:
            with pytest.raises(RuntimeError, match="retrying"):
                send_notification(payload)

        assert retry.call_args.kwargs["countdown"] == 60
        assert isinstance(retry.call_args.kwargs["exc"], NotificationNotSent)

    def test_retry_budget(self):
        assert send_notification.max_retries == 3

    def test_routed_to_notification_queue(self):
        from workers.celery_app import celery_app

        route = celery_app.conf.task_routes["workers.tasks.notifications.*"]
        assert route == {"queue": "notifications"}
