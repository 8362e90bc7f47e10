"""Tests for transition events and their delivery."""

from unittest.mock import Mock, patch

import pytest

from core.integrations.email import render_notification
from core.notifications import (
    NotificationDispatcher,
    NotificationKind,
    TransitionEvent,
    create_default_dispatcher,
    enqueue_email_notification,
)
from core.utils.formatting import format_percentage, format_skills, mask_email
from database.models.applications import ApplicationStatus


def _event(**overrides):
    data = {
        "application_id": "app-1",
        "from_status": ApplicationStatus.TEST_PENDING,
        "to_status": ApplicationStatus.REJECTED,
        "candidate_email": "ada@example.com",
        "candidate_name": "Ada",
        "job_title": "Backend Engineer",
        "reason": "ASSESSMENT_SCORE",
    }
    data.update(overrides)
    return TransitionEvent(**data)


class TestTransitionEvent:
    @pytest.mark.parametrize("status,kind", [
        (ApplicationStatus.TEST_PENDING, NotificationKind.ASSESSMENT_INVITE),
        (ApplicationStatus.REJECTED, NotificationKind.REJECTION),
        (ApplicationStatus.INTERVIEW, NotificationKind.INTERVIEW_READY),
        (ApplicationStatus.OFFER, NotificationKind.OFFER),
        (ApplicationStatus.HIRED, NotificationKind.WELCOME),
    ])
    def test_kind_follows_target_status(self, status, kind):
        assert _event(to_status=status).kind is kind

    def test_payload_is_json_safe(self):
        payload = _event(context={"score": 40}).to_payload()

        assert payload["from_status"] == "TEST_PENDING"
        assert payload["to_status"] == "REJECTED"
        assert payload["kind"] == "rejection"
        assert payload["context"] == {"score": 40}
        assert isinstance(payload["occurred_at"], str)

    def test_payload_without_previous_status(self):
        payload = _event(from_status=None, to_status=ApplicationStatus.TEST_PENDING).to_payload()
        assert payload["from_status"] is None


class TestNotificationDispatcher:
    @pytest.mark.asyncio
    async def test_sync_and_async_subscribers(self):
        seen = []

        async def async_subscriber(event):
            seen.append(("async", event.application_id))

        dispatcher = NotificationDispatcher([lambda e: seen.append(("sync", e.application_id))])
        dispatcher.subscribe(async_subscriber)

        await dispatcher.dispatch(_event())

        assert seen == [("sync", "app-1"), ("async", "app-1")]

    @pytest.mark.asyncio
    async def test_failing_subscriber_is_isolated(self):
        seen = []

        def broken(event):
            raise ConnectionError("broker down")

        async def broken_async(event):
            raise RuntimeError("smtp down")

        dispatcher = NotificationDispatcher([broken, broken_async, seen.append])

        await dispatcher.dispatch(_event())

        assert len(seen) == 1

    def test_default_dispatcher_queues_email(self):
        assert create_default_dispatcher().subscribers == [enqueue_email_notification]


class TestEnqueueEmailNotification:
    def test_queues_payload(self):
        with patch("workers.tasks.notifications.send_notification") as task:
            enqueue_email_notification(_event())

        payload = task.delay.call_args.args[0]
        assert payload["candidate_email"] == "ada@example.com"
        assert payload["kind"] == "rejection"

    def test_skipped_without_address(self):
        with patch("workers.tasks.notifications.send_notification") as task:
            enqueue_email_notification(_event(candidate_email=None))

        assert not task.delay.called


class TestRenderNotification:
    @pytest.mark.parametrize("kind,subject", [
        ("assessment_invite", "Complete Your Technical Assessment"),
        ("rejection", "Update on Your Application"),
        ("interview_ready", "You Passed the Assessment"),
        ("offer", "Your Offer"),
        ("welcome", "Welcome Aboard!"),
    ])
    def test_every_kind_renders(self, kind, subject):
        message = render_notification(kind, _event().to_payload())
        assert message["subject"] == subject
        assert message["html"] is True
        assert "Ada" in message["body"]

    def test_invite_links_to_assessment(self):
        message = render_notification("assessment_invite", _event().to_payload())
        assert "/assessment/app-1" in message["body"]

    def test_names_are_escaped(self):
        payload = _event(candidate_name="<script>x</script>").to_payload()
        body = render_notification("rejection", payload)["body"]
        assert "<script>" not in body
        assert "&lt;script&gt;" in body

    def test_missing_name_falls_back(self):
        payload = _event(candidate_name=None).to_payload()
        assert "Candidate" in render_notification("offer", payload)["body"]

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            render_notification("birthday", _event().to_payload())


class TestMaskEmail:
    @pytest.mark.parametrize("email,expected", [
        ("ada@example.com", "a*a@example.com"),
        ("jo@example.com", "j*@example.com"),
        ("lovelace@example.com", "l******e@example.com"),
        ("not-an-email", "not-an-email"),
        (None, None),
    ])
    def test_mask(self, email, expected):
        assert mask_email(email) == expected


class TestFormatting:
    def test_invite_quotes_pass_threshold(self):
        message = render_notification("assessment_invite", _event().to_payload())
        assert "A score of 70% or above" in message["body"]

    @pytest.mark.parametrize("skills,expected", [
        (["Python", "SQL"], "Python, SQL"),
        ([], "None specified"),
        (None, "None specified"),
    ])
    def test_format_skills(self, skills, expected):
        assert format_skills(skills) == expected

    def test_format_percentage(self):
        assert format_percentage(70) == "70%"
        assert format_percentage(66.666, decimals=1) == "66.7%"
