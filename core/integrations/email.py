"""Email integration utilities for sending candidate notifications."""

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, List, Optional

from core.config import settings
from core.utils.formatting import format_percentage, mask_email

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        """
        Initialize email service.

        Args:
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            from_email: Default sender email
            from_name: Default sender name
        """
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name

    def send_email(
        self,
        to_email: str | List[str],
        subject: str,
        body: str,
        html: bool = False,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send an email.

        Args:
            to_email: Recipient email address(es)
            subject: Email subject
            body: Email body
            html: Whether body is HTML
            reply_to: Reply-to email address

        Returns:
            True if email sent successfully
        """
        recipients = to_email if isinstance(to_email, list) else [to_email]
        try:
            msg = MIMEMultipart()
            msg['From'] = f"{self.from_name} <{self.from_email}>"
            msg['To'] = ", ".join(recipients)
            msg['Subject'] = subject
            if reply_to:
                msg['Reply-To'] = reply_to
            msg.attach(MIMEText(body, 'html' if html else 'plain'))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg, from_addr=self.from_email, to_addrs=recipients)

            logger.info("Email sent to %s", ", ".join(mask_email(r) for r in recipients))
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email: %s", e)
            return False


def _page(title: str, paragraphs: list[str]) -> str:
    body = "\n".join(f"<p>{p}</p>" for p in paragraphs)
    return f"""
        <html>
        <body>
            <h2>{title}</h2>
            {body}
            <p>Best regards,<br>The Hiring Team</p>
        </body>
        </html>
    """


class EmailTemplates:
    """Candidate notification templates, one per pipeline transition."""

    @staticmethod
    def assessment_invite(candidate_name: str, assessment_url: str) -> dict:
        return {
            'subject': 'Complete Your Technical Assessment',
            'body': _page(
                f"Hi {candidate_name},",
                [
                    "Congratulations! Your application has been shortlisted. "
                    "The next step is a short proctored assessment.",
                    "It has an aptitude section and a technical section of multiple "
                    "choice questions. A score of "
                    f"{format_percentage(settings.assessment_pass_threshold)} "
                    "or above moves you to interview.",
                    f'<a href="{assessment_url}">Start the assessment</a>',
                ],
            ),
            'html': True,
        }

    @staticmethod
    def rejection(candidate_name: str, job_title: Optional[str] = None) -> dict:
        role = f" for the {job_title} position" if job_title else ""
        return {
            'subject': 'Update on Your Application',
            'body': _page(
                f"Dear {candidate_name},",
                [
                    f"Thank you for your interest in joining our team and for applying{role}.",
                    "After careful consideration, we have decided to move forward with "
                    "other candidates whose qualifications more closely match our needs.",
                    "We encourage you to apply for future positions that match your skills.",
                ],
            ),
            'html': True,
        }

    @staticmethod
    def interview_ready(candidate_name: str, job_title: Optional[str] = None) -> dict:
        role = f" for the {job_title} position" if job_title else ""
        return {
            'subject': 'You Passed the Assessment',
            'body': _page(
                f"Hi {candidate_name},",
                [
                    f"Great news: you passed the assessment{role}.",
                    "Our hiring team will contact you shortly to schedule an interview.",
                ],
            ),
            'html': True,
        }

    @staticmethod
    def offer(candidate_name: str, job_title: Optional[str] = None) -> dict:
        role = f" as {job_title}" if job_title else ""
        return {
            'subject': 'Your Offer',
            'body': _page(
                f"Hi {candidate_name},",
                [
                    f"We are delighted to offer you a position{role}.",
                    "Your recruiter will follow up with the details of the offer.",
                ],
            ),
            'html': True,
        }

    @staticmethod
    def welcome(candidate_name: str, job_title: Optional[str] = None) -> dict:
        role = f" as our new {job_title}" if job_title else ""
        return {
            'subject': 'Welcome Aboard!',
            'body': _page(
                f"Welcome {candidate_name}!",
                [f"We are thrilled to have you join us{role}."],
            ),
            'html': True,
        }


def render_notification(kind: str, payload: dict[str, Any]) -> dict:
    """Build subject and body for a queued transition notification."""
    name = html.escape(payload.get("candidate_name") or "Candidate")
    job_title = payload.get("job_title")
    if job_title:
        job_title = html.escape(job_title)

    if kind == "assessment_invite":
        url = f"{settings.public_base_url.rstrip('/')}/assessment/{payload['application_id']}"
        return EmailTemplates.assessment_invite(name, url)
    if kind == "rejection":
        return EmailTemplates.rejection(name, job_title)
    if kind == "interview_ready":
        return EmailTemplates.interview_ready(name, job_title)
    if kind == "offer":
        return EmailTemplates.offer(name, job_title)
    if kind == "welcome":
        return EmailTemplates.welcome(name, job_title)
    raise ValueError(f"Unknown notification kind: {kind}")


# Global email service instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create global email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
