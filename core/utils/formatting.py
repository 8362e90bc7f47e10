"""Formatting utilities for prompts, e-mails and log records."""

from typing import Optional


def format_percentage(value: float, decimals: int = 0) -> str:
    """Format a 0-100 value as a percentage, e.g. ``70%``."""
    return f"{value:.{decimals}f}%"


def format_skills(skills: Optional[list[str]], empty: str = "None specified") -> str:
    """Comma separated skills for prompts; ``empty`` when there are none."""
    return ", ".join(skills) if skills else empty


def mask_email(email: str) -> str:
    """
    Mask email address for privacy.

    Args:
        email: Email address to mask

    Returns:
        Masked email (e.g., "j***e@example.com")
    """
    if not email or '@' not in email:
        return email

    local, domain = email.split('@', 1)

    if len(local) <= 2:
        masked_local = local[0] + '*'
    else:
        masked_local = local[0] + '*' * (len(local) - 2) + local[-1]

    return f"{masked_local}@{domain}"
