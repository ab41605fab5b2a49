"""Formatting utilities for common data types."""

from typing import Optional


def format_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    """
    Format full name from first and last names.

    Args:
        first_name: First name
        last_name: Last name

    Returns:
        Formatted full name
    """
    parts = []
    if first_name:
        parts.append(first_name.strip())
    if last_name:
        parts.append(last_name.strip())
    return ' '.join(parts)


def display_name(user, fallback: str = "Unknown") -> str:
    """Full name of a user row, or ``fallback`` when the row is missing."""
    if user is None:
        return fallback
    return format_name(user.first_name, user.last_name) or fallback


def normalize_email(email: str) -> str:
    """Lower-case and strip an email address for lookups."""
    return email.strip().lower()
