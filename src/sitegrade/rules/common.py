"""Helpers shared by rule checks."""

from typing import Optional


def has_text(value: Optional[str]) -> bool:
    """True when a metadata string is present and not blank."""
    return bool(value and value.strip())


def is_absolute_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))
