"""Formatting utilities for display values."""

import re
from datetime import datetime


def format_currency(value: float) -> str:
    """Format a float as USD currency."""
    return f"${value:,.2f}"


def format_timestamp(value: datetime) -> str:
    """Render a case-history timestamp."""
    return value.strftime("%Y-%m-%d %H:%M:%S")


def normalize_part_name(name: str) -> str:
    """Canonical comparison key for a kit part: trimmed and upper-cased."""
    return " ".join(str(name).split()).upper()


def format_availability(available: int, quantity: int) -> str:
    """Format stock as 'available / quantity', flagging shortfalls."""
    if available < quantity:
        return f"{available} / {quantity} (SHORT)"
    return f"{available} / {quantity}"


_ANNOTATION_RE = re.compile(r"\s*\((MISSING|DAMAGED)\)", re.IGNORECASE)


def annotate_part(name: str, defect: str) -> str:
    """Mark a composition entry, e.g. 'Socket B (MISSING)'."""
    return f"{strip_part_annotation(name)} ({defect.upper()})"


def strip_part_annotation(name: str) -> str:
    """Recover the canonical part name from an annotated composition entry."""
    return _ANNOTATION_RE.sub("", str(name)).strip()
