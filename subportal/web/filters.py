"""Jinja2 filters for dates and file sizes."""

from __future__ import annotations

from datetime import datetime

SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_file_size(size: int) -> str:
    """Human readable size in 1024 steps; 0 renders as N/A."""
    if not size or size <= 0:
        return "N/A"

    exponent = 0
    while exponent < len(SIZE_UNITS) - 1 and size >= 1024 ** (exponent + 1):
        exponent += 1
    value = round(size / (1024 ** exponent), 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[exponent]}"


def format_date(value: str) -> str:
    """Render an ISO-8601 timestamp like 'Oct 19, 2026, 09:05 AM'."""
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return value or ""
    return moment.strftime("%b %d, %Y, %I:%M %p")


FILTERS = {
    "filesize": format_file_size,
    "datetime": format_date,
}
