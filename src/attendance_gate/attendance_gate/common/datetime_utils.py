from __future__ import annotations

from datetime import date, datetime


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_client_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp sent by a device into naive local time.

    Aware values (``...Z`` or ``+07:00``) are converted to the server's local
    zone so they compare with ``now_local()``.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def format_duration(seconds: int) -> str:
    seconds = max(int(seconds), 0)
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"
