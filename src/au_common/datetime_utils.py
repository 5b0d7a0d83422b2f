"""UTC datetime utilities."""

from datetime import datetime, timezone

from src.au_common.errors import MalformedDeadlineError


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def parse_deadline(raw: object) -> datetime:
    """Parse an API deadline into an aware UTC datetime.

    Accepts aware/naive datetimes, ISO-8601 strings (a trailing "Z" is
    allowed) and epoch milliseconds. Naive values are taken as UTC.
    Raises MalformedDeadlineError for anything else.
    """
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, bool):
        raise MalformedDeadlineError(raw)
    elif isinstance(raw, (int, float)):
        try:
            value = datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise MalformedDeadlineError(raw) from exc
    elif isinstance(raw, str) and raw.strip():
        text = raw.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError as exc:
            raise MalformedDeadlineError(raw) from exc
    else:
        raise MalformedDeadlineError(raw)

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
