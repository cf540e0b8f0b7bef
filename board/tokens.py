"""Assignment tokens.

A token is the SHA-256 hex digest of ``"{expert}-{requirement}-{date}"``
where the date is rendered as an ISO-8601 UTC timestamp. The same triple
always yields the same token, which makes it usable as the identity of an
expert's assignment on a board.
"""
from __future__ import annotations

import hashlib
from datetime import date, datetime, time, timezone


class InvalidDateError(ValueError):
    """Raised when a date cannot be interpreted."""
    pass


def parse_date(value: str | int | float | datetime | date) -> datetime:
    """Interpret ``value`` as a point in time and return it as aware UTC.

    Accepts ISO-8601 strings (date-only, naive, with offset or ``Z``),
    ``datetime``/``date`` objects and epoch milliseconds. Naive values are
    taken to be UTC.

    Raises:
        InvalidDateError: If the value cannot be parsed
    """
    if isinstance(value, bool):
        raise InvalidDateError("Invalid date format")

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidDateError("Invalid date format") from e
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidDateError("Invalid date format")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidDateError("Invalid date format") from e
    else:
        raise InvalidDateError("Invalid date format")

    # Shifting an instant at the edge of the calendar to UTC can leave the date range
    try:
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError) as e:
        raise InvalidDateError("Invalid date format") from e


def create_token(expert_name: str, requirement: str, when: str | int | float | datetime | date) -> str:
    """Derive the assignment token for an expert on a board."""
    moment = parse_date(when)
    data = f"{expert_name}-{requirement}-{moment.isoformat()}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
