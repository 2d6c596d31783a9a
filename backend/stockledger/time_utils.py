# Overview: UTC clock and ISO-8601 parsing/formatting for ledger timestamps, movement filters and expiry dates.

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional

# Length of "YYYY-MM-DD"; shorter-or-equal inputs carry no time part
_DATE_ONLY = len("2000-01-01")


def utcnow() -> datetime:
    """Ledger clock: UTC, stored naive."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def parse_iso_datetime(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a timestamp or report bound into a UTC-naive datetime.

    Offsets ("Z", "+02:00") are converted to UTC; naive input is taken as UTC.
    A bare date is midnight, or the last microsecond of that day when
    end_of_day is set, so "end=2030-01-31" still covers sales made that day.
    Blank input is None; anything unparseable raises ValueError.
    """
    if _blank(value):
        return None
    text = value.strip()

    if len(text) <= _DATE_ONLY:
        day = date.fromisoformat(text)
        return datetime.combine(day, time.max if end_of_day else time.min)

    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Batch expiry dates: "YYYY-MM-DD" only; blank is None."""
    if _blank(value):
        return None
    return date.fromisoformat(value.strip())


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second UTC with a trailing "Z"; naive values are already UTC."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"
