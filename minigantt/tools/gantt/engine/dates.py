"""Calendar-day arithmetic.

Every value is a ``datetime.date``: no time of day and no timezone, so day
counts never drift with the host's local offset.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple


def to_key(d: date) -> str:
    """Return the ``YYYY-MM-DD`` key; keys sort in calendar order."""
    return d.isoformat()


def parse_key(s: str) -> date:
    """Parse a ``YYYY-MM-DD`` key. Raises ValueError on anything else."""
    if not isinstance(s, str):
        raise ValueError(f"date key must be a string, got {type(s).__name__}")
    parts = s.strip().split("-")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"not a YYYY-MM-DD date key: {s!r}")
    y, m, dd = (int(p) for p in parts)
    return date(y, m, dd)


def try_parse_key(value) -> Optional[date]:
    """Best-effort conversion used on untrusted input; None when unusable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        # Accept full ISO timestamps too, keeping only the calendar day.
        return parse_key(value[:10])
    except ValueError:
        return None


def add_days(d: date, n: int) -> date:
    """Shift by n days, saturating at ``date.min``/``date.max`` instead of overflowing."""
    try:
        return d + timedelta(days=n)
    except OverflowError:
        return date.max if n > 0 else date.min


def days_between(a: date, b: date) -> int:
    """Signed whole days from a to b (``b - a``)."""
    return (b - a).days


def clamp(n, lo, hi):
    return max(lo, min(hi, n))


def normalize_range(start: Optional[date], end: Optional[date]) -> Tuple[Optional[date], Optional[date]]:
    """Swap an inverted range. Ranges with a missing bound pass through."""
    if start is None or end is None:
        return start, end
    if end < start:
        return end, start
    return start, end


def today_utc() -> date:
    """Current calendar day in UTC. Only the host boundary should call this."""
    return datetime.now(timezone.utc).date()
