"""
Calendar helpers: month intervals, month walks and day counts.
All functions take and return `datetime.date`; strings are parsed at the edge.
"""
import calendar
import re
from datetime import date

from dateutil.relativedelta import relativedelta

from condo_finance.core.errors import ValidationError

_MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])(?:-(\d{2}))?$")


def parse_date(raw: str) -> date:
    """Parse an ISO `YYYY-MM-DD` date."""
    try:
        return date.fromisoformat(raw.strip())
    except (AttributeError, ValueError):
        raise ValidationError(
            f"Data inválida: {raw!r}. Use o formato YYYY-MM-DD.", code="invalid_date"
        )


def parse_month(raw: str) -> date:
    """
    Parse a month parameter and return the first day of that month.
    Accepts `YYYY-MM` and, for convenience, a full `YYYY-MM-DD` date.
    Surrounding quotes sent by some clients are stripped.
    """
    clean = raw.strip().strip("\"'`")
    match = _MONTH_RE.match(clean)
    if not match:
        raise ValidationError(
            f"Período inválido: {raw!r}. Use o formato YYYY-MM, por exemplo: 2025-07.",
            code="invalid_period",
        )
    if match.group(3):
        parse_date(clean)
    return date(int(match.group(1)), int(match.group(2)), 1)


def month_start(d: date) -> date:
    return d.replace(day=1)


def month_end(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def month_interval(d: date) -> tuple[date, date]:
    """Return (first day, last day) of the month containing `d`."""
    return month_start(d), month_end(d)


def same_month(a: date, b: date) -> bool:
    return (a.year, a.month) == (b.year, b.month)


def add_months(d: date, months: int) -> date:
    """Shift by whole calendar months, clamping to the last day of shorter months."""
    return d + relativedelta(months=months)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start's month to end's month (negative if end is earlier)."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def iter_months(start: date, end: date) -> list[date]:
    """
    First-of-month dates from start's month to end's month, inclusive.
    Ex: iter_months(date(2024, 3, 10), date(2024, 5, 2))
        → [2024-03-01, 2024-04-01, 2024-05-01]
    """
    months = []
    current = month_start(start)
    last = month_start(end)
    while current <= last:
        months.append(current)
        current = add_months(current, 1)
    return months


def year_bounds(start: date, end: date) -> tuple[date, date]:
    """Jan 1 of start's year to Dec 31 of end's year."""
    return date(start.year, 1, 1), date(end.year, 12, 31)


def days_between(later: date, earlier: date) -> int:
    """Signed number of days from `earlier` to `later`."""
    return (later - earlier).days


def validate_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError(
            f"Intervalo inválido: {start.isoformat()} é posterior a {end.isoformat()}.",
            code="invalid_range",
        )
