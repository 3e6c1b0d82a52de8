"""Date helpers shared by the BCU lookup layer."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Tuple

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LEADING_ISO_DATE = re.compile(r"^\s*(\d{4}-\d{2}-\d{2})")


@dataclass(frozen=True)
class DateRange:
    """Container representing a closed date range."""

    start: date
    end: date

    def as_tuple(self) -> Tuple[date, date]:
        """Return the range as a tuple of ``(start, end)``."""
        return (self.start, self.end)

    def as_iso(self) -> Tuple[str, str]:
        return (self.start.isoformat(), self.end.isoformat())


def is_iso_date(value: str) -> bool:
    """Return True when ``value`` has the ``YYYY-MM-DD`` shape."""

    return bool(ISO_DATE_PATTERN.match(value or ""))


def parse_date(value: str | date) -> date:
    """Parse a date string in ISO format to :class:`date`."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


def coerce_upstream_date(value: object) -> date | None:
    """Reduce an upstream ``Fecha``/``UltimoCierre`` value to a calendar day.

    zeep hands back ``date``/``datetime`` objects for typed fields, while
    loosely typed envelopes carry strings such as ``2024-01-02T00:00:00`` or
    ``2024-01-02-03:00`` (xsd:date with an offset). Anything else yields
    ``None``.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    match = _LEADING_ISO_DATE.match(value)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), "%Y-%m-%d").date()
    except ValueError:
        return None


def lookback_window(days: int, *, today: date | None = None) -> DateRange:
    """Return the inclusive ``[today - days, today]`` window."""

    if days <= 0:
        raise ValueError("days must be positive")
    end = today or date.today()
    return DateRange(start=end - timedelta(days=days), end=end)
