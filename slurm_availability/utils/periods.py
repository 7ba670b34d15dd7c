from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta

from slurm_availability.core.exceptions import InvalidPeriodError


_DAY_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])-(0[1-9]|[12][0-9]|3[01])$")
_MONTH_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
_YEAR_PATTERN = re.compile(r"^(\d{4})$")


@dataclass(frozen=True, slots=True)
class ReportPeriod:
    kind: str  # day | month | year
    start: date
    end: date  # exclusive
    label: str

    @property
    def description(self) -> str:
        return f"{self.label} (from {self.start.isoformat()} to {self.end.isoformat()})"


def parse_period(value: str) -> ReportPeriod:
    """Resolve ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD`` into a half-open date range."""
    s = str(value).strip()
    try:
        return _resolve(s)
    except (ValueError, OverflowError) as e:  # out-of-range calendar values
        raise InvalidPeriodError(f"Invalid date specified: {s}") from e


def _resolve(s: str) -> ReportPeriod:
    m = _DAY_PATTERN.match(s)
    if m:
        start = date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        return ReportPeriod("day", start, start + timedelta(days=1), f"for the day {s}")

    m = _MONTH_PATTERN.match(s)
    if m:
        year, month = int(m.group(1)), int(m.group(2))
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        return ReportPeriod("month", start, end, f"for the month {s}")

    m = _YEAR_PATTERN.match(s)
    if m:
        year = int(m.group(1))
        return ReportPeriod("year", date(year, 1, 1), date(year + 1, 1, 1), f"for the year {s}")

    raise InvalidPeriodError(
        f"Invalid date format '{s}'. Please use YYYY, YYYY-MM, or YYYY-MM-DD."
    )
