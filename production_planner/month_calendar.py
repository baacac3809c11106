"""Month ranges with working/non-working classification."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from .domain import CustomHoliday, InvalidRange
from .holidays import SATURDAY, SUNDAY, holiday_names

logger = logging.getLogger(__name__)

NON_WORKING_LABEL = "Non-working day"

_YEAR_MONTH_PATTERN = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$", re.ASCII)

YearMonth = Union[str, date]


@dataclass(frozen=True)
class MonthCalendar:
    """Immutable snapshot of one planning month."""

    start: date
    end: date
    dates: Tuple[date, ...]
    non_working: FrozenSet[date]
    labels: Mapping[date, str]

    def is_non_working(self, day: date) -> bool:
        return day in self.non_working

    def label(self, day: date) -> str:
        return self.labels.get(day, "")

    @property
    def working_days(self) -> Tuple[date, ...]:
        return tuple(day for day in self.dates if day not in self.non_working)

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end


def parse_year_month(value: YearMonth) -> date:
    """Return the first day of the month described by ``value``.

    ``value`` is either ``"YYYY-MM"`` text or a date, in which case its
    month is used.
    """

    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.replace(day=1)
    if not isinstance(value, str):
        raise InvalidRange(f"Unsupported year-month value: {value!r}")
    match = _YEAR_MONTH_PATTERN.match(value)
    if match is None:
        raise InvalidRange(f"Year-month must look like YYYY-MM, got {value!r}")
    year, month = int(match.group(1)), int(match.group(2))
    try:
        return date(year, month, 1)
    except ValueError as exc:
        raise InvalidRange(f"Invalid year-month {value!r}: {exc}") from exc


def month_bounds(first: date) -> Tuple[date, date]:
    """Return the first and last day of the month starting at ``first``."""

    if first.month == 12:
        next_month = date(first.year + 1, 1, 1)
    else:
        next_month = date(first.year, first.month + 1, 1)
    return first, next_month - timedelta(days=1)


def resolve_year_month(value: Optional[YearMonth], today: Optional[date] = None) -> date:
    """Parse ``value``, falling back to the current month when it is invalid."""

    today = today or date.today()
    if value is None or (isinstance(value, str) and not value.strip()):
        return today.replace(day=1)
    try:
        return parse_year_month(value)
    except InvalidRange as exc:
        logger.warning("Falling back to current month: %s", exc)
        return today.replace(day=1)


def build_month(
    year_month: YearMonth, custom_holidays: Iterable[CustomHoliday] = ()
) -> MonthCalendar:
    """Build the calendar snapshot for one month.

    Label precedence: national holiday name, then custom holiday comment,
    then the generic non-working label.
    """

    start, end = month_bounds(parse_year_month(year_month))
    dates = tuple(start + timedelta(days=offset) for offset in range((end - start).days + 1))
    national = holiday_names(range(start.year, end.year + 1))

    custom: Dict[date, str] = {}
    for holiday in custom_holidays:
        if start <= holiday.holiday_date <= end:
            comment = (holiday.comment or "").strip()
            if not custom.get(holiday.holiday_date):
                custom[holiday.holiday_date] = comment

    non_working = set()
    labels: Dict[date, str] = {}
    for day in dates:
        if day in national:
            labels[day] = national[day]
        elif day in custom:
            labels[day] = custom[day] or NON_WORKING_LABEL
        elif day.weekday() in (SATURDAY, SUNDAY):
            labels[day] = NON_WORKING_LABEL
        else:
            continue
        non_working.add(day)

    return MonthCalendar(
        start=start,
        end=end,
        dates=dates,
        non_working=frozenset(non_working),
        labels=MappingProxyType(labels),
    )


__all__ = [
    "NON_WORKING_LABEL",
    "MonthCalendar",
    "parse_year_month",
    "month_bounds",
    "resolve_year_month",
    "build_month",
]
