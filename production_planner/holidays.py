"""Japanese national holiday calendar.

Holidays are derived from three rule families (fixed dates, the n-th weekday
of a month and the two equinoxes) plus the substitute holiday rule. Equinox
days are not computed astronomically: they come from a table of known years,
and every other year uses a fixed fallback date. Results for years outside
the table are therefore approximate, see :func:`is_equinox_approximate`.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Tuple

from .domain import Holiday

MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = range(7)

FIXED_HOLIDAYS: Tuple[Tuple[int, int, str], ...] = (
    (1, 1, "New Year's Day"),
    (2, 11, "National Foundation Day"),
    (2, 23, "Emperor's Birthday"),
    (4, 29, "Showa Day"),
    (5, 3, "Constitution Memorial Day"),
    (5, 4, "Greenery Day"),
    (5, 5, "Children's Day"),
    (8, 11, "Mountain Day"),
    (11, 3, "Culture Day"),
    (11, 23, "Labour Thanksgiving Day"),
)

# (month, weekday, occurrence, name)
NTH_WEEKDAY_HOLIDAYS: Tuple[Tuple[int, int, int, str], ...] = (
    (1, MONDAY, 2, "Coming of Age Day"),
    (7, MONDAY, 3, "Marine Day"),
    (9, MONDAY, 3, "Respect for the Aged Day"),
    (10, MONDAY, 2, "Sports Day"),
)

VERNAL_EQUINOX_NAME = "Vernal Equinox Day"
AUTUMNAL_EQUINOX_NAME = "Autumnal Equinox Day"
SUBSTITUTE_HOLIDAY_NAME = "Substitute Holiday"

# Day of month per known year. These values are what persisted plans were
# reviewed against; keep them even where they differ from the ephemeris.
VERNAL_EQUINOX_DAYS: Mapping[int, int] = {
    2020: 20,
    2021: 20,
    2022: 21,
    2023: 21,
    2024: 20,
    2025: 21,
    2026: 20,
    2027: 21,
    2028: 20,
    2029: 20,
    2030: 20,
}
AUTUMNAL_EQUINOX_DAYS: Mapping[int, int] = {
    2020: 22,
    2021: 23,
    2022: 23,
    2023: 23,
    2024: 23,
    2025: 23,
    2026: 23,
    2027: 23,
    2028: 22,
    2029: 23,
    2030: 23,
}
VERNAL_EQUINOX_FALLBACK_DAY = 20
AUTUMNAL_EQUINOX_FALLBACK_DAY = 23


def nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    """Return the ``n``-th ``weekday`` (Monday = 0) of the given month."""

    if not 1 <= n <= 5:
        raise ValueError("Occurrence must be in range 1..5")
    if not MONDAY <= weekday <= SUNDAY:
        raise ValueError("Weekday indices must be in range 0..6")
    first = date(year, month, 1)
    offset = (weekday - first.weekday() + 7) % 7
    result = first + timedelta(days=offset + (n - 1) * 7)
    if result.month != month:
        raise ValueError(
            f"{year}-{month:02d} has no occurrence {n} of weekday {weekday}"
        )
    return result


def is_equinox_approximate(year: int) -> bool:
    """True when either equinox of ``year`` comes from the fallback date."""

    return year not in VERNAL_EQUINOX_DAYS or year not in AUTUMNAL_EQUINOX_DAYS


def vernal_equinox(year: int) -> date:
    return date(year, 3, VERNAL_EQUINOX_DAYS.get(year, VERNAL_EQUINOX_FALLBACK_DAY))


def autumnal_equinox(year: int) -> date:
    return date(
        year, 9, AUTUMNAL_EQUINOX_DAYS.get(year, AUTUMNAL_EQUINOX_FALLBACK_DAY)
    )


def _base_holidays(year: int) -> List[Holiday]:
    holidays = [Holiday(date(year, month, day), name) for month, day, name in FIXED_HOLIDAYS]
    holidays.extend(
        Holiday(nth_weekday(year, month, weekday, n), name)
        for month, weekday, n, name in NTH_WEEKDAY_HOLIDAYS
    )
    holidays.append(Holiday(vernal_equinox(year), VERNAL_EQUINOX_NAME))
    holidays.append(Holiday(autumnal_equinox(year), AUTUMNAL_EQUINOX_NAME))
    return holidays


def national_holidays(year: int) -> Tuple[Holiday, ...]:
    """Return the national holidays of ``year`` sorted by date.

    The substitute rule runs once over the base holidays: a Sunday holiday
    adds the following Monday unless that Monday is already a holiday.
    Substitutes are not themselves checked again.
    """

    by_day: Dict[date, str] = {}
    for holiday in _base_holidays(year):
        by_day.setdefault(holiday.day, holiday.name)

    substitutes: Dict[date, str] = {}
    for day, name in by_day.items():
        if day.weekday() != SUNDAY:
            continue
        monday = day + timedelta(days=1)
        if monday in by_day or monday in substitutes:
            continue
        substitutes[monday] = f"{SUBSTITUTE_HOLIDAY_NAME} ({name})"

    merged = {**by_day, **substitutes}
    return tuple(Holiday(day, merged[day]) for day in sorted(merged))


def holiday_names(years: Iterable[int]) -> Dict[date, str]:
    """Map every national holiday of ``years`` to its display name."""

    names: Dict[date, str] = {}
    for year in sorted(set(years)):
        for holiday in national_holidays(year):
            names.setdefault(holiday.day, holiday.name)
    return names


__all__ = [
    "FIXED_HOLIDAYS",
    "NTH_WEEKDAY_HOLIDAYS",
    "VERNAL_EQUINOX_DAYS",
    "AUTUMNAL_EQUINOX_DAYS",
    "nth_weekday",
    "is_equinox_approximate",
    "vernal_equinox",
    "autumnal_equinox",
    "national_holidays",
    "holiday_names",
]
