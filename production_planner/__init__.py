"""Manufacturing plan calendar for a small production shop.

This package provides the Japanese holiday calendar, month classification,
the item x day planning grid, and validated batch saving of plan quantities
on top of an in-memory or SQLite store.
"""

from .domain import (
    BeforeManufactureStart,
    CustomHoliday,
    Holiday,
    InvalidQuantity,
    InvalidRange,
    Item,
    ItemCategory,
    ManufacturingPlan,
    PlanEdit,
)
from .grid import PlanGrid, assemble_grid
from .holidays import national_holidays, nth_weekday
from .month_calendar import MonthCalendar, build_month
from .services import BatchResult, PlanMutator, PlanningService

__all__ = [
    "BeforeManufactureStart",
    "CustomHoliday",
    "Holiday",
    "InvalidQuantity",
    "InvalidRange",
    "Item",
    "ItemCategory",
    "ManufacturingPlan",
    "PlanEdit",
    "PlanGrid",
    "assemble_grid",
    "national_holidays",
    "nth_weekday",
    "MonthCalendar",
    "build_month",
    "BatchResult",
    "PlanMutator",
    "PlanningService",
]
