"""Core data structures for the manufacturing plan calendar."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

MIN_QUANTITY = 1
MAX_QUANTITY = 99

ITEM_CODE_MAX_LENGTH = 5
ITEM_NAME_MAX_LENGTH = 10
ITEM_REMARKS_MAX_LENGTH = 100
CATEGORY_CODE_MAX_LENGTH = 10
CATEGORY_NAME_MAX_LENGTH = 50
HOLIDAY_COMMENT_MAX_LENGTH = 200


class PlanningError(ValueError):
    """Base exception for business rule violations."""


class InvalidRange(PlanningError):
    """Raised when a year-month selector cannot be turned into a month."""


class InvalidQuantity(PlanningError):
    """Raised when a plan cell holds a non-numeric or out-of-bounds value."""

    def __init__(self, item_id: int, plan_date: date, raw_quantity: str) -> None:
        self.item_id = item_id
        self.plan_date = plan_date
        self.raw_quantity = raw_quantity
        super().__init__(
            f"Item ID {item_id} on {plan_date:%m/%d}: quantity must be a whole "
            f"number from {MIN_QUANTITY} to {MAX_QUANTITY} (got {raw_quantity!r})."
        )


class BeforeManufactureStart(PlanningError):
    """Raised when a plan date precedes the item's manufacture start date."""

    def __init__(self, item: Item, plan_date: date, start_date: date) -> None:
        self.item_id = item.id
        self.plan_date = plan_date
        self.manufacture_start_date = start_date
        super().__init__(
            f"Item {item.name!r} can be planned from {start_date:%Y-%m-%d} "
            f"onwards; {plan_date:%Y-%m-%d} is too early."
        )


@dataclass(slots=True)
class ItemCategory:
    """Grouping used by the item master."""

    code: str
    name: str


@dataclass(slots=True)
class Item:
    """Item master record.

    ``manufacture_start_date`` is the earliest day a plan may exist for the
    item; ``None`` means no restriction.
    """

    id: int
    code: str
    name: str
    category_code: Optional[str] = None
    manufacture_start_date: Optional[date] = None
    remarks: Optional[str] = None
    category_name: Optional[str] = None


@dataclass(slots=True)
class ManufacturingPlan:
    """Planned production quantity for one item on one day."""

    item_id: int
    plan_date: date
    quantity: int


@dataclass(slots=True)
class CustomHoliday:
    """Ad-hoc non-working day maintained by the plant."""

    id: int
    holiday_date: date
    comment: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Holiday:
    """A national holiday and its display name."""

    day: date
    name: str


@dataclass(frozen=True, slots=True)
class PlanEdit:
    """A single cell edit as submitted by the planning screen."""

    item_id: int
    plan_date: date
    raw_quantity: str


__all__ = [
    "MIN_QUANTITY",
    "MAX_QUANTITY",
    "ITEM_CODE_MAX_LENGTH",
    "ITEM_NAME_MAX_LENGTH",
    "ITEM_REMARKS_MAX_LENGTH",
    "CATEGORY_CODE_MAX_LENGTH",
    "CATEGORY_NAME_MAX_LENGTH",
    "HOLIDAY_COMMENT_MAX_LENGTH",
    "PlanningError",
    "InvalidRange",
    "InvalidQuantity",
    "BeforeManufactureStart",
    "ItemCategory",
    "Item",
    "ManufacturingPlan",
    "CustomHoliday",
    "Holiday",
    "PlanEdit",
]
