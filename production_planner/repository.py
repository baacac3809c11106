"""Store contracts and the in-memory store used by the planning services."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date
from itertools import count
from typing import Dict, List, MutableMapping, Optional, Protocol, Tuple

from .domain import CustomHoliday, Item, ItemCategory, ManufacturingPlan


class RepositoryError(RuntimeError):
    """Base exception for repository errors."""


class DuplicateRecordError(RepositoryError):
    """Raised when attempting to insert a record that already exists."""


class RecordNotFoundError(RepositoryError):
    """Raised when a requested record is missing."""


class UniqueConstraintViolation(DuplicateRecordError):
    """Raised by a store when a plan for the same item and day already exists."""


class PlanStore(Protocol):
    """Persistence needed by the calendar engine."""

    def find_item(self, item_id: int) -> Optional[Item]:
        ...

    def list_items(self) -> List[Item]:
        ...

    def get_plan(self, item_id: int, plan_date: date) -> Optional[ManufacturingPlan]:
        ...

    def insert_plan(self, item_id: int, plan_date: date, quantity: int) -> None:
        ...

    def update_plan(self, item_id: int, plan_date: date, quantity: int) -> bool:
        ...

    def delete_plan(self, item_id: int, plan_date: date) -> bool:
        ...

    def list_plans(self, start: date, end: date) -> List[ManufacturingPlan]:
        ...

    def list_custom_holidays(self) -> List[CustomHoliday]:
        ...


class MasterDataStore(PlanStore, Protocol):
    """Item, category and custom holiday maintenance."""

    def add_item(self, item: Item) -> Item:
        ...

    def update_item(self, item: Item) -> Item:
        ...

    def search_items(
        self,
        name: Optional[str] = None,
        code: Optional[str] = None,
        category_code: Optional[str] = None,
    ) -> List[Item]:
        ...

    def item_code_exists(self, code: str, exclude_id: Optional[int] = None) -> bool:
        ...

    def list_categories(self) -> List[ItemCategory]:
        ...

    def get_category(self, code: str) -> Optional[ItemCategory]:
        ...

    def add_category(self, category: ItemCategory) -> None:
        ...

    def update_category(self, category: ItemCategory) -> None:
        ...

    def remove_category(self, code: str) -> None:
        ...

    def add_custom_holiday(self, holiday_date: date, comment: Optional[str]) -> CustomHoliday:
        ...

    def update_custom_holiday(self, holiday_id: int, comment: Optional[str]) -> CustomHoliday:
        ...

    def remove_custom_holiday(self, holiday_id: int) -> None:
        ...


class InMemoryPlanStore:
    """Dictionary backed store; the lock makes the unique key checks atomic."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._item_ids = count(1)
        self._holiday_ids = count(1)
        self._items: MutableMapping[int, Item] = {}
        self._categories: MutableMapping[str, ItemCategory] = {}
        self._holidays: MutableMapping[int, CustomHoliday] = {}
        self._plans: Dict[Tuple[int, date], ManufacturingPlan] = {}

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------
    def _with_category_name(self, item: Item) -> Item:
        category = self._categories.get(item.category_code or "")
        return replace(item, category_name=category.name if category else None)

    def find_item(self, item_id: int) -> Optional[Item]:
        with self._lock:
            item = self._items.get(item_id)
            return self._with_category_name(item) if item else None

    def list_items(self) -> List[Item]:
        with self._lock:
            return [self._with_category_name(item) for _, item in sorted(self._items.items())]

    def add_item(self, item: Item) -> Item:
        with self._lock:
            if any(existing.code == item.code for existing in self._items.values()):
                raise DuplicateRecordError(f"Item code {item.code!r} is already in use")
            stored = replace(item, id=next(self._item_ids), category_name=None)
            self._items[stored.id] = stored
            return self._with_category_name(stored)

    def update_item(self, item: Item) -> Item:
        with self._lock:
            if item.id not in self._items:
                raise RecordNotFoundError(f"Item {item.id!r} not found")
            if any(
                existing.code == item.code and existing.id != item.id
                for existing in self._items.values()
            ):
                raise DuplicateRecordError(f"Item code {item.code!r} is already in use")
            stored = replace(item, category_name=None)
            self._items[item.id] = stored
            return self._with_category_name(stored)

    def search_items(
        self,
        name: Optional[str] = None,
        code: Optional[str] = None,
        category_code: Optional[str] = None,
    ) -> List[Item]:
        with self._lock:
            items = [self._with_category_name(item) for _, item in sorted(self._items.items())]
        if name:
            needle = name.casefold()
            items = [item for item in items if needle in item.name.casefold()]
        if code:
            items = [item for item in items if item.code == code]
        if category_code:
            items = [item for item in items if item.category_code == category_code]
        return items

    def item_code_exists(self, code: str, exclude_id: Optional[int] = None) -> bool:
        with self._lock:
            return any(
                item.code == code and item.id != exclude_id for item in self._items.values()
            )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def list_categories(self) -> List[ItemCategory]:
        with self._lock:
            return [self._categories[code] for code in sorted(self._categories)]

    def get_category(self, code: str) -> Optional[ItemCategory]:
        with self._lock:
            return self._categories.get(code)

    def add_category(self, category: ItemCategory) -> None:
        with self._lock:
            if category.code in self._categories:
                raise DuplicateRecordError(f"Category {category.code!r} already exists")
            self._categories[category.code] = category

    def update_category(self, category: ItemCategory) -> None:
        with self._lock:
            if category.code not in self._categories:
                raise RecordNotFoundError(f"Category {category.code!r} not found")
            self._categories[category.code] = category

    def remove_category(self, code: str) -> None:
        with self._lock:
            if code not in self._categories:
                raise RecordNotFoundError(f"Category {code!r} not found")
            if any(item.category_code == code for item in self._items.values()):
                raise RepositoryError(f"Category {code!r} is still referenced by items")
            del self._categories[code]

    # ------------------------------------------------------------------
    # Custom holidays
    # ------------------------------------------------------------------
    def list_custom_holidays(self) -> List[CustomHoliday]:
        with self._lock:
            return sorted(self._holidays.values(), key=lambda holiday: holiday.holiday_date)

    def add_custom_holiday(self, holiday_date: date, comment: Optional[str]) -> CustomHoliday:
        with self._lock:
            if any(h.holiday_date == holiday_date for h in self._holidays.values()):
                raise DuplicateRecordError(f"{holiday_date:%Y-%m-%d} is already a holiday")
            holiday = CustomHoliday(
                id=next(self._holiday_ids), holiday_date=holiday_date, comment=comment
            )
            self._holidays[holiday.id] = holiday
            return holiday

    def update_custom_holiday(self, holiday_id: int, comment: Optional[str]) -> CustomHoliday:
        with self._lock:
            holiday = self._holidays.get(holiday_id)
            if holiday is None:
                raise RecordNotFoundError(f"Custom holiday {holiday_id!r} not found")
            holiday = replace(holiday, comment=comment)
            self._holidays[holiday_id] = holiday
            return holiday

    def remove_custom_holiday(self, holiday_id: int) -> None:
        with self._lock:
            if self._holidays.pop(holiday_id, None) is None:
                raise RecordNotFoundError(f"Custom holiday {holiday_id!r} not found")

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------
    def get_plan(self, item_id: int, plan_date: date) -> Optional[ManufacturingPlan]:
        with self._lock:
            plan = self._plans.get((item_id, plan_date))
            return replace(plan) if plan else None

    def insert_plan(self, item_id: int, plan_date: date, quantity: int) -> None:
        with self._lock:
            key = (item_id, plan_date)
            if key in self._plans:
                raise UniqueConstraintViolation(
                    f"Plan for item {item_id!r} on {plan_date:%Y-%m-%d} already exists"
                )
            self._plans[key] = ManufacturingPlan(item_id, plan_date, quantity)

    def update_plan(self, item_id: int, plan_date: date, quantity: int) -> bool:
        with self._lock:
            plan = self._plans.get((item_id, plan_date))
            if plan is None:
                return False
            plan.quantity = quantity
            return True

    def delete_plan(self, item_id: int, plan_date: date) -> bool:
        with self._lock:
            return self._plans.pop((item_id, plan_date), None) is not None

    def list_plans(self, start: date, end: date) -> List[ManufacturingPlan]:
        with self._lock:
            rows = [
                replace(plan)
                for (_, plan_date), plan in self._plans.items()
                if start <= plan_date <= end
            ]
        rows.sort(key=lambda plan: (plan.plan_date, plan.item_id))
        return rows

    def plan_count(self) -> int:
        with self._lock:
            return len(self._plans)


__all__ = [
    "RepositoryError",
    "DuplicateRecordError",
    "RecordNotFoundError",
    "UniqueConstraintViolation",
    "PlanStore",
    "MasterDataStore",
    "InMemoryPlanStore",
]
