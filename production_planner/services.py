"""Service layer that implements the planning use-cases."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from .domain import (
    CATEGORY_CODE_MAX_LENGTH,
    CATEGORY_NAME_MAX_LENGTH,
    HOLIDAY_COMMENT_MAX_LENGTH,
    ITEM_CODE_MAX_LENGTH,
    ITEM_NAME_MAX_LENGTH,
    ITEM_REMARKS_MAX_LENGTH,
    MAX_QUANTITY,
    MIN_QUANTITY,
    BeforeManufactureStart,
    CustomHoliday,
    InvalidQuantity,
    Item,
    ItemCategory,
    PlanEdit,
    PlanningError,
)
from .grid import PlanGrid, assemble_grid
from .month_calendar import MonthCalendar, YearMonth, build_month, parse_year_month
from .repository import (
    DuplicateRecordError,
    InMemoryPlanStore,
    MasterDataStore,
    PlanStore,
    RecordNotFoundError,
    UniqueConstraintViolation,
)

logger = logging.getLogger(__name__)

_QUANTITY_PATTERN = re.compile(r"^[+-]?\d+$", re.ASCII)


def parse_quantity(edit: PlanEdit) -> Optional[int]:
    """Return the quantity of ``edit``, or ``None`` when the cell is cleared.

    Raises :class:`InvalidQuantity` for anything that is not a whole number
    in range.
    """

    text = (edit.raw_quantity or "").strip()
    if not text:
        return None
    if not _QUANTITY_PATTERN.match(text):
        raise InvalidQuantity(edit.item_id, edit.plan_date, edit.raw_quantity)
    quantity = int(text)
    if not MIN_QUANTITY <= quantity <= MAX_QUANTITY:
        raise InvalidQuantity(edit.item_id, edit.plan_date, edit.raw_quantity)
    return quantity


@dataclass(frozen=True, slots=True)
class CellIssue:
    """A rejected cell edit."""

    item_id: int
    plan_date: date
    kind: str
    message: str


@dataclass(slots=True)
class BatchResult:
    """Outcome of a batch save; failed cells do not undo accepted ones."""

    accepted_count: int = 0
    skipped_count: int = 0
    issues: List[CellIssue] = field(default_factory=list)

    @property
    def errors(self) -> List[str]:
        return [issue.message for issue in self.issues]

    @property
    def success(self) -> bool:
        return not self.issues


class PlanMutator:
    """Validates cell edits and applies them to a :class:`PlanStore`."""

    def __init__(self, store: PlanStore) -> None:
        self.store = store

    def upsert_plan(self, item_id: int, plan_date: date, quantity: int) -> bool:
        """Insert or overwrite the plan of one cell.

        A unique constraint violation on insert means another writer created
        the row in the meantime; the write is retried once as an update.
        Returns ``False`` when that row was deleted again before the retry
        and nothing was written.
        """

        if self.store.get_plan(item_id, plan_date) is not None:
            if self.store.update_plan(item_id, plan_date, quantity):
                return True
        try:
            self.store.insert_plan(item_id, plan_date, quantity)
        except UniqueConstraintViolation:
            logger.info(
                "Plan for item %s on %s created concurrently; updating instead",
                item_id,
                plan_date,
            )
            if not self.store.update_plan(item_id, plan_date, quantity):
                logger.info(
                    "Plan for item %s on %s was removed concurrently; edit not written",
                    item_id,
                    plan_date,
                )
                return False
        return True

    def apply_edit(self, edit: PlanEdit) -> bool:
        """Apply one edit.

        Returns ``False`` when nothing was written: the item is unknown, or a
        concurrent delete removed the cell during the retried update.
        """

        item = self.store.find_item(edit.item_id)
        if item is None:
            logger.debug("Skipping edit for unknown item %s", edit.item_id)
            return False
        quantity = parse_quantity(edit)
        if quantity is None:
            self.store.delete_plan(edit.item_id, edit.plan_date)
            return True
        start = item.manufacture_start_date
        if start is not None and edit.plan_date < start:
            raise BeforeManufactureStart(item, edit.plan_date, start)
        return self.upsert_plan(edit.item_id, edit.plan_date, quantity)

    def save_batch(self, year_month: YearMonth, edits: Iterable[PlanEdit]) -> BatchResult:
        month_start = parse_year_month(year_month)
        result = BatchResult()
        for edit in edits:
            try:
                applied = self.apply_edit(edit)
            except PlanningError as exc:
                logger.debug("Rejected edit %s: %s", edit, exc)
                result.issues.append(
                    CellIssue(
                        item_id=edit.item_id,
                        plan_date=edit.plan_date,
                        kind=type(exc).__name__,
                        message=str(exc),
                    )
                )
                continue
            if applied:
                result.accepted_count += 1
            else:
                result.skipped_count += 1
        logger.info(
            "Saved plan batch for %s: %d accepted, %d skipped, %d rejected",
            month_start.strftime("%Y-%m"),
            result.accepted_count,
            result.skipped_count,
            len(result.issues),
        )
        return result


@dataclass(frozen=True)
class MonthView:
    """Everything the planning screen needs for one month."""

    calendar: MonthCalendar
    items: Tuple[Item, ...]
    grid: PlanGrid
    manufacture_start_dates: Dict[int, Optional[date]]

    def is_editable(self, item_id: int, plan_date: date) -> bool:
        start = self.manufacture_start_dates.get(item_id)
        return start is None or plan_date >= start


def _require_text(value: Optional[str], label: str, max_length: int) -> str:
    text = (value or "").strip()
    if not text:
        raise ValueError(f"{label} is required")
    if len(text) > max_length:
        raise ValueError(f"{label} must be at most {max_length} characters")
    return text


def _optional_text(value: Optional[str], label: str, max_length: int) -> Optional[str]:
    text = (value or "").strip()
    if len(text) > max_length:
        raise ValueError(f"{label} must be at most {max_length} characters")
    return text or None


class PlanningService:
    """Facade that exposes master data and planning use-cases to clients."""

    def __init__(self, store: Optional[MasterDataStore] = None) -> None:
        self.store: MasterDataStore = store or InMemoryPlanStore()
        self.mutator = PlanMutator(self.store)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------
    def _check_item_fields(
        self,
        code: str,
        name: str,
        category_code: Optional[str],
        remarks: Optional[str],
    ) -> Tuple[str, str, Optional[str], Optional[str]]:
        code = _require_text(code, "Item code", ITEM_CODE_MAX_LENGTH)
        name = _require_text(name, "Item name", ITEM_NAME_MAX_LENGTH)
        remarks = _optional_text(remarks, "Remarks", ITEM_REMARKS_MAX_LENGTH)
        category_code = (category_code or "").strip() or None
        if category_code is not None and self.store.get_category(category_code) is None:
            raise RecordNotFoundError(f"Category {category_code!r} does not exist")
        return code, name, category_code, remarks

    def register_item(
        self,
        code: str,
        name: str,
        *,
        category_code: Optional[str] = None,
        manufacture_start_date: Optional[date] = None,
        remarks: Optional[str] = None,
    ) -> Item:
        code, name, category_code, remarks = self._check_item_fields(
            code, name, category_code, remarks
        )
        if self.store.item_code_exists(code):
            raise DuplicateRecordError(f"Item code {code!r} is already in use")
        item = self.store.add_item(
            Item(
                id=0,
                code=code,
                name=name,
                category_code=category_code,
                manufacture_start_date=manufacture_start_date,
                remarks=remarks,
            )
        )
        logger.info("Registered item %s (%s)", item.id, item.code)
        return item

    def update_item(
        self,
        item_id: int,
        code: str,
        name: str,
        *,
        category_code: Optional[str] = None,
        manufacture_start_date: Optional[date] = None,
        remarks: Optional[str] = None,
    ) -> Item:
        code, name, category_code, remarks = self._check_item_fields(
            code, name, category_code, remarks
        )
        if self.store.item_code_exists(code, exclude_id=item_id):
            raise DuplicateRecordError(f"Item code {code!r} is already in use")
        return self.store.update_item(
            Item(
                id=item_id,
                code=code,
                name=name,
                category_code=category_code,
                manufacture_start_date=manufacture_start_date,
                remarks=remarks,
            )
        )

    def get_item(self, item_id: int) -> Item:
        item = self.store.find_item(item_id)
        if item is None:
            raise RecordNotFoundError(f"Item {item_id!r} not found")
        return item

    def search_items(
        self,
        name: Optional[str] = None,
        *,
        code: Optional[str] = None,
        category_code: Optional[str] = None,
    ) -> List[Item]:
        return self.store.search_items(
            name=(name or "").strip() or None,
            code=(code or "").strip() or None,
            category_code=(category_code or "").strip() or None,
        )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def list_categories(self) -> List[ItemCategory]:
        return self.store.list_categories()

    def add_category(self, code: str, name: str) -> ItemCategory:
        category = ItemCategory(
            code=_require_text(code, "Category code", CATEGORY_CODE_MAX_LENGTH),
            name=_require_text(name, "Category name", CATEGORY_NAME_MAX_LENGTH),
        )
        self.store.add_category(category)
        return category

    def rename_category(self, code: str, name: str) -> ItemCategory:
        category = ItemCategory(
            code=_require_text(code, "Category code", CATEGORY_CODE_MAX_LENGTH),
            name=_require_text(name, "Category name", CATEGORY_NAME_MAX_LENGTH),
        )
        self.store.update_category(category)
        return category

    def delete_category(self, code: str) -> None:
        self.store.remove_category(_require_text(code, "Category code", CATEGORY_CODE_MAX_LENGTH))

    # ------------------------------------------------------------------
    # Custom holidays
    # ------------------------------------------------------------------
    def list_custom_holidays(self) -> List[CustomHoliday]:
        return self.store.list_custom_holidays()

    def add_custom_holiday(self, day: date, comment: Optional[str] = None) -> CustomHoliday:
        comment = _optional_text(comment, "Comment", HOLIDAY_COMMENT_MAX_LENGTH)
        holiday = self.store.add_custom_holiday(day, comment)
        logger.info("Added custom holiday %s", day)
        return holiday

    def update_custom_holiday_comment(
        self, holiday_id: int, comment: Optional[str]
    ) -> CustomHoliday:
        comment = _optional_text(comment, "Comment", HOLIDAY_COMMENT_MAX_LENGTH)
        return self.store.update_custom_holiday(holiday_id, comment)

    def delete_custom_holiday(self, holiday_id: int) -> None:
        self.store.remove_custom_holiday(holiday_id)

    # ------------------------------------------------------------------
    # Manufacturing plans
    # ------------------------------------------------------------------
    def load_month(self, year_month: YearMonth) -> MonthView:
        calendar = build_month(year_month, self.store.list_custom_holidays())
        items = tuple(self.store.list_items())
        plans = self.store.list_plans(calendar.start, calendar.end)
        return MonthView(
            calendar=calendar,
            items=items,
            grid=assemble_grid(items, calendar.dates, plans),
            manufacture_start_dates={item.id: item.manufacture_start_date for item in items},
        )

    def save_plans(self, year_month: YearMonth, edits: Iterable[PlanEdit]) -> BatchResult:
        return self.mutator.save_batch(year_month, edits)


__all__ = [
    "parse_quantity",
    "CellIssue",
    "BatchResult",
    "PlanMutator",
    "MonthView",
    "PlanningService",
]
