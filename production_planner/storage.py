"""SQLite-backed persistence helpers for the planning system."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date
from typing import Any, Iterator, List, Optional, Sequence

from .domain import CustomHoliday, Item, ItemCategory, ManufacturingPlan
from .repository import (
    DuplicateRecordError,
    RecordNotFoundError,
    RepositoryError,
    UniqueConstraintViolation,
)

logger = logging.getLogger(__name__)

SCHEMA = (
    "CREATE TABLE IF NOT EXISTS item_categories ("
    " code TEXT PRIMARY KEY, name TEXT NOT NULL)",
    "CREATE TABLE IF NOT EXISTS items ("
    " id INTEGER PRIMARY KEY AUTOINCREMENT,"
    " code TEXT NOT NULL UNIQUE,"
    " name TEXT NOT NULL,"
    " category_code TEXT NULL REFERENCES item_categories(code),"
    " manufacture_start_date TEXT NULL,"
    " remarks TEXT NULL)",
    "CREATE TABLE IF NOT EXISTS custom_holidays ("
    " id INTEGER PRIMARY KEY AUTOINCREMENT,"
    " holiday_date TEXT NOT NULL UNIQUE,"
    " comment TEXT NULL)",
    "CREATE TABLE IF NOT EXISTS manufacturing_plans ("
    " id INTEGER PRIMARY KEY AUTOINCREMENT,"
    " item_id INTEGER NOT NULL REFERENCES items(id),"
    " plan_date TEXT NOT NULL,"
    " quantity INTEGER NOT NULL CHECK (quantity BETWEEN 1 AND 99))",
    "CREATE UNIQUE INDEX IF NOT EXISTS ix_manufacturing_plans_item_date"
    " ON manufacturing_plans (item_id, plan_date)",
)

_ITEM_SELECT = (
    "SELECT i.id, i.code, i.name, i.category_code, i.manufacture_start_date,"
    " i.remarks, c.name AS category_name"
    " FROM items i LEFT JOIN item_categories c ON i.category_code = c.code"
)


def _is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
    return "UNIQUE" in str(exc).upper()


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _to_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _row_to_item(row: sqlite3.Row) -> Item:
    return Item(
        id=row["id"],
        code=row["code"],
        name=row["name"],
        category_code=row["category_code"],
        manufacture_start_date=_to_date(row["manufacture_start_date"]),
        remarks=row["remarks"],
        category_name=row["category_name"],
    )


def _row_to_plan(row: sqlite3.Row) -> ManufacturingPlan:
    return ManufacturingPlan(
        item_id=row["item_id"],
        plan_date=date.fromisoformat(row["plan_date"]),
        quantity=row["quantity"],
    )


def _row_to_holiday(row: sqlite3.Row) -> CustomHoliday:
    return CustomHoliday(
        id=row["id"],
        holiday_date=date.fromisoformat(row["holiday_date"]),
        comment=row["comment"],
    )


class SQLitePlanStore:
    """Plan store that persists records inside SQLite.

    The unique index on ``(item_id, plan_date)`` is what keeps concurrent
    writers from creating two plans for the same cell.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        self._connection = connection
        self._lock = threading.RLock()
        with self._lock:
            for statement in SCHEMA:
                self._connection.execute(statement)
            self._connection.commit()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._connection
            except BaseException:
                self._connection.rollback()
                raise
            else:
                self._connection.commit()

    def _query(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        with self._lock:
            return self._connection.execute(sql, params).fetchall()

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------
    def find_item(self, item_id: int) -> Optional[Item]:
        rows = self._query(f"{_ITEM_SELECT} WHERE i.id = ?", (item_id,))
        return _row_to_item(rows[0]) if rows else None

    def list_items(self) -> List[Item]:
        return [_row_to_item(row) for row in self._query(f"{_ITEM_SELECT} ORDER BY i.id")]

    def search_items(
        self,
        name: Optional[str] = None,
        code: Optional[str] = None,
        category_code: Optional[str] = None,
    ) -> List[Item]:
        where: List[str] = []
        params: List[Any] = []
        if name:
            where.append("i.name LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(name)}%")
        if code:
            where.append("i.code = ?")
            params.append(code)
        if category_code:
            where.append("i.category_code = ?")
            params.append(category_code)
        sql = _ITEM_SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        return [_row_to_item(row) for row in self._query(sql + " ORDER BY i.id", params)]

    def item_code_exists(self, code: str, exclude_id: Optional[int] = None) -> bool:
        if exclude_id is None:
            rows = self._query("SELECT 1 FROM items WHERE code = ? LIMIT 1", (code,))
        else:
            rows = self._query(
                "SELECT 1 FROM items WHERE code = ? AND id <> ? LIMIT 1", (code, exclude_id)
            )
        return bool(rows)

    def add_item(self, item: Item) -> Item:
        try:
            with self._transaction() as connection:
                cursor = connection.execute(
                    "INSERT INTO items (code, name, category_code, manufacture_start_date, remarks)"
                    " VALUES (?, ?, ?, ?, ?)",
                    (
                        item.code,
                        item.name,
                        item.category_code,
                        item.manufacture_start_date.isoformat()
                        if item.manufacture_start_date
                        else None,
                        item.remarks,
                    ),
                )
                item_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise RepositoryError(f"Item {item.code!r} rejected: {exc}") from exc
            raise DuplicateRecordError(f"Item code {item.code!r} is already in use") from exc
        stored = self.find_item(item_id)
        assert stored is not None  # pragma: no cover - defensive
        return stored

    def update_item(self, item: Item) -> Item:
        try:
            with self._transaction() as connection:
                cursor = connection.execute(
                    "UPDATE items SET code = ?, name = ?, category_code = ?,"
                    " manufacture_start_date = ?, remarks = ? WHERE id = ?",
                    (
                        item.code,
                        item.name,
                        item.category_code,
                        item.manufacture_start_date.isoformat()
                        if item.manufacture_start_date
                        else None,
                        item.remarks,
                        item.id,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise RepositoryError(f"Item {item.code!r} rejected: {exc}") from exc
            raise DuplicateRecordError(f"Item code {item.code!r} is already in use") from exc
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Item {item.id!r} not found")
        stored = self.find_item(item.id)
        assert stored is not None  # pragma: no cover - defensive
        return stored

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def list_categories(self) -> List[ItemCategory]:
        rows = self._query("SELECT code, name FROM item_categories ORDER BY code")
        return [ItemCategory(code=row["code"], name=row["name"]) for row in rows]

    def get_category(self, code: str) -> Optional[ItemCategory]:
        rows = self._query("SELECT code, name FROM item_categories WHERE code = ?", (code,))
        return ItemCategory(code=rows[0]["code"], name=rows[0]["name"]) if rows else None

    def add_category(self, category: ItemCategory) -> None:
        try:
            with self._transaction() as connection:
                connection.execute(
                    "INSERT INTO item_categories (code, name) VALUES (?, ?)",
                    (category.code, category.name),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(f"Category {category.code!r} already exists") from exc

    def update_category(self, category: ItemCategory) -> None:
        with self._transaction() as connection:
            cursor = connection.execute(
                "UPDATE item_categories SET name = ? WHERE code = ?",
                (category.name, category.code),
            )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Category {category.code!r} not found")

    def remove_category(self, code: str) -> None:
        with self._transaction() as connection:
            referenced = connection.execute(
                "SELECT 1 FROM items WHERE category_code = ? LIMIT 1", (code,)
            ).fetchone()
            if referenced is not None:
                raise RepositoryError(f"Category {code!r} is still referenced by items")
            cursor = connection.execute("DELETE FROM item_categories WHERE code = ?", (code,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Category {code!r} not found")

    # ------------------------------------------------------------------
    # Custom holidays
    # ------------------------------------------------------------------
    def list_custom_holidays(self) -> List[CustomHoliday]:
        rows = self._query(
            "SELECT id, holiday_date, comment FROM custom_holidays ORDER BY holiday_date"
        )
        return [_row_to_holiday(row) for row in rows]

    def add_custom_holiday(self, holiday_date: date, comment: Optional[str]) -> CustomHoliday:
        try:
            with self._transaction() as connection:
                cursor = connection.execute(
                    "INSERT INTO custom_holidays (holiday_date, comment) VALUES (?, ?)",
                    (holiday_date.isoformat(), comment),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(
                f"{holiday_date:%Y-%m-%d} is already a holiday"
            ) from exc
        return CustomHoliday(id=cursor.lastrowid, holiday_date=holiday_date, comment=comment)

    def update_custom_holiday(self, holiday_id: int, comment: Optional[str]) -> CustomHoliday:
        with self._transaction() as connection:
            connection.execute(
                "UPDATE custom_holidays SET comment = ? WHERE id = ?", (comment, holiday_id)
            )
        rows = self._query(
            "SELECT id, holiday_date, comment FROM custom_holidays WHERE id = ?", (holiday_id,)
        )
        if not rows:
            raise RecordNotFoundError(f"Custom holiday {holiday_id!r} not found")
        return _row_to_holiday(rows[0])

    def remove_custom_holiday(self, holiday_id: int) -> None:
        with self._transaction() as connection:
            cursor = connection.execute("DELETE FROM custom_holidays WHERE id = ?", (holiday_id,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Custom holiday {holiday_id!r} not found")

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------
    def get_plan(self, item_id: int, plan_date: date) -> Optional[ManufacturingPlan]:
        rows = self._query(
            "SELECT item_id, plan_date, quantity FROM manufacturing_plans"
            " WHERE item_id = ? AND plan_date = ?",
            (item_id, plan_date.isoformat()),
        )
        return _row_to_plan(rows[0]) if rows else None

    def insert_plan(self, item_id: int, plan_date: date, quantity: int) -> None:
        try:
            with self._transaction() as connection:
                connection.execute(
                    "INSERT INTO manufacturing_plans (item_id, plan_date, quantity)"
                    " VALUES (?, ?, ?)",
                    (item_id, plan_date.isoformat(), quantity),
                )
        except sqlite3.IntegrityError as exc:
            if not _is_unique_violation(exc):
                raise RepositoryError(f"Plan for item {item_id!r} rejected: {exc}") from exc
            raise UniqueConstraintViolation(
                f"Plan for item {item_id!r} on {plan_date:%Y-%m-%d} already exists"
            ) from exc

    def update_plan(self, item_id: int, plan_date: date, quantity: int) -> bool:
        with self._transaction() as connection:
            cursor = connection.execute(
                "UPDATE manufacturing_plans SET quantity = ? WHERE item_id = ? AND plan_date = ?",
                (quantity, item_id, plan_date.isoformat()),
            )
        return cursor.rowcount > 0

    def delete_plan(self, item_id: int, plan_date: date) -> bool:
        with self._transaction() as connection:
            cursor = connection.execute(
                "DELETE FROM manufacturing_plans WHERE item_id = ? AND plan_date = ?",
                (item_id, plan_date.isoformat()),
            )
        return cursor.rowcount > 0

    def list_plans(self, start: date, end: date) -> List[ManufacturingPlan]:
        rows = self._query(
            "SELECT item_id, plan_date, quantity FROM manufacturing_plans"
            " WHERE plan_date BETWEEN ? AND ? ORDER BY plan_date, item_id",
            (start.isoformat(), end.isoformat()),
        )
        return [_row_to_plan(row) for row in rows]

    def plan_count(self) -> int:
        rows = self._query("SELECT COUNT(1) FROM manufacturing_plans")
        return int(rows[0][0])


class PlannerDatabase:
    """Convenience facade owning the SQLite connection and its store."""

    def __init__(self, path: str) -> None:
        connection = sqlite3.connect(path, check_same_thread=False)
        self._connection = connection
        self.store = SQLitePlanStore(connection)
        logger.debug("Opened planner database at %s", path)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "PlannerDatabase":  # pragma: no cover - convenience
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[BaseException],
    ) -> None:  # pragma: no cover - convenience
        self.close()


__all__ = ["SQLitePlanStore", "PlannerDatabase", "SCHEMA"]
