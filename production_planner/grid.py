"""Read-side projection of plan rows onto the item x day grid."""

from __future__ import annotations

from datetime import date
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple

from .domain import Item, ManufacturingPlan


class PlanGrid(Mapping[int, Mapping[date, int]]):
    """Immutable ``grid[item_id][plan_date] -> quantity`` mapping.

    Cells without a plan are absent from the row mapping.
    """

    def __init__(self, dates: Sequence[date], rows: Dict[int, Dict[date, int]]) -> None:
        self._dates = tuple(dates)
        self._rows: Mapping[int, Mapping[date, int]] = MappingProxyType(
            {item_id: MappingProxyType(dict(cells)) for item_id, cells in rows.items()}
        )

    def __getitem__(self, item_id: int) -> Mapping[date, int]:
        return self._rows[item_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def dates(self) -> Tuple[date, ...]:
        return self._dates

    def quantity(self, item_id: int, plan_date: date) -> Optional[int]:
        row = self._rows.get(item_id)
        if row is None:
            return None
        return row.get(plan_date)

    def daily_totals(self) -> Dict[date, int]:
        totals = {day: 0 for day in self._dates}
        for cells in self._rows.values():
            for day, quantity in cells.items():
                totals[day] += quantity
        return totals

    def item_totals(self) -> Dict[int, int]:
        return {item_id: sum(cells.values()) for item_id, cells in self._rows.items()}


def assemble_grid(
    items: Iterable[Item],
    dates: Sequence[date],
    plan_rows: Iterable[ManufacturingPlan],
) -> PlanGrid:
    """Merge plan rows into a grid covering ``items`` and ``dates``."""

    date_set = set(dates)
    rows: Dict[int, Dict[date, int]] = {item.id: {} for item in items}
    for plan in plan_rows:
        if plan.plan_date not in date_set:
            continue
        rows.setdefault(plan.item_id, {})[plan.plan_date] = plan.quantity
    return PlanGrid(dates, rows)


__all__ = ["PlanGrid", "assemble_grid"]
