"""Demonstration script for the manufacturing plan calendar."""

from __future__ import annotations

from datetime import date
from pprint import pprint

from . import PlanEdit, PlanningService
from .config import configure_logging


def main() -> None:
    configure_logging("INFO")
    planner = PlanningService()

    # Master data
    planner.add_category("BRK", "Brackets")
    planner.add_category("SHF", "Shafts")
    bracket = planner.register_item("B0001", "Bracket L", category_code="BRK")
    shaft = planner.register_item(
        "S0001",
        "Shaft 40mm",
        category_code="SHF",
        manufacture_start_date=date(2025, 3, 17),
        remarks="New product line",
    )
    planner.add_custom_holiday(date(2025, 3, 28), "Plant inventory")

    edits = [
        PlanEdit(bracket.id, date(2025, 3, 3), "12"),
        PlanEdit(bracket.id, date(2025, 3, 4), "15"),
        PlanEdit(shaft.id, date(2025, 3, 10), "5"),
        PlanEdit(shaft.id, date(2025, 3, 18), "8"),
        PlanEdit(shaft.id, date(2025, 3, 19), "120"),
    ]
    result = planner.save_plans("2025-03", edits)
    print(f"Accepted: {result.accepted_count}")
    pprint(result.errors)

    view = planner.load_month("2025-03")
    print("\nNon-working days:")
    for day in view.calendar.dates:
        if view.calendar.is_non_working(day):
            print(f"  {day:%Y-%m-%d} {view.calendar.label(day)}")

    print("\nPlan grid:")
    for item in view.items:
        cells = ", ".join(
            f"{day:%d}={quantity}" for day, quantity in sorted(view.grid[item.id].items())
        )
        print(f"  {item.code} {item.name}: {cells or '-'}")
    print(f"\nDaily totals: {sum(view.grid.daily_totals().values())} units planned")


if __name__ == "__main__":
    main()
