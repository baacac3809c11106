from datetime import date

import pytest

from production_planner.domain import PlanEdit
from production_planner.month_calendar import NON_WORKING_LABEL
from production_planner.repository import (
    DuplicateRecordError,
    RecordNotFoundError,
    RepositoryError,
)


@pytest.fixture(params=["memory", "sqlite"])
def planner(request):
    if request.param == "memory":
        return request.getfixturevalue("service")
    return request.getfixturevalue("sqlite_service")


def test_register_and_search_items(planner):
    planner.add_category("BRK", "Brackets")
    bracket = planner.register_item("B0001", "Bracket L", category_code="BRK")
    planner.register_item("B0002", "Bracket S", category_code="BRK", remarks="thin")
    planner.register_item("S0001", "Shaft")

    assert bracket.id > 0
    assert bracket.category_name == "Brackets"
    assert [item.code for item in planner.search_items("Bracket")] == ["B0001", "B0002"]
    assert [item.code for item in planner.search_items("bracket")] == ["B0001", "B0002"]
    assert [item.code for item in planner.search_items("SHAFT")] == ["S0001"]
    assert [item.code for item in planner.search_items(code="S0001")] == ["S0001"]
    assert len(planner.search_items(category_code="BRK")) == 2
    assert len(planner.search_items()) == 3
    assert planner.get_item(bracket.id).name == "Bracket L"


def test_search_treats_wildcards_literally(planner):
    planner.register_item("B0001", "Bracket")
    planner.register_item("B0002", "50%off")
    planner.register_item("B0003", "Pin_A")

    assert [item.code for item in planner.search_items("%")] == ["B0002"]
    assert [item.code for item in planner.search_items("_")] == ["B0003"]
    assert [item.code for item in planner.search_items("n_a")] == ["B0003"]
    assert planner.search_items("\\") == []


def test_item_validation(planner):
    planner.register_item("B0001", "Bracket")
    with pytest.raises(DuplicateRecordError):
        planner.register_item("B0001", "Other")
    with pytest.raises(ValueError):
        planner.register_item("", "Nameless")
    with pytest.raises(ValueError):
        planner.register_item("TOOLONG", "Bracket")
    with pytest.raises(ValueError):
        planner.register_item("B0002", "A name that is too long")
    with pytest.raises(RecordNotFoundError):
        planner.register_item("B0003", "Bracket", category_code="NOPE")
    with pytest.raises(RecordNotFoundError):
        planner.get_item(999)


def test_update_item(planner):
    first = planner.register_item("B0001", "Bracket")
    second = planner.register_item("B0002", "Shaft")

    updated = planner.update_item(
        first.id, "B0001", "Bracket XL", manufacture_start_date=date(2025, 4, 1)
    )
    assert updated.name == "Bracket XL"
    assert planner.get_item(first.id).manufacture_start_date == date(2025, 4, 1)
    with pytest.raises(DuplicateRecordError):
        planner.update_item(second.id, "B0001", "Shaft")


def test_categories(planner):
    planner.add_category("SHF", "Shafts")
    planner.add_category("BRK", "Brackets")
    assert [category.code for category in planner.list_categories()] == ["BRK", "SHF"]

    planner.rename_category("BRK", "Angle brackets")
    assert planner.list_categories()[0].name == "Angle brackets"

    with pytest.raises(DuplicateRecordError):
        planner.add_category("BRK", "Again")
    with pytest.raises(ValueError):
        planner.add_category("X" * 11, "Too long")

    planner.register_item("S0001", "Shaft", category_code="SHF")
    with pytest.raises(RepositoryError):
        planner.delete_category("SHF")
    planner.delete_category("BRK")
    assert [category.code for category in planner.list_categories()] == ["SHF"]
    with pytest.raises(RecordNotFoundError):
        planner.delete_category("BRK")


def test_custom_holidays(planner):
    holiday = planner.add_custom_holiday(date(2025, 3, 27), "Plant inventory")
    planner.add_custom_holiday(date(2025, 3, 12))
    assert [h.holiday_date for h in planner.list_custom_holidays()] == [
        date(2025, 3, 12),
        date(2025, 3, 27),
    ]
    with pytest.raises(DuplicateRecordError):
        planner.add_custom_holiday(date(2025, 3, 27), "Again")
    with pytest.raises(ValueError):
        planner.update_custom_holiday_comment(holiday.id, "x" * 201)

    planner.update_custom_holiday_comment(holiday.id, "Stocktaking")
    calendar = planner.load_month("2025-03").calendar
    assert calendar.label(date(2025, 3, 27)) == "Stocktaking"
    assert calendar.label(date(2025, 3, 12)) == NON_WORKING_LABEL

    planner.delete_custom_holiday(holiday.id)
    assert not planner.load_month("2025-03").calendar.is_non_working(date(2025, 3, 27))
    with pytest.raises(RecordNotFoundError):
        planner.delete_custom_holiday(holiday.id)


def test_load_month_view(planner):
    bracket = planner.register_item("B0001", "Bracket")
    shaft = planner.register_item("S0001", "Shaft", manufacture_start_date=date(2025, 3, 17))
    planner.save_plans(
        "2025-03",
        [
            PlanEdit(bracket.id, date(2025, 3, 3), "12"),
            PlanEdit(shaft.id, date(2025, 3, 18), "4"),
            PlanEdit(bracket.id, date(2025, 4, 1), "9"),
        ],
    )
    view = planner.load_month("2025-03")

    assert [item.id for item in view.items] == [bracket.id, shaft.id]
    assert view.grid[bracket.id][date(2025, 3, 3)] == 12
    assert view.grid[shaft.id][date(2025, 3, 18)] == 4
    assert date(2025, 4, 1) not in view.grid[bracket.id]
    assert view.manufacture_start_dates == {bracket.id: None, shaft.id: date(2025, 3, 17)}
    assert not view.is_editable(shaft.id, date(2025, 3, 16))
    assert view.is_editable(shaft.id, date(2025, 3, 17))
    assert view.is_editable(bracket.id, date(2025, 3, 1))
    assert planner.load_month("2025-04").grid[bracket.id][date(2025, 4, 1)] == 9
