from datetime import date

import pytest

from production_planner.repository import InMemoryPlanStore
from production_planner.services import PlanningService
from production_planner.storage import PlannerDatabase


@pytest.fixture
def store():
    return InMemoryPlanStore()


@pytest.fixture
def service(store):
    return PlanningService(store)


@pytest.fixture
def database(tmp_path):
    db = PlannerDatabase(str(tmp_path / "planner.sqlite3"))
    yield db
    db.close()


@pytest.fixture
def sqlite_service(database):
    return PlanningService(database.store)


@pytest.fixture
def three_items(service):
    """Items 1..3; item 2 may only be planned from April 2025."""

    first = service.register_item("A0001", "Bracket")
    second = service.register_item(
        "A0002", "Shaft", manufacture_start_date=date(2025, 4, 1)
    )
    third = service.register_item("A0003", "Flange")
    return first, second, third
