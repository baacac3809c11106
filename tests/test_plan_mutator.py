import logging
import threading
from datetime import date

import pytest

from production_planner.domain import InvalidRange, Item, PlanEdit
from production_planner.repository import InMemoryPlanStore, UniqueConstraintViolation
from production_planner.services import PlanMutator


def _save(service, item_id, day, raw):
    return service.save_plans("2025-03", [PlanEdit(item_id, day, raw)])


def test_save_then_clear_round_trip(service, three_items):
    result = _save(service, 3, date(2025, 3, 10), "15")
    assert result.accepted_count == 1
    assert result.errors == []
    assert service.load_month("2025-03").grid[3][date(2025, 3, 10)] == 15

    result = _save(service, 3, date(2025, 3, 10), "")
    assert result.success
    assert date(2025, 3, 10) not in service.load_month("2025-03").grid[3]


def test_overwrite_keeps_single_row(service, store, three_items):
    _save(service, 1, date(2025, 3, 3), "5")
    _save(service, 1, date(2025, 3, 3), "7")
    assert store.plan_count() == 1
    assert store.get_plan(1, date(2025, 3, 3)).quantity == 7


def test_deleting_missing_cell_is_idempotent(service, store, three_items):
    for _ in range(2):
        result = _save(service, 1, date(2025, 3, 12), "   ")
        assert result.success
        assert result.accepted_count == 1
    assert store.plan_count() == 0


@pytest.mark.parametrize("raw", ["1", "99", " 42 "])
def test_quantity_bounds_accepted(service, store, three_items, raw):
    result = _save(service, 1, date(2025, 3, 3), raw)
    assert result.success
    assert store.get_plan(1, date(2025, 3, 3)).quantity == int(raw)


@pytest.mark.parametrize("raw", ["0", "100", "abc", "99.5", "-1", "1e1", "５"])
def test_quantity_rejected(service, store, three_items, raw):
    result = _save(service, 1, date(2025, 3, 3), raw)
    assert not result.success
    assert result.accepted_count == 0
    assert result.issues[0].kind == "InvalidQuantity"
    assert "Item ID 1" in result.errors[0]
    assert "03/03" in result.errors[0]
    assert store.get_plan(1, date(2025, 3, 3)) is None


def test_rejected_quantity_does_not_touch_existing_row(service, store, three_items):
    _save(service, 1, date(2025, 3, 3), "8")
    _save(service, 1, date(2025, 3, 3), "100")
    assert store.get_plan(1, date(2025, 3, 3)).quantity == 8


def test_before_manufacture_start(service, store, three_items):
    result = service.save_plans(
        "2025-03", [PlanEdit(2, date(2025, 3, 31), "10")]
    )
    assert result.issues[0].kind == "BeforeManufactureStart"
    assert "Shaft" in result.errors[0]
    assert "2025-04-01" in result.errors[0]
    assert store.get_plan(2, date(2025, 3, 31)) is None

    result = service.save_plans("2025-04", [PlanEdit(2, date(2025, 4, 1), "10")])
    assert result.success
    assert store.get_plan(2, date(2025, 4, 1)).quantity == 10


def test_clearing_before_manufacture_start_is_allowed(service, three_items):
    result = service.save_plans("2025-03", [PlanEdit(2, date(2025, 3, 31), "")])
    assert result.success


def test_unknown_item_is_skipped_silently(service, store, three_items):
    result = service.save_plans("2025-03", [PlanEdit(42, date(2025, 3, 3), "10")])
    assert result.success
    assert result.accepted_count == 0
    assert result.skipped_count == 1
    assert store.plan_count() == 0


def test_partial_failure_keeps_good_cells(service, store, three_items):
    edits = [PlanEdit(1, date(2025, 3, day), str(day)) for day in range(3, 8)]
    edits.insert(2, PlanEdit(1, date(2025, 3, 10), "abc"))
    edits.append(PlanEdit(2, date(2025, 3, 10), "3"))
    result = service.save_plans("2025-03", edits)

    assert result.accepted_count == 5
    assert len(result.errors) == 2
    assert store.plan_count() == 5


def test_invalid_year_month_is_raised(service, three_items):
    with pytest.raises(InvalidRange):
        service.save_plans("2025-13", [PlanEdit(1, date(2025, 3, 3), "1")])


class _StaleReadStore(InMemoryPlanStore):
    """Reports no existing plan so the insert path always runs."""

    def get_plan(self, item_id, plan_date):
        return None


def test_unique_violation_is_retried_as_update():
    store = _StaleReadStore()
    service_item = store.add_item(_item("A0001"))
    mutator = PlanMutator(store)

    mutator.save_batch("2025-03", [PlanEdit(service_item.id, date(2025, 3, 3), "4")])
    result = mutator.save_batch(
        "2025-03", [PlanEdit(service_item.id, date(2025, 3, 3), "9")]
    )

    assert result.success
    assert result.accepted_count == 1
    assert store.plan_count() == 1
    assert InMemoryPlanStore.get_plan(store, service_item.id, date(2025, 3, 3)).quantity == 9


class _VanishingRowStore(_StaleReadStore):
    """Insert collides with a row that is deleted before the retried update."""

    def insert_plan(self, item_id, plan_date, quantity):
        raise UniqueConstraintViolation("created concurrently")

    def update_plan(self, item_id, plan_date, quantity):
        return False


def test_write_lost_to_concurrent_delete_is_not_accepted(caplog):
    store = _VanishingRowStore()
    item = store.add_item(_item("A0001"))
    mutator = PlanMutator(store)

    with caplog.at_level(logging.INFO, logger="production_planner.services"):
        result = mutator.save_batch("2025-03", [PlanEdit(item.id, date(2025, 3, 3), "4")])

    assert result.accepted_count == 0
    assert result.skipped_count == 1
    assert store.plan_count() == 0
    assert "removed concurrently" in caplog.text


class _RacingStore:
    """Holds both writers after their existence check so both try to insert."""

    def __init__(self, inner):
        self._inner = inner
        self._barrier = threading.Barrier(2, timeout=5)

    def __getattr__(self, name):
        return getattr(self._inner, name)

    def get_plan(self, item_id, plan_date):
        plan = self._inner.get_plan(item_id, plan_date)
        self._barrier.wait()
        return plan


def _item(code):
    return Item(id=0, code=code, name="Part")


def _race(store):
    item = store.add_item(_item("R0001"))
    racing = _RacingStore(store)
    results = []

    def worker(quantity):
        mutator = PlanMutator(racing)
        results.append(
            mutator.save_batch("2025-03", [PlanEdit(item.id, date(2025, 3, 3), quantity)])
        )

    threads = [threading.Thread(target=worker, args=(value,)) for value in ("10", "20")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert len(results) == 2
    assert all(result.success for result in results)
    assert store.plan_count() == 1
    assert store.get_plan(item.id, date(2025, 3, 3)).quantity in (10, 20)


def test_concurrent_batches_in_memory():
    _race(InMemoryPlanStore())


def test_concurrent_batches_sqlite(database):
    _race(database.store)
