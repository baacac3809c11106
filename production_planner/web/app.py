"""FastAPI-based JSON interface for the manufacturing plan calendar."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..config import configure_logging, load_settings
from ..domain import InvalidRange, PlanEdit
from ..month_calendar import parse_year_month, resolve_year_month
from ..services import MonthView, PlanningService
from ..storage import PlannerDatabase

logger = logging.getLogger(__name__)

QUANTITY_FIELD_PREFIX = "qty_"


def parse_quantity_key(key: str) -> Optional[Tuple[int, date]]:
    """Split ``qty_<itemId>_<YYYY-MM-DD>`` into item id and date."""

    if not key.startswith(QUANTITY_FIELD_PREFIX):
        return None
    parts = key.split("_")
    if len(parts) != 3:
        return None
    try:
        return int(parts[1]), datetime.strptime(parts[2], "%Y-%m-%d").date()
    except ValueError:
        return None


def edits_from_form(form: Iterable[Tuple[str, Any]]) -> List[PlanEdit]:
    """Turn posted form fields into plan edits, ignoring malformed keys."""

    edits: List[PlanEdit] = []
    for key, value in form:
        parsed = parse_quantity_key(key)
        if parsed is None:
            continue
        item_id, plan_date = parsed
        edits.append(PlanEdit(item_id=item_id, plan_date=plan_date, raw_quantity=str(value)))
    return edits


def month_view_payload(view: MonthView) -> Dict[str, Any]:
    calendar = view.calendar
    return {
        "year_month": calendar.start.strftime("%Y-%m"),
        "start_date": calendar.start.isoformat(),
        "end_date": calendar.end.isoformat(),
        "dates": [
            {
                "date": day.isoformat(),
                "non_working": calendar.is_non_working(day),
                "label": calendar.label(day),
            }
            for day in calendar.dates
        ],
        "items": [
            {
                "id": item.id,
                "code": item.code,
                "name": item.name,
                "category_name": item.category_name,
                "manufacture_start_date": item.manufacture_start_date.isoformat()
                if item.manufacture_start_date
                else None,
                "plans": {
                    day.isoformat(): quantity
                    for day, quantity in sorted(view.grid[item.id].items())
                },
            }
            for item in view.items
        ],
    }


def create_app(database_path: Optional[str] = None) -> FastAPI:
    settings = load_settings()
    configure_logging(settings.log_level)
    database = PlannerDatabase(database_path or settings.database_path)
    service = PlanningService(database.store)

    app = FastAPI(title="Manufacturing Plan Calendar")
    app.state.planning_service = service
    app.state.database = database

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - framework hook
        database.close()

    @app.get("/manufacturing")
    async def manufacturing_month(request: Request, year_month: Optional[str] = None):
        service: PlanningService = request.app.state.planning_service
        view = service.load_month(resolve_year_month(year_month))
        return month_view_payload(view)

    @app.post("/manufacturing/save")
    async def save_manufacturing_plans(request: Request):
        service: PlanningService = request.app.state.planning_service
        form = await request.form()
        year_month = str(form.get("year_month") or "")
        try:
            parse_year_month(year_month)
        except InvalidRange:
            return JSONResponse(
                {"success": False, "errors": ["No month was specified."]}, status_code=400
            )
        result = service.save_plans(year_month, edits_from_form(form.multi_items()))
        payload: Mapping[str, Any] = {
            "success": result.success,
            "accepted": result.accepted_count,
            "message": "Manufacturing plan saved." if result.success else None,
            "errors": result.errors,
        }
        return JSONResponse(payload, status_code=200 if result.success else 400)

    return app


__all__ = ["create_app", "edits_from_form", "parse_quantity_key", "month_view_payload"]
