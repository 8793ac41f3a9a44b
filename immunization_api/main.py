from __future__ import annotations

from dataclasses import asdict
import logging
import math
import threading
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from immunization.coordinator import (
    Action,
    AddSelection,
    ClearSelection,
    DashboardViews,
    RemoveSelection,
    Resize,
    SetRegion,
    SetSearch,
    SetYear,
    SortBy,
    ViewCoordinator,
)
from immunization.data import LoadError
from immunization_api.schemas import ActionModel, MetaListResponse, MetaYearsResponse


app = FastAPI(title="Immunization Coverage Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)
_state_lock = threading.Lock()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with NaN/inf floats mapped to null."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(status_code=status_code, content=jsonable_encoder(data, custom_encoder={float: _safe_float}))


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def coordinator_for(app: FastAPI) -> ViewCoordinator:
    """Load the data once per app; a failed load is kept and re-raised without retrying."""
    with _state_lock:
        error = getattr(app.state, "load_error", None)
        if error is not None:
            raise error
        coordinator = getattr(app.state, "coordinator", None)
        if coordinator is None:
            try:
                coordinator = ViewCoordinator.from_sources()
            except LoadError as exc:
                app.state.load_error = exc
                raise
            app.state.coordinator = coordinator
        return coordinator


def get_coordinator(request: Request) -> ViewCoordinator:
    return coordinator_for(request.app)


def action_from_model(model: ActionModel) -> Action:
    if model.type == "set_search":
        return SetSearch(text=str(model.value or ""))
    if model.type == "set_region":
        return SetRegion(region=str(model.value or ""))
    if model.type == "set_year":
        return SetYear(target=model.target, year=model.value)
    if model.type == "sort_by":
        if model.sort_key is None:
            raise ValueError("sort_by requires sort_key")
        return SortBy(key=model.sort_key)
    if model.type == "add_selection":
        return AddSelection(name=str(model.value or ""))
    if model.type == "remove_selection":
        if model.value is None:
            raise ValueError("remove_selection requires an index value")
        return RemoveSelection(index=int(model.value))
    if model.type == "clear_selection":
        return ClearSelection()
    return Resize()


def views_payload(views: DashboardViews) -> Dict[str, Any]:
    table = views.table
    visual = views.visual
    return {
        "table": {
            "rows": table.display_rows(),
            "total_matches": table.total_matches,
            "truncated": table.truncated,
            "sort": asdict(table.sort),
            "indicators": table.indicators,
            "empty_message": table.empty_message,
            "note": table.note,
        },
        "visual": {
            "year": visual.year,
            "label": visual.label,
            "records": [asdict(r) for r in visual.records],
            "by_iso3": {iso3: asdict(r) for iso3, r in visual.by_iso3.items()},
            "bar": [asdict(r) for r in visual.bar],
            "bands": visual.bands,
        },
        "metrics": asdict(views.metrics),
        "comparison": asdict(views.comparison),
    }


@app.get("/meta/regions", response_model=MetaListResponse)
def meta_regions(request: Request):
    try:
        return MetaListResponse(values=get_coordinator(request).regions())
    except LoadError as exc:
        return _error(exc, status_code=503)


@app.get("/meta/countries", response_model=MetaListResponse)
def meta_countries(request: Request):
    try:
        return MetaListResponse(values=get_coordinator(request).countries())
    except LoadError as exc:
        return _error(exc, status_code=503)


@app.get("/meta/years", response_model=MetaYearsResponse)
def meta_years(request: Request):
    try:
        return MetaYearsResponse(years=get_coordinator(request).years())
    except LoadError as exc:
        return _error(exc, status_code=503)


@app.get("/views")
def views(request: Request):
    try:
        return _json(views_payload(get_coordinator(request).views))
    except LoadError as exc:
        return _error(exc, status_code=503)
    except Exception as exc:
        logger.exception("views failed")
        return _error(exc)


@app.post("/actions")
def actions(model: ActionModel, request: Request):
    try:
        coordinator = get_coordinator(request)
    except LoadError as exc:
        return _error(exc, status_code=503)
    try:
        action = action_from_model(model)
        return _json(views_payload(coordinator.dispatch(action)))
    except ValueError as exc:
        return _error(exc, status_code=422)
    except Exception as exc:
        logger.exception("actions failed")
        return _error(exc)


@app.get("/map")
def map_view(request: Request):
    try:
        coordinator = get_coordinator(request)
        return _json({"label": coordinator.views.visual.label, "features": coordinator.map_features()})
    except LoadError as exc:
        return _error(exc, status_code=503)
    except Exception as exc:
        logger.exception("map failed")
        return _error(exc)


@app.get("/charts")
def charts(request: Request):
    try:
        return _json(get_coordinator(request).charts())
    except LoadError as exc:
        return _error(exc, status_code=503)
    except Exception as exc:
        logger.exception("charts failed")
        return _error(exc)


@app.get("/export")
def export_csv(request: Request):
    try:
        filename, content = get_coordinator(request).export_csv()
    except LoadError as exc:
        return _error(exc, status_code=503)
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
