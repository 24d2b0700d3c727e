from dataclasses import asdict
from datetime import date
from typing import Any, Optional
import logging

from fastapi import Body, Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from minigantt import config
from minigantt.app.commands import (
    EntityNotFoundError,
    ParentCycleError,
    add_group,
    add_task,
    apply_edit,
    load_snapshot,
    remove_entity,
    seed_plan,
    toggle_collapse,
)
from minigantt.app.db import db_loader
from minigantt.app.db.database import get_db
from minigantt.app.db.models import EntityEdit, GanttState
from minigantt.tools.gantt.engine import (
    MAX_FIXED_DAYS,
    LayoutMetrics,
    PropagationResult,
    build_visit_order,
    canvas_size,
    compute_window,
    day_columns,
    find_dependency_cycle,
    get_task,
    layout_bars,
    layout_links,
    parse_key,
    parse_range_mode,
    recompute,
    scroll_to_today,
    serialize,
    today_marker_x,
    today_utc,
    valid_parent_choices,
)

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("api")

app = FastAPI(title="minigantt")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class CreateEntityRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = "task"
    parent_id: Optional[str] = Field(default=None, alias="parentId")


# The single in-memory plan. One request mutates it at a time.
_GRAPH: Optional[GanttState] = None


def get_graph(db: Session = Depends(get_db)) -> GanttState:
    """Return the live plan, loading the autosave (or the demo plan) on first use."""
    global _GRAPH
    if _GRAPH is None:
        state = None
        try:
            state = db_loader.load_snapshot(db)
            if state is not None:
                recompute(state)
        except Exception as e:
            logger.warning("autosave unavailable, starting from demo plan: %s", e)
            state = None
        if state is None:
            state, _ = seed_plan(today_utc())
        _GRAPH = state
    return _GRAPH


def _resolve_today(today: Optional[str]) -> date:
    if not today:
        return today_utc()
    try:
        return parse_key(today)
    except ValueError:
        raise HTTPException(status_code=422, detail="today must be a YYYY-MM-DD date")


def _resolve_mode(mode: str) -> str:
    """Reject day counts outside the supported range; other words mean auto."""
    text = (mode or "").strip()
    if text.isdigit() and parse_range_mode(text) is None:
        raise HTTPException(
            status_code=422,
            detail=f"mode must be 'auto' or a number of days between 1 and {MAX_FIXED_DAYS}",
        )
    return text


def _autosave(db: Session, graph: GanttState) -> None:
    try:
        db_loader.save_snapshot(db, graph)
    except Exception as e:
        # The plan stays valid in memory; only persistence is behind.
        logger.exception("autosave failed: %s", e)


def _propagation_payload(result: PropagationResult, graph: GanttState) -> dict:
    payload = result.as_dict()
    if not result.converged:
        payload["cycle"] = find_dependency_cycle(graph)
    return payload


def _replace_plan(graph: GanttState, new_state: GanttState) -> None:
    graph.version = new_state.version
    graph.tasks = new_state.tasks


@app.get("/")
async def root():
    return {"message": "Hello from minigantt!"}


@app.get("/debug/ping")
async def debug_ping():
    return {"pong": True}


@app.get("/plan")
async def get_plan(graph: GanttState = Depends(get_graph)):
    return serialize(graph)


@app.put("/plan")
async def put_plan(
    payload: Any = Body(...),
    graph: GanttState = Depends(get_graph),
    db: Session = Depends(get_db),
):
    """Replace the plan with an untrusted snapshot. Malformed content is coerced, never rejected."""
    try:
        state, result = load_snapshot(payload)
        _replace_plan(graph, state)
        _autosave(db, graph)
        logger.info("plan loaded: %d entities", len(graph.tasks))
        return {"plan": serialize(graph), "propagation": _propagation_payload(result, graph)}
    except Exception as e:
        logger.exception("/plan load failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/plan/seed")
async def reseed_plan(
    today: Optional[str] = Query(None, description="Override today's date, YYYY-MM-DD"),
    graph: GanttState = Depends(get_graph),
    db: Session = Depends(get_db),
):
    day = _resolve_today(today)
    state, result = seed_plan(day)
    _replace_plan(graph, state)
    _autosave(db, graph)
    return {"plan": serialize(graph), "propagation": _propagation_payload(result, graph)}


@app.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_entity(
    request: CreateEntityRequest,
    today: Optional[str] = Query(None, description="Override today's date, YYYY-MM-DD"),
    graph: GanttState = Depends(get_graph),
    db: Session = Depends(get_db),
):
    day = _resolve_today(today)
    try:
        if request.type == "group":
            res = add_group(graph, day)
        else:
            res = add_task(graph, day, parent_id=request.parent_id)
        _autosave(db, graph)
        return {
            "task": res.entity.model_dump(mode="json", by_alias=True),
            "propagation": _propagation_payload(res.propagation, graph),
        }
    except Exception as e:
        logger.exception("/tasks create failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@app.patch("/tasks/{task_id}")
async def edit_entity(
    task_id: str,
    edit: EntityEdit,
    graph: GanttState = Depends(get_graph),
    db: Session = Depends(get_db),
):
    try:
        res = apply_edit(graph, task_id, edit)
        _autosave(db, graph)
        return {
            "task": res.entity.model_dump(mode="json", by_alias=True),
            "propagation": _propagation_payload(res.propagation, graph),
        }
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    except ParentCycleError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("/tasks/%s edit failed: %s", task_id, e)
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/tasks/{task_id}")
async def delete_entity(
    task_id: str,
    graph: GanttState = Depends(get_graph),
    db: Session = Depends(get_db),
):
    try:
        res = remove_entity(graph, task_id)
        _autosave(db, graph)
        return {"deleted": task_id, "propagation": _propagation_payload(res.propagation, graph)}
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    except Exception as e:
        logger.exception("/tasks/%s delete failed: %s", task_id, e)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/tasks/{task_id}/toggle-collapse")
async def toggle_entity_collapse(
    task_id: str,
    graph: GanttState = Depends(get_graph),
    db: Session = Depends(get_db),
):
    try:
        res = toggle_collapse(graph, task_id)
        _autosave(db, graph)
        return {"id": task_id, "collapsed": res.entity.collapsed}
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    except Exception as e:
        logger.exception("/tasks/%s toggle-collapse failed: %s", task_id, e)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/tasks/{task_id}/parent-choices")
async def parent_choices(task_id: str, graph: GanttState = Depends(get_graph)):
    """Groups the task can be moved under (never itself or one of its descendants)."""
    if get_task(graph, task_id) is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return {
        "id": task_id,
        "choices": [{"id": g.id, "name": g.name} for g in valid_parent_choices(graph, task_id)],
    }


@app.get("/timeline")
async def timeline(
    mode: str = Query(config.DEFAULT_RANGE_MODE, description="'auto' or a number of days, e.g. 30"),
    day_width: int = Query(config.DEFAULT_DAY_WIDTH, ge=1, le=400),
    today: Optional[str] = Query(None, description="Override today's date, YYYY-MM-DD"),
    graph: GanttState = Depends(get_graph),
):
    """Everything a renderer needs to draw rows and bars for the current plan."""
    try:
        day = _resolve_today(today)
        mode = _resolve_mode(mode)
        # Idempotent: a stable plan comes back unchanged.
        result = recompute(graph)
        visit = build_visit_order(graph)
        window = compute_window(visit.order, mode, day)
        metrics = LayoutMetrics(
            day_width=day_width,
            row_height=config.ROW_HEIGHT,
            header_height=config.HEADER_HEIGHT,
            left_pad=config.LEFT_PAD,
            top_pad=config.TOP_PAD,
        )
        width, height = canvas_size(window, len(visit.order), metrics)
        rows = []
        for t in visit.order:
            row = t.model_dump(mode="json", by_alias=True)
            row["depth"] = visit.depths[t.id]
            rows.append(row)
        return {
            "window": {
                "start": window.start.isoformat(),
                "end": window.end.isoformat(),
                "totalDays": window.total_days,
                "today": window.today.isoformat(),
            },
            "canvas": {"width": width, "height": height},
            "rows": rows,
            "bars": [asdict(b) for b in layout_bars(visit.order, window, metrics)],
            "links": [asdict(link) for link in layout_links(visit.order, graph, window, metrics)],
            "columns": [asdict(c) for c in day_columns(window, metrics)],
            "todayX": today_marker_x(window, metrics),
            "scrollToToday": scroll_to_today(window, day_width),
            "propagation": _propagation_payload(result, graph),
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("/timeline failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.UVICORN_HOST, port=config.UVICORN_PORT)
