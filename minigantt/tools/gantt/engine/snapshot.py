"""Snapshot boundary: the only way untrusted plan data gets into the engine.

``sanitize`` coerces one field at a time, each with a single documented
default, then repairs cross-entity references. It never raises; the worst
input produces an empty plan.

Field defaults:
  id         missing/empty -> fresh uuid; duplicate -> fresh uuid
  name       missing/null -> ""
  type       anything but "group" -> "task"
  parentId   missing/empty -> None; dangling, non-group or cyclic -> None
  start/end  unparsable -> None; groups always None; tasks normalized
  deps       non-list -> []; unknown, non-task, self and repeated ids dropped
  notes      missing/null -> ""
  collapsed  truthiness of the raw value
"""
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from minigantt.app.db.models import (
    SNAPSHOT_VERSION,
    EntityKind,
    GanttState,
    TaskEntity,
    new_entity_id,
)

from .dates import add_days, normalize_range, try_parse_key

logger = logging.getLogger(__name__)


class SnapshotRow(BaseModel):
    """Lenient reading of one persisted row. Unknown keys are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=new_entity_id)
    name: str = ""
    type: EntityKind = "task"
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    start: Optional[date] = None
    end: Optional[date] = None
    deps: List[str] = []
    notes: str = ""
    collapsed: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str:
        return str(v) if v else new_entity_id()

    @field_validator("name", "notes", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v: Any) -> str:
        return "group" if v == "group" else "task"

    @field_validator("parent_id", mode="before")
    @classmethod
    def _coerce_parent(cls, v: Any) -> Optional[str]:
        return str(v) if v else None

    @field_validator("start", "end", mode="before")
    @classmethod
    def _coerce_date(cls, v: Any) -> Optional[date]:
        return try_parse_key(v)

    @field_validator("deps", mode="before")
    @classmethod
    def _coerce_deps(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        return [str(d) for d in v if d is not None and d != ""]

    @field_validator("collapsed", mode="before")
    @classmethod
    def _coerce_collapsed(cls, v: Any) -> bool:
        return bool(v)


def _read_rows(raw: Any) -> List[TaskEntity]:
    if not isinstance(raw, dict):
        return []
    items = raw.get("tasks")
    if not isinstance(items, list):
        return []
    out: List[TaskEntity] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning("sanitize: skipping row %d (not an object)", i)
            continue
        try:
            row = SnapshotRow.model_validate(item)
        except ValidationError as e:
            logger.warning("sanitize: skipping row %d: %s", i, e)
            continue
        out.append(TaskEntity(**row.model_dump()))
    return out


def _detach_bad_parents(tasks: List[TaskEntity]) -> None:
    by_id: Dict[str, TaskEntity] = {t.id: t for t in tasks}
    for t in tasks:
        parent = by_id.get(t.parent_id) if t.parent_id else None
        if t.parent_id and (parent is None or not parent.is_group or parent.id == t.id):
            logger.info("sanitize: detaching %s from invalid parent %s", t.id, t.parent_id)
            t.parent_id = None
    # Any parent chain that comes back to its start is cut at that entity.
    for t in tasks:
        seen: Set[str] = set()
        cur = t.parent_id
        while cur and cur not in seen:
            if cur == t.id:
                logger.info("sanitize: breaking parent cycle at %s", t.id)
                t.parent_id = None
                break
            seen.add(cur)
            cur = by_id[cur].parent_id


def sanitize(raw: Any) -> GanttState:
    """Coerce untrusted snapshot data into a fully valid ``GanttState``."""
    tasks = _read_rows(raw)

    seen_ids: Set[str] = set()
    for t in tasks:
        if t.id in seen_ids:
            fresh = new_entity_id()
            logger.info("sanitize: duplicate id %s reassigned to %s", t.id, fresh)
            t.id = fresh
        seen_ids.add(t.id)

    for t in tasks:
        if t.is_group:
            t.start = None
            t.end = None
        else:
            t.start, t.end = normalize_range(t.start, t.end)

    _detach_bad_parents(tasks)

    task_ids = {t.id for t in tasks if not t.is_group}
    for t in tasks:
        deps: List[str] = []
        for d in t.deps:
            if d != t.id and d in task_ids and d not in deps:
                deps.append(d)
        t.deps = deps

    return GanttState(version=SNAPSHOT_VERSION, tasks=tasks)


def serialize(state: GanttState) -> dict:
    """Version 2 snapshot as plain JSON-ready data."""
    data = state.model_dump(mode="json", by_alias=True)
    data["version"] = SNAPSHOT_VERSION
    return data


def seed(today: date) -> GanttState:
    """Demo plan: one release group with a three-step finish-to-start chain."""
    g = TaskEntity(name="Release v1", type="group")
    a = TaskEntity(name="Define scope", parent_id=g.id, start=today, end=add_days(today, 2))
    b = TaskEntity(name="Build MVP", parent_id=g.id, start=add_days(today, 3), end=add_days(today, 12), deps=[a.id])
    c = TaskEntity(name="Test & polish", parent_id=g.id, start=add_days(today, 10), end=add_days(today, 15), deps=[b.id])
    return GanttState(tasks=[g, a, b, c])


def read_snapshot_file(path: Union[str, Path]) -> Optional[GanttState]:
    """Load a ``.gantt.json`` file. Returns None if it cannot be read or is not JSON."""
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error("read_snapshot_file: cannot load %s: %s", p, e)
        return None
    return sanitize(data)


def write_snapshot_file(path: Union[str, Path], state: GanttState) -> Path:
    p = Path(path)
    p.write_text(json.dumps(serialize(state), indent=2), encoding="utf-8")
    return p
