"""Mutation entry points.

Each command edits the plan in place and finishes with ``recompute`` so task
dates and group roll-ups are consistent before anything is drawn again.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Tuple

from minigantt.app.db.models import EntityEdit, GanttState, TaskEntity
from minigantt.tools.gantt.engine import (
    PropagationResult,
    assign_parent,
    change_kind,
    create_task,
    delete_entity,
    get_task,
    recompute,
    sanitize,
    seed,
    set_dates,
    set_dependencies,
)

logger = logging.getLogger(__name__)


class EntityNotFoundError(LookupError):
    pass


class ParentCycleError(ValueError):
    pass


@dataclass
class CommandResult:
    propagation: PropagationResult
    entity: Optional[TaskEntity] = None


def _require(state: GanttState, entity_id: str) -> TaskEntity:
    ent = get_task(state, entity_id)
    if ent is None:
        raise EntityNotFoundError(entity_id)
    return ent


def add_group(state: GanttState, today: date) -> CommandResult:
    g = create_task(state, kind="group", today=today)
    return CommandResult(propagation=recompute(state), entity=g)


def add_task(state: GanttState, today: date, parent_id: Optional[str] = None) -> CommandResult:
    """Add a task under ``parent_id``, or under the first group when none is given."""
    if parent_id is None:
        first_group = next((t for t in state.tasks if t.is_group), None)
        parent_id = first_group.id if first_group else None
    t = create_task(state, kind="task", parent_id=parent_id, today=today)
    return CommandResult(propagation=recompute(state), entity=t)


def apply_edit(state: GanttState, entity_id: str, edit: EntityEdit) -> CommandResult:
    ent = _require(state, entity_id)
    fields = edit.model_fields_set

    if "parent_id" in fields and edit.parent_id != ent.parent_id:
        if not assign_parent(state, ent.id, edit.parent_id or None):
            raise ParentCycleError(f"{edit.parent_id} is not a valid parent for {ent.id}")
    if "name" in fields:
        ent.name = (edit.name or "").strip()
    if "type" in fields and edit.type is not None:
        change_kind(state, ent.id, edit.type)
    if "notes" in fields:
        ent.notes = edit.notes or ""
    if "collapsed" in fields and edit.collapsed is not None:
        ent.collapsed = edit.collapsed
    if "deps" in fields:
        set_dependencies(state, ent.id, edit.deps or [])

    if ent.is_group:
        ent.deps = []
        set_dates(state, ent.id, None, None)
    elif "start" in fields or "end" in fields:
        set_dates(
            state,
            ent.id,
            edit.start if "start" in fields else ent.start,
            edit.end if "end" in fields else ent.end,
        )

    return CommandResult(propagation=recompute(state), entity=ent)


def remove_entity(state: GanttState, entity_id: str) -> CommandResult:
    _require(state, entity_id)
    removed = delete_entity(state, entity_id)
    logger.info("remove_entity: %s removed %d entities", entity_id, len(removed))
    return CommandResult(propagation=recompute(state))


def toggle_collapse(state: GanttState, entity_id: str) -> CommandResult:
    ent = _require(state, entity_id)
    if ent.is_group:
        ent.collapsed = not ent.collapsed
    return CommandResult(propagation=recompute(state), entity=ent)


def load_snapshot(raw: Any) -> Tuple[GanttState, PropagationResult]:
    state = sanitize(raw)
    return state, recompute(state)


def seed_plan(today: date) -> Tuple[GanttState, PropagationResult]:
    state = seed(today)
    return state, recompute(state)
