import logging
from datetime import date
from typing import Iterable, List, Optional

from minigantt.app.db.models import EntityKind, GanttState, TaskEntity, new_entity_id

from .dates import normalize_range, today_utc

logger = logging.getLogger(__name__)


# ------------------------------
# Construction & lookup
# ------------------------------

def new_entity(kind: EntityKind = "task", parent_id: Optional[str] = None, today: Optional[date] = None) -> TaskEntity:
    """Build an entity with kind-dependent defaults: tasks start and end today, groups are undated."""
    is_group = kind == "group"
    day = today or today_utc()
    return TaskEntity(
        id=new_entity_id(),
        name="New Group" if is_group else "New Task",
        type="group" if is_group else "task",
        parent_id=parent_id,
        start=None if is_group else day,
        end=None if is_group else day,
        deps=[],
        notes="",
        collapsed=False,
    )


def _unique_id(state: GanttState) -> str:
    taken = {t.id for t in state.tasks}
    while True:
        candidate = new_entity_id()
        if candidate not in taken:
            return candidate


def create_task(
    state: GanttState,
    kind: EntityKind = "task",
    parent_id: Optional[str] = None,
    today: Optional[date] = None,
) -> TaskEntity:
    """Allocate a new entity and append it to the store.

    A parent that is not an existing group is dropped so the entity lands at
    the root instead.
    """
    if parent_id is not None:
        parent = get_task(state, parent_id)
        if parent is None or not parent.is_group:
            logger.warning("create_task: ignoring invalid parent %s", parent_id)
            parent_id = None
    ent = new_entity(kind, parent_id, today)
    ent.id = _unique_id(state)
    state.tasks.append(ent)
    return ent


def get_task(state: GanttState, entity_id: Optional[str]) -> Optional[TaskEntity]:
    if not entity_id:
        return None
    for t in state.tasks:
        if t.id == entity_id:
            return t
    return None


def children_of(state: GanttState, entity_id: Optional[str]) -> List[TaskEntity]:
    """Direct children in insertion order. ``None`` returns the roots."""
    return [t for t in state.tasks if t.parent_id == entity_id]


def task_ids(state: GanttState) -> set:
    return {t.id for t in state.tasks if not t.is_group}


# ------------------------------
# Mutations
# ------------------------------

def prune_dependencies(state: GanttState) -> None:
    """Drop deps that point at ids no longer in the store."""
    alive = {t.id for t in state.tasks}
    for t in state.tasks:
        t.deps = [d for d in t.deps if d in alive]


def delete_entity(state: GanttState, entity_id: str) -> List[str]:
    """Remove an entity; groups take their whole subtree with them.

    Returns the removed ids (empty if the id is unknown).
    """
    # Local import: hierarchy depends on children_of from this module.
    from .hierarchy import descendants_of

    target = get_task(state, entity_id)
    if target is None:
        return []

    removed = [target.id]
    if target.is_group:
        removed.extend(d.id for d in descendants_of(state, target.id))
    doomed = set(removed)
    state.tasks = [t for t in state.tasks if t.id not in doomed]
    prune_dependencies(state)
    logger.debug("delete_entity: removed %d entities for %s", len(removed), entity_id)
    return removed


def valid_parent_choices(state: GanttState, entity_id: str) -> List[TaskEntity]:
    """Groups the entity may be moved under: all groups except itself and its descendants."""
    from .hierarchy import descendants_of

    forbidden = {entity_id}
    forbidden.update(d.id for d in descendants_of(state, entity_id))
    return [g for g in state.tasks if g.is_group and g.id not in forbidden]


def assign_parent(state: GanttState, entity_id: str, parent_id: Optional[str]) -> bool:
    """Reparent an entity. Returns False (and changes nothing) if that would break the forest."""
    ent = get_task(state, entity_id)
    if ent is None:
        return False
    if parent_id is None:
        ent.parent_id = None
        return True
    if parent_id not in {g.id for g in valid_parent_choices(state, entity_id)}:
        logger.warning("assign_parent: rejected %s -> %s (missing, not a group, or cyclic)", entity_id, parent_id)
        return False
    ent.parent_id = parent_id
    return True


def set_dependencies(state: GanttState, entity_id: str, deps: Iterable[str]) -> List[str]:
    """Replace an entity's predecessors with the existing task ids among ``deps``.

    Own id and duplicates are dropped; order is kept.
    """
    ent = get_task(state, entity_id)
    if ent is None:
        return []
    valid = task_ids(state)
    cleaned: List[str] = []
    for d in deps or []:
        d = str(d)
        if d == ent.id or d not in valid or d in cleaned:
            continue
        cleaned.append(d)
    ent.deps = cleaned
    return cleaned


def set_dates(state: GanttState, entity_id: str, start: Optional[date], end: Optional[date]) -> None:
    """Author a task's range. A lone start also becomes the end; groups keep no authored dates."""
    ent = get_task(state, entity_id)
    if ent is None:
        return
    if ent.is_group:
        ent.start = None
        ent.end = None
        return
    if start is not None and end is None:
        end = start
    ent.start, ent.end = normalize_range(start, end)


def change_kind(state: GanttState, entity_id: str, kind: EntityKind) -> None:
    """Switch task <-> group while keeping the forest and dependency graph valid.

    A group that becomes a task hands its children to its own parent; a task
    that becomes a group stops being anyone's predecessor and loses its
    authored dates and deps.
    """
    ent = get_task(state, entity_id)
    if ent is None or ent.type == kind:
        return
    if kind == "task":
        for ch in children_of(state, ent.id):
            ch.parent_id = ent.parent_id
        ent.type = "task"
        ent.collapsed = False
        return
    ent.type = "group"
    ent.deps = []
    ent.start = None
    ent.end = None
    for t in state.tasks:
        if ent.id in t.deps:
            t.deps = [d for d in t.deps if d != ent.id]
