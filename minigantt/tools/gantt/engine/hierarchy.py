from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from minigantt.app.db.models import GanttState, TaskEntity

from .store import children_of


@dataclass
class VisitOrder:
    order: List[TaskEntity] = field(default_factory=list)
    depths: Dict[str, int] = field(default_factory=dict)

    def ids(self) -> List[str]:
        return [t.id for t in self.order]


def build_visit_order(state: GanttState) -> VisitOrder:
    """Depth-first pre-order over the forest, insertion order at every level.

    A collapsed group is listed but its subtree is skipped entirely. There is
    no cached index, so call this again after any structural change.
    """
    result = VisitOrder()
    seen: Set[str] = set()
    kids: Dict[Optional[str], List[TaskEntity]] = {}
    for t in state.tasks:
        kids.setdefault(t.parent_id, []).append(t)
    # Children are pushed in reverse so they pop in insertion order.
    stack: List[Tuple[TaskEntity, int]] = [(root, 0) for root in reversed(kids.get(None, []))]
    while stack:
        node, depth = stack.pop()
        if node.id in seen:
            continue
        seen.add(node.id)
        result.order.append(node)
        result.depths[node.id] = depth
        if node.is_group and node.collapsed:
            continue
        stack.extend((ch, depth + 1) for ch in reversed(kids.get(node.id, [])))
    return result


def descendants_of(state: GanttState, entity_id: str) -> List[TaskEntity]:
    """All transitive children, regardless of collapse state."""
    out: List[TaskEntity] = []
    seen: Set[str] = {entity_id}
    stack = [entity_id]
    while stack:
        cur = stack.pop()
        for ch in children_of(state, cur):
            if ch.id in seen:
                continue
            seen.add(ch.id)
            out.append(ch)
            stack.append(ch.id)
    return out


def visible_ids(state: GanttState) -> Set[str]:
    return set(build_visit_order(state).ids())
