import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from minigantt.app.db.models import GanttState, TaskEntity

from .dates import add_days, days_between

logger = logging.getLogger(__name__)


@dataclass
class PropagationResult:
    passes: int = 0
    changed_ids: List[str] = field(default_factory=list)
    converged: bool = True

    def as_dict(self) -> dict:
        return {"passes": self.passes, "changed": list(self.changed_ids), "converged": self.converged}


def max_passes(task_count: int) -> int:
    """Pass budget: enough for any acyclic chain, finite for cyclic ones."""
    return task_count * 3 + 10


def enforce_dependencies(state: GanttState) -> PropagationResult:
    """Push dated tasks so each starts the day after its latest predecessor ends.

    Relaxation to a fixed point: a task that has to move keeps its duration.
    Undated tasks and unknown predecessor ids are ignored. If the budget runs
    out while dates are still moving (a dependency cycle) the result is
    flagged ``converged=False`` and the dates are not a valid schedule.
    """
    tasks = [t for t in state.tasks if not t.is_group and t.is_dated]
    by_id: Dict[str, TaskEntity] = {t.id: t for t in tasks}
    budget = max_passes(len(tasks))

    result = PropagationResult()
    changed: Set[str] = set()
    for _ in range(budget):
        result.passes += 1
        moved = False
        for t in tasks:
            if not t.deps:
                continue
            preds = [by_id[d] for d in t.deps if d in by_id]
            if not preds:
                continue
            min_start = max(add_days(p.end, 1) for p in preds)
            if t.start < min_start:
                dur = days_between(t.start, t.end)
                t.start = min_start
                t.end = add_days(min_start, dur)
                moved = True
                if t.id not in changed:
                    changed.add(t.id)
                    result.changed_ids.append(t.id)
        if not moved:
            return result

    result.converged = False
    logger.warning(
        "enforce_dependencies: no fixed point after %d passes over %d tasks; dependency cycle likely",
        budget, len(tasks),
    )
    return result


def find_dependency_cycle(state: GanttState) -> Optional[List[str]]:
    """Return one cycle among task deps as a list of ids (first id repeated at the end), or None."""
    tasks = {t.id: t for t in state.tasks if not t.is_group}
    WHITE, GREY, BLACK = 0, 1, 2
    color = {k: WHITE for k in tasks}
    for root in tasks:
        if color[root] != WHITE:
            continue
        color[root] = GREY
        path: List[str] = [root]
        # Each frame is (task id, index of the next dep to look at).
        stack: List[Tuple[str, int]] = [(root, 0)]
        while stack:
            u, i = stack[-1]
            deps = tasks[u].deps
            if i >= len(deps):
                stack.pop()
                path.pop()
                color[u] = BLACK
                continue
            stack[-1] = (u, i + 1)
            v = deps[i]
            if v not in tasks:
                continue
            if color[v] == GREY:
                return path[path.index(v):] + [v]
            if color[v] == WHITE:
                color[v] = GREY
                path.append(v)
                stack.append((v, 0))
    return None
