from minigantt.app.db.models import GanttState

from .hierarchy import descendants_of
from .propagation import PropagationResult, enforce_dependencies


def compute_rollups(state: GanttState) -> None:
    """Set every group's range to the span of its dated descendant tasks (None if there are none)."""
    for g in state.tasks:
        if not g.is_group:
            continue
        dated = [t for t in descendants_of(state, g.id) if not t.is_group and t.is_dated]
        if not dated:
            g.start = None
            g.end = None
            continue
        g.start = min(t.start for t in dated)
        g.end = max(t.end for t in dated)


def recompute(state: GanttState) -> PropagationResult:
    """Re-stabilize task dates, then refresh group ranges. Run after every mutation."""
    result = enforce_dependencies(state)
    compute_rollups(state)
    return result
