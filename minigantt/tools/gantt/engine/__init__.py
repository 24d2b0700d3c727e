from .dates import (
    to_key,
    parse_key,
    try_parse_key,
    add_days,
    days_between,
    clamp,
    normalize_range,
    today_utc,
)
from .store import (
    new_entity,
    create_task,
    get_task,
    children_of,
    delete_entity,
    prune_dependencies,
    valid_parent_choices,
    assign_parent,
    set_dependencies,
    set_dates,
    change_kind,
)
from .hierarchy import VisitOrder, build_visit_order, descendants_of, visible_ids
from .propagation import PropagationResult, enforce_dependencies, find_dependency_cycle, max_passes
from .rollup import compute_rollups, recompute
from .timeline import (
    MAX_FIXED_DAYS,
    TimelineWindow,
    LayoutMetrics,
    BarGeometry,
    LinkGeometry,
    DayColumn,
    parse_range_mode,
    compute_window,
    date_to_offset,
    clamp_offset,
    bar_span,
    layout_bars,
    layout_links,
    today_marker_x,
    scroll_to_today,
    day_columns,
    canvas_size,
)
from .snapshot import sanitize, serialize, seed, read_snapshot_file, write_snapshot_file

__all__ = [
    "to_key",
    "parse_key",
    "try_parse_key",
    "add_days",
    "days_between",
    "clamp",
    "normalize_range",
    "today_utc",
    "new_entity",
    "create_task",
    "get_task",
    "children_of",
    "delete_entity",
    "prune_dependencies",
    "valid_parent_choices",
    "assign_parent",
    "set_dependencies",
    "set_dates",
    "change_kind",
    "VisitOrder",
    "build_visit_order",
    "descendants_of",
    "visible_ids",
    "PropagationResult",
    "enforce_dependencies",
    "find_dependency_cycle",
    "max_passes",
    "compute_rollups",
    "recompute",
    "TimelineWindow",
    "LayoutMetrics",
    "BarGeometry",
    "LinkGeometry",
    "DayColumn",
    "MAX_FIXED_DAYS",
    "parse_range_mode",
    "compute_window",
    "date_to_offset",
    "clamp_offset",
    "bar_span",
    "layout_bars",
    "layout_links",
    "today_marker_x",
    "scroll_to_today",
    "day_columns",
    "canvas_size",
    "sanitize",
    "serialize",
    "seed",
    "read_snapshot_file",
    "write_snapshot_file",
]
