"""Timeline window and geometry.

Maps calendar days onto a horizontal axis: column ``i`` of the window covers
``window.start + i days``. Everything here is plain arithmetic on the visit
order; drawing is left to whoever consumes the numbers.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from minigantt.app.db.models import GanttState, TaskEntity

from .dates import add_days, clamp, days_between

logger = logging.getLogger(__name__)

AUTO_MODE = "auto"
AUTO_LEAD_DAYS = 3
AUTO_TAIL_DAYS = 7
FIXED_LEAD_FRACTION = 0.25
MAX_FIXED_DAYS = 3650
MIN_BAR_WIDTH = 6
SCROLL_MARGIN = 200


@dataclass(frozen=True)
class TimelineWindow:
    start: date
    end: date  # inclusive
    total_days: int
    today: date


@dataclass(frozen=True)
class LayoutMetrics:
    day_width: int = 28
    row_height: int = 44
    header_height: int = 34
    left_pad: int = 10
    top_pad: int = 10

    @property
    def body_top(self) -> int:
        return self.top_pad + self.header_height


@dataclass(frozen=True)
class BarGeometry:
    id: str
    type: str
    row: int
    start_index: int
    end_index: int
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class LinkGeometry:
    from_id: str
    to_id: str
    x1: float
    y1: float
    x2: float
    y2: float
    mid_x: float


@dataclass(frozen=True)
class DayColumn:
    index: int
    date: date
    x: float
    day_of_month: int
    is_monday: bool
    is_month_start: bool
    label: Optional[str]
    month_label: Optional[str]


def parse_range_mode(mode: Union[str, int, None]) -> Optional[int]:
    """Return the fixed day count for ``mode``, or None for auto.

    Anything that is not a whole number of days in ``1..MAX_FIXED_DAYS`` means auto.
    """
    if mode is None or isinstance(mode, bool):
        return None
    if isinstance(mode, int):
        return mode if 0 < mode <= MAX_FIXED_DAYS else None
    text = str(mode).strip().lower()
    if text == AUTO_MODE:
        return None
    if text.isdigit() and 0 < int(text) <= MAX_FIXED_DAYS:
        return int(text)
    logger.debug("parse_range_mode: unknown mode %r, using auto", mode)
    return None


def compute_window(entities: Iterable[TaskEntity], mode: Union[str, int, None], today: date) -> TimelineWindow:
    """Pick the visible date window.

    Auto mode hugs the dated entities with 3 days before and 7 after (just
    today when nothing is dated). A fixed mode of N days starts a quarter of
    N before today and shows exactly N columns whatever the task dates are.
    """
    fixed = parse_range_mode(mode)
    if fixed is not None:
        start = add_days(today, -math.floor(fixed * FIXED_LEAD_FRACTION))
        end = add_days(start, fixed - 1)
    else:
        dated = [e for e in entities if e.is_dated]
        lo = min((e.start for e in dated), default=today)
        hi = max((e.end for e in dated), default=today)
        start = add_days(lo, -AUTO_LEAD_DAYS)
        end = add_days(hi, AUTO_TAIL_DAYS)
    total_days = max(1, days_between(start, end) + 1)
    return TimelineWindow(start=start, end=end, total_days=total_days, today=today)


def date_to_offset(d: date, window_start: date) -> int:
    return days_between(window_start, d)


def clamp_offset(offset: int, total_days: int) -> int:
    """Pin an offset into the window so partly visible bars are cut, not dropped."""
    return clamp(offset, 0, max(1, total_days) - 1)


def bar_span(entity: TaskEntity, window: TimelineWindow) -> Optional[Tuple[int, int]]:
    if not entity.is_dated:
        return None
    s = clamp_offset(date_to_offset(entity.start, window.start), window.total_days)
    e = clamp_offset(date_to_offset(entity.end, window.start), window.total_days)
    return s, e


def layout_bars(order: Sequence[TaskEntity], window: TimelineWindow, metrics: LayoutMetrics) -> List[BarGeometry]:
    """One bar per dated row; undated rows keep their row index but get no bar."""
    bars: List[BarGeometry] = []
    dw = metrics.day_width
    bar_height = metrics.row_height - 20
    for row, t in enumerate(order):
        span = bar_span(t, window)
        if span is None:
            continue
        s, e = span
        bars.append(BarGeometry(
            id=t.id,
            type=t.type,
            row=row,
            start_index=s,
            end_index=e,
            x=metrics.left_pad + s * dw + 2,
            y=metrics.body_top + row * metrics.row_height + 10,
            width=max(MIN_BAR_WIDTH, (e - s + 1) * dw - 4),
            height=bar_height,
        ))
    return bars


def layout_links(
    order: Sequence[TaskEntity],
    state: GanttState,
    window: TimelineWindow,
    metrics: LayoutMetrics,
) -> List[LinkGeometry]:
    """Connectors from each predecessor's right edge to its successor's left edge.

    Only drawn when both ends are dated and present in the visit order.
    """
    index_by_id: Dict[str, int] = {t.id: i for i, t in enumerate(order)}
    by_id = {t.id: t for t in state.tasks}
    dw = metrics.day_width
    half_row = metrics.row_height / 2
    links: List[LinkGeometry] = []
    for t in order:
        if t.is_group or not t.deps or not t.is_dated:
            continue
        ti = index_by_id[t.id]
        for pred_id in t.deps:
            p = by_id.get(pred_id)
            if p is None or not p.is_dated or p.id not in index_by_id:
                continue
            pi = index_by_id[p.id]
            x1 = metrics.left_pad + (date_to_offset(p.end, window.start) + 1) * dw
            y1 = metrics.body_top + pi * metrics.row_height + half_row
            x2 = metrics.left_pad + date_to_offset(t.start, window.start) * dw
            y2 = metrics.body_top + ti * metrics.row_height + half_row
            links.append(LinkGeometry(
                from_id=p.id,
                to_id=t.id,
                x1=x1,
                y1=y1,
                x2=x2,
                y2=y2,
                mid_x=max(x1 + 10, (x1 + x2) / 2),
            ))
    return links


def today_marker_x(window: TimelineWindow, metrics: LayoutMetrics) -> float:
    idx = clamp_offset(date_to_offset(window.today, window.start), window.total_days)
    return metrics.left_pad + idx * metrics.day_width + metrics.day_width / 2


def scroll_to_today(window: TimelineWindow, day_width: int) -> int:
    """Horizontal scroll offset that brings today into view with some left margin."""
    idx = clamp(date_to_offset(window.today, window.start), 0, 99999)
    return max(0, idx * day_width - SCROLL_MARGIN)


def day_columns(window: TimelineWindow, metrics: LayoutMetrics) -> List[DayColumn]:
    # Narrow columns only label Mondays.
    wide = metrics.day_width >= 22
    cols: List[DayColumn] = []
    for i in range(window.total_days):
        d = add_days(window.start, i)
        is_monday = d.weekday() == 0
        if wide:
            label = str(d.day)
        elif is_monday:
            label = "•"
        else:
            label = None
        cols.append(DayColumn(
            index=i,
            date=d,
            x=metrics.left_pad + i * metrics.day_width,
            day_of_month=d.day,
            is_monday=is_monday,
            is_month_start=d.day == 1,
            label=label,
            month_label=d.strftime("%b") if d.day == 1 else None,
        ))
    return cols


def canvas_size(window: TimelineWindow, row_count: int, metrics: LayoutMetrics) -> Tuple[int, int]:
    width = metrics.left_pad + window.total_days * metrics.day_width + 20
    height = metrics.body_top + row_count * metrics.row_height + 20
    return width, height
