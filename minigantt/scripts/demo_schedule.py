import json
import sys
import os
from dataclasses import asdict

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..')))
from minigantt.tools.gantt.engine import (
    build_visit_order,
    compute_window,
    layout_bars,
    LayoutMetrics,
    parse_key,
    recompute,
    seed,
    serialize,
    today_utc,
)

MODE = "auto"


def main():
    today = parse_key(sys.argv[1]) if len(sys.argv) > 1 else today_utc()
    state = seed(today)

    print("=== seed ===")
    print(json.dumps(serialize(state), indent=2))

    print("\n=== recompute ===")
    result = recompute(state)
    print(json.dumps(result.as_dict(), indent=2))
    print(json.dumps(serialize(state), indent=2))

    print("\n=== visit order ===")
    visit = build_visit_order(state)
    for t in visit.order:
        print(f"{'  ' * visit.depths[t.id]}{t.name}: {t.start} -> {t.end}")

    print("\n=== window ===")
    window = compute_window(visit.order, MODE, today)
    print(json.dumps(asdict(window), indent=2, default=str))

    print("\n=== bars ===")
    for bar in layout_bars(visit.order, window, LayoutMetrics()):
        print(json.dumps(asdict(bar)))


if __name__ == "__main__":
    main()
