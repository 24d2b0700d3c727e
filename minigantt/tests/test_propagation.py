"""
Tests for finish-to-start dependency propagation.
"""
import random
from datetime import date

from minigantt.app.db.models import GanttState, TaskEntity
from minigantt.tools.gantt.engine.dates import add_days, days_between
from minigantt.tools.gantt.engine.propagation import enforce_dependencies, find_dependency_cycle, max_passes
from minigantt.tools.gantt.engine.store import get_task


def _durations(state):
    return {t.id: days_between(t.start, t.end) for t in state.tasks if t.is_dated}


def _random_dag(seed, today, size=15):
    rng = random.Random(seed)
    tasks = []
    for i in range(size):
        start = add_days(today, rng.randint(-5, 20))
        end = add_days(start, rng.randint(0, 6))
        # Only earlier tasks can be predecessors, so the graph is acyclic.
        preds = rng.sample(range(i), k=min(i, rng.randint(0, 3))) if i else []
        tasks.append(TaskEntity(id=f"t{i}", start=start, end=end, deps=[f"t{p}" for p in preds]))
    # Shuffle list order so propagation cannot rely on topological order.
    rng.shuffle(tasks)
    return GanttState(tasks=tasks)


class TestScenario:
    """The three-step chain: A -> B -> C."""

    def test_chain_shifts_only_violating_task(self, scenario_state, today):
        result = enforce_dependencies(scenario_state)
        a, b, c = (get_task(scenario_state, k) for k in "ABC")
        assert (a.start, a.end) == (today, add_days(today, 2))
        assert (b.start, b.end) == (add_days(today, 3), add_days(today, 12))
        assert (c.start, c.end) == (add_days(today, 13), add_days(today, 18))
        assert result.converged is True
        assert result.changed_ids == ["C"]

    def test_second_run_is_noop(self, scenario_state):
        enforce_dependencies(scenario_state)
        snapshot = scenario_state.model_copy(deep=True)
        result = enforce_dependencies(scenario_state)
        assert result.changed_ids == []
        assert result.passes == 1
        assert scenario_state == snapshot

    def test_pushes_cascade_down_the_chain(self, scenario_state, today):
        a = get_task(scenario_state, "A")
        a.end = add_days(today, 9)
        enforce_dependencies(scenario_state)
        b, c = get_task(scenario_state, "B"), get_task(scenario_state, "C")
        assert b.start == add_days(today, 10)
        assert days_between(b.start, b.end) == 9
        assert c.start == add_days(b.end, 1)
        assert days_between(c.start, c.end) == 5

    def test_tasks_are_never_pulled_earlier(self, scenario_state, today):
        c = get_task(scenario_state, "C")
        c.start, c.end = add_days(today, 40), add_days(today, 41)
        enforce_dependencies(scenario_state)
        assert c.start == add_days(today, 40)


class TestProperties:
    """Test correctness and convergence on random acyclic graphs."""

    def test_constraints_hold_and_durations_kept(self, today):
        for seed in range(20):
            state = _random_dag(seed, today)
            before = _durations(state)
            result = enforce_dependencies(state)
            assert result.converged
            by_id = {t.id: t for t in state.tasks}
            for t in state.tasks:
                if t.deps:
                    assert t.start >= max(add_days(by_id[d].end, 1) for d in t.deps)
            assert _durations(state) == before

    def test_fixed_point_reached_in_first_call(self, today):
        for seed in range(20):
            state = _random_dag(seed, today)
            enforce_dependencies(state)
            again = enforce_dependencies(state)
            assert again.changed_ids == []
            assert again.converged


class TestEdgeCases:
    """Test undated tasks, dangling ids and groups."""

    def test_dangling_and_undated_predecessors_ignored(self, today):
        state = GanttState(tasks=[
            TaskEntity(id="u"),
            TaskEntity(id="t", start=today, end=today, deps=["ghost", "u"]),
        ])
        result = enforce_dependencies(state)
        assert result.changed_ids == []
        assert state.tasks[1].start == today

    def test_undated_successor_left_alone(self, today):
        state = GanttState(tasks=[
            TaskEntity(id="p", start=today, end=add_days(today, 4)),
            TaskEntity(id="s", start=today, deps=["p"]),
        ])
        enforce_dependencies(state)
        assert state.tasks[1].start == today and state.tasks[1].end is None

    def test_predecessor_ending_on_last_day(self):
        state = GanttState(tasks=[
            TaskEntity(id="a", start=date(9999, 12, 30), end=date.max),
            TaskEntity(id="b", start=date(9999, 12, 1), end=date(9999, 12, 3), deps=["a"]),
        ])
        result = enforce_dependencies(state)
        assert result.converged
        assert result.changed_ids == ["b"]
        assert (state.tasks[1].start, state.tasks[1].end) == (date.max, date.max)
        assert enforce_dependencies(state).changed_ids == []

    def test_groups_are_not_predecessors(self, today):
        state = GanttState(tasks=[
            TaskEntity(id="g", type="group", start=today, end=add_days(today, 30)),
            TaskEntity(id="t", start=today, end=today, deps=["g"]),
        ])
        enforce_dependencies(state)
        assert state.tasks[1].start == today


class TestCycles:
    """Test that cyclic graphs terminate and are flagged."""

    def test_cycle_terminates_unconverged(self, today):
        state = GanttState(tasks=[
            TaskEntity(id="a", start=today, end=add_days(today, 1), deps=["b"]),
            TaskEntity(id="b", start=today, end=add_days(today, 1), deps=["a"]),
        ])
        result = enforce_dependencies(state)
        assert result.converged is False
        assert result.passes == max_passes(2)
        # Durations still survive the bounded churn.
        assert _durations(state) == {"a": 1, "b": 1}

    def test_long_cycle_found_without_recursion(self):
        n = 3000
        state = GanttState(tasks=[TaskEntity(id=f"t{i}", deps=[f"t{(i + 1) % n}"]) for i in range(n)])
        cycle = find_dependency_cycle(state)
        assert len(cycle) == n + 1
        assert cycle[0] == cycle[-1] == "t0"

    def test_find_dependency_cycle(self, today):
        state = GanttState(tasks=[
            TaskEntity(id="a", deps=["c"]),
            TaskEntity(id="b", deps=["a"]),
            TaskEntity(id="c", deps=["b"]),
            TaskEntity(id="d", deps=["a"]),
        ])
        cycle = find_dependency_cycle(state)
        assert cycle is not None
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}

    def test_acyclic_has_no_cycle(self, scenario_state):
        assert find_dependency_cycle(scenario_state) is None

    def test_max_passes(self):
        assert max_passes(0) == 10
        assert max_passes(4) == 22
