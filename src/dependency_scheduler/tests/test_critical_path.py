import logging

import pytest
import numpy as np
from dependency_scheduler import (
    CycleDetectedError,
    Dependency,
    Task,
    calculate_critical_path,
    clear_schedule_cache,
)
from dependency_scheduler.cpm import engine
from dependency_scheduler.cpm.engine import BEST_EFFORT, STRICT


# ----------------------------------------------------------------
# HELPERS
# ----------------------------------------------------------------

def run_cpm(durations, links, mode=STRICT):
    """
    durations: {task_id: duration}
    links:     [(pred, succ), (pred, succ, type), (pred, succ, type, lag)]
    """
    tasks = [Task(tid, d) for tid, d in durations.items()]
    deps = [Dependency(*link) for link in links]
    return calculate_critical_path(tasks, deps, mode=mode)


def random_dag(rng, n_tasks, edge_prob):
    """Edges only point from lower to higher index, so the graph is acyclic."""
    durations = {i: int(rng.integers(0, 10)) for i in range(n_tasks)}
    links = []
    for i in range(n_tasks):
        for j in range(i + 1, n_tasks):
            if rng.random() < edge_prob:
                dep_type = str(rng.choice(["FS", "SS", "FF", "SF"]))
                lag = int(rng.integers(-3, 4))
                links.append((i, j, dep_type, lag))
    return durations, links


# ----------------------------------------------------------------
# 1. CORE CPM LOGIC
# ----------------------------------------------------------------

def test_linear_fs_chain():
    """
    A (2) -> B (3) -> C (4)
    Expected:
      A: ES=0, EF=2
      B: ES=2, EF=5
      C: ES=5, EF=9
    """
    res = run_cpm({"A": 2, "B": 3, "C": 4}, [("A", "B"), ("B", "C")])
    t = res.timings

    assert t["A"].earliest_finish == 2
    assert t["B"].earliest_start == 2 and t["B"].earliest_finish == 5
    assert t["C"].earliest_start == 5 and t["C"].earliest_finish == 9
    assert res.critical_duration == 9
    assert dict(res.slack_by_task) == {"A": 0, "B": 0, "C": 0}
    assert res.critical_path == ("A", "B", "C")


def test_diamond_picks_longer_branch():
    """
    A (1) -> B (2) -> D (1)
    A (1) -> C (5) -> D (1)
    D starts at max(EF(B), EF(C)) = max(3, 6) = 6
    """
    res = run_cpm(
        {"A": 1, "B": 2, "C": 5, "D": 1},
        [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")],
    )

    assert res.timings["D"].earliest_start == 6
    assert res.critical_path == ("A", "C", "D")
    assert res.slack_by_task["B"] == 3
    assert res.critical_duration == 7


def test_ss_dependency_with_lag():
    """
    Task 1 (Dur 10)
    Task 2 (Dur 5) depends on 1SS+2
    T2 ES = 2, LS = 10 - 5 = 5, slack 3.
    """
    res = run_cpm({1: 10, 2: 5}, [(1, 2, "SS", 2)])

    assert res.timings[2].earliest_start == 2
    assert res.timings[2].latest_start == 5
    assert res.slack_by_task[2] == 3
    assert res.slack_by_task[1] == 0


def test_ff_dependency():
    """
    Task 1 (Dur 10)
    Task 2 (Dur 2) depends on 1FF
    T2 cannot finish before T1, so ES(T2) = 8.
    """
    res = run_cpm({1: 10, 2: 2}, [(1, 2, "FF")])

    assert res.timings[1].earliest_finish == 10
    assert res.timings[2].earliest_finish == 10
    assert res.timings[2].earliest_start == 8
    assert res.critical_path == (1, 2)


def test_sf_dependency_with_lag():
    """
    Task 1 (Dur 10)
    Task 2 (Dur 3) depends on 1SF+5
    EF(T2) >= ES(T1) + 5 -> ES(T2) = 2, slack 5.
    """
    res = run_cpm({1: 10, 2: 3}, [(1, 2, "SF", 5)])

    assert res.timings[2].earliest_start == 2
    assert res.timings[2].earliest_finish == 5
    assert res.slack_by_task[2] == 5
    assert res.slack_by_task[1] == 0


def test_negative_lag_overlaps_tasks():
    """A (4) -> B (3) with FS-2: B starts two days before A finishes."""
    res = run_cpm({"A": 4, "B": 3}, [("A", "B", "FS", -2)])

    assert res.timings["B"].earliest_start == 2
    assert res.critical_duration == 5
    assert res.critical_path == ("A", "B")


def test_floor_never_before_project_start():
    """
    T1 (2) -> T2 (5) via FF: the raw floor is 2 - 5 = -3, clamped to 0.
    """
    res = run_cpm({1: 2, 2: 5}, [(1, 2, "FF")])

    assert res.timings[2].earliest_start == 0
    assert res.critical_duration == 5
    assert res.slack_by_task[1] == 3


def test_multiple_paths_convergence():
    """
    A (5) -> C (2)
    B (10) -> C (2)
    C should start at max(5, 10) = 10
    """
    res = run_cpm({1: 5, 2: 10, 3: 2}, [(1, 3), (2, 3)])

    assert res.timings[3].earliest_start == 10
    assert res.slack_by_task[1] == 5
    assert res.slack_by_task[2] == 0


def test_isolated_tasks_and_milestones():
    res = run_cpm({"A": 3, "M": 0, "Solo": 1}, [("A", "M")])

    assert res.timings["M"].earliest_start == 3
    assert res.critical_duration == 3
    assert set(res.critical_path) == {"A", "M"}
    assert res.slack_by_task["Solo"] == 2


def test_empty_task_set():
    res = calculate_critical_path([], [])

    assert res.critical_path == ()
    assert res.critical_duration == 0
    assert res.as_dict() == {"critical_path": [], "critical_duration": 0, "slack_by_task": {}}


def test_mapping_records_are_accepted():
    tasks = [{"id": "a", "duration": 2}, {"id": "b", "duration": 1}]
    deps = [{"predecessorId": "a", "successorId": "b", "type": "finish_to_start", "lag": 1}]

    res = calculate_critical_path(tasks, deps)

    assert res.timings["b"].earliest_start == 3
    assert tasks[0] == {"id": "a", "duration": 2}
    assert deps[0]["type"] == "finish_to_start"


def test_unknown_task_reference_is_a_diagnostic():
    res = run_cpm({"A": 2}, [("ghost", "A")])

    assert res.timings["A"].earliest_start == 0
    assert [d.code for d in res.diagnostics] == ["unknown_task"]
    assert res.diagnostics[0].task_ids == ("ghost",)
    assert res.is_reliable


def test_result_is_read_only():
    res = run_cpm({"A": 2}, [])

    with pytest.raises(TypeError):
        res.timings["A"] = None


def test_numeric_string_lag_is_converted():
    deps = [{"predecessorId": "a", "successorId": "b", "type": "FS", "lag": "2"}]

    res = calculate_critical_path([Task("a", 3), Task("b", 1)], deps)

    assert res.timings["b"].earliest_start == 5


def test_invalid_lag_rejected():
    with pytest.raises(ValueError, match="invalid lag"):
        Dependency("A", "B", "FS", "soon")

    with pytest.raises(ValueError, match="invalid lag"):
        calculate_critical_path([Task("A", 1), Task("B", 1)], [{"predecessorId": "A", "successorId": "B", "lag": [1]}])


# ----------------------------------------------------------------
# 2. CYCLES
# ----------------------------------------------------------------

def test_circular_dependency_error():
    """
    A -> B -> A loop should raise (CycleDetectedError is a ValueError)
    """
    with pytest.raises(ValueError, match="Graph is not acyclic"):
        run_cpm({1: 5, 2: 5}, [(2, 1), (1, 2)])


def test_cycle_error_names_the_tasks():
    with pytest.raises(CycleDetectedError) as exc:
        run_cpm({"A": 1, "B": 1, "C": 1, "D": 1}, [("A", "B"), ("B", "C"), ("C", "B"), ("C", "D")])

    assert set(exc.value.task_ids) == {"B", "C"}


def test_best_effort_mode_reports_cycle():
    res = run_cpm({"A": 2, "B": 3, "C": 1}, [("A", "B"), ("B", "A"), ("B", "C")], mode=BEST_EFFORT)

    assert not res.is_reliable
    assert len(res.cycles) == 1
    assert set(res.cycles[0]) == {"A", "B"}
    assert "cycle_detected" in [d.code for d in res.diagnostics]
    assert set(res.timings) == {"A", "B", "C"}


def test_unknown_mode_rejected():
    with pytest.raises(ValueError, match="Unknown mode"):
        run_cpm({"A": 1}, [], mode="lenient")


# ----------------------------------------------------------------
# 3. PROPERTIES ON RANDOM GRAPHS
# ----------------------------------------------------------------

@pytest.mark.parametrize("seed", range(20))
def test_random_dag_invariants(seed):
    rng = np.random.default_rng(seed)
    durations, links = random_dag(rng, n_tasks=int(rng.integers(1, 25)), edge_prob=0.2)

    res = run_cpm(durations, links)
    slack = res.slack_by_task

    # slack is never negative
    assert all(s >= 0 for s in slack.values())

    # duration matches the latest earliest finish
    assert res.critical_duration == max(t.earliest_finish for t in res.timings.values())

    # critical path <=> zero slack, never empty
    assert res.critical_path
    assert set(res.critical_path) == {tid for tid, s in slack.items() if s == 0}

    # every link is honoured by the earliest schedule
    for pred, succ, dep_type, lag in links:
        p, s = res.timings[pred], res.timings[succ]
        anchor = p.earliest_finish if dep_type[0] == "F" else p.earliest_start
        constrained = s.earliest_finish if dep_type[1] == "F" else s.earliest_start
        assert constrained >= anchor + lag


def test_input_order_does_not_change_numbers():
    durations = {"A": 1, "B": 2, "C": 5, "D": 1}
    links = [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")]

    forward = run_cpm(durations, links)
    backward = run_cpm(dict(reversed(list(durations.items()))), list(reversed(links)))

    assert dict(forward.slack_by_task) == dict(backward.slack_by_task)
    assert set(forward.critical_path) == set(backward.critical_path)


# ----------------------------------------------------------------
# 4. CACHING AND LOGGING
# ----------------------------------------------------------------

def test_results_are_cached_until_cleared():
    if not hasattr(engine._compute_cached, "cache_clear"):
        pytest.skip("schedule cache disabled")

    durations, links = {"A": 2, "B": 3}, [("A", "B")]
    clear_schedule_cache()

    first = run_cpm(durations, links)
    second = run_cpm(durations, links)
    assert second is first
    assert engine._compute_cached.cache_info().hits == 1

    clear_schedule_cache()
    third = run_cpm(durations, links)

    assert third is not first
    assert third.as_dict() == first.as_dict()
    assert engine._compute_cached.cache_info().hits == 0


def test_diagnostics_logged_on_every_call(caplog):
    durations, links = {"A": 2}, [("ghost", "A")]

    with caplog.at_level(logging.WARNING, logger="dependency_scheduler.cpm.engine"):
        run_cpm(durations, links)
        run_cpm(durations, links)

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING and "unknown_task" in r.getMessage()]
    assert len(warnings) == 2
    assert "ghost" in warnings[1].getMessage()
