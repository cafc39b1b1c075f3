# dependency_scheduler/cpm/engine.py

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Hashable, Iterable, Mapping, Optional, Tuple

from dependency_scheduler.config import settings
from dependency_scheduler.cpm.graph import Dependency, Task, TaskGraph, build_graph, snapshot
from dependency_scheduler.cpm.links import EARLIEST, LATEST, start_bound
from dependency_scheduler.cpm.topology import topological_order
from dependency_scheduler.exceptions import CycleDetectedError
from dependency_scheduler.logger import get_logger

logger = get_logger(__name__)

FLOAT_TOLERANCE = 1e-6

STRICT = "strict"
BEST_EFFORT = "best_effort"


# ---------------------------------------------------------
# RESULT TYPES
# ---------------------------------------------------------

@dataclass(frozen=True)
class TaskTiming:
    earliest_start: float
    earliest_finish: float
    latest_start: float
    latest_finish: float
    slack: float


@dataclass(frozen=True)
class Diagnostic:
    """Structured note about the input, returned next to the schedule."""
    level: str
    code: str
    message: str
    task_ids: Tuple[Hashable, ...] = ()


@dataclass(frozen=True)
class ScheduleResult:
    timings: Mapping[Hashable, TaskTiming]
    order: Tuple[Hashable, ...]
    critical_path: Tuple[Hashable, ...]
    critical_duration: float
    cycles: Tuple[Tuple[Hashable, ...], ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def slack_by_task(self) -> Mapping[Hashable, float]:
        return MappingProxyType({tid: t.slack for tid, t in self.timings.items()})

    @property
    def is_reliable(self) -> bool:
        """False when cycles were found and the numbers are best-effort only."""
        return not self.cycles

    def as_dict(self) -> dict:
        return {
            "critical_path": list(self.critical_path),
            "critical_duration": self.critical_duration,
            "slack_by_task": dict(self.slack_by_task),
        }


# ---------------------------------------------------------
# FORWARD / BACKWARD PASS
# ---------------------------------------------------------

def forward_pass(graph: TaskGraph, order: Iterable) -> dict:
    """
    Earliest (start, finish) per task.

    A task starts at the latest floor imposed by its incoming links, and
    never before the project start (0). Predecessors without a timing yet
    (only possible when a cycle broke the order) are ignored.
    """
    early = {}
    for n in order:
        d = graph.duration(n)
        es = 0
        for dep in graph.predecessors(n):
            pred = early.get(dep.predecessor_id)
            if pred is None:
                continue
            es = max(es, start_bound(dep.type, dep.lag, EARLIEST, pred[0], pred[1], d))
        early[n] = (es, es + d)
    return early


def backward_pass(graph: TaskGraph, order: Iterable, project_duration: float) -> dict:
    """
    Latest (start, finish) per task, walking the order in reverse.

    A task must start by the earliest ceiling imposed by its outgoing links
    and must finish by the project duration.
    """
    late = {}
    for n in reversed(tuple(order)):
        d = graph.duration(n)
        ls = project_duration - d
        for dep in graph.successors(n):
            succ = late.get(dep.successor_id)
            if succ is None:
                continue
            ls = min(ls, start_bound(dep.type, dep.lag, LATEST, succ[0], succ[1], d))
        late[n] = (ls, ls + d)
    return late


# ---------------------------------------------------------
# CRITICAL PATH
# ---------------------------------------------------------

def _resolve_mode(mode: Optional[str]) -> str:
    mode = mode or settings.SCHEDULE_MODE
    if mode not in (STRICT, BEST_EFFORT):
        raise ValueError(f"Unknown mode: {mode}")
    return mode


def _compute(tasks: Tuple[Task, ...], dependencies: Tuple[Dependency, ...], mode: str) -> ScheduleResult:
    graph = build_graph(tasks, dependencies)
    diagnostics = []

    for dep in graph.dangling:
        missing = tuple(t for t in (dep.predecessor_id, dep.successor_id) if t not in graph.tasks)
        diagnostics.append(Diagnostic(
            "warning", "unknown_task",
            f"Dependency {dep.predecessor_id} -> {dep.successor_id} references unknown task(s): "
            f"{', '.join(map(str, missing))}",
            missing,
        ))

    topo = topological_order(graph)
    if topo.cycles:
        if mode == STRICT:
            raise CycleDetectedError(topo.cycles)
        for cycle in topo.cycles:
            diagnostics.append(Diagnostic(
                "warning", "cycle_detected",
                f"Circular dependency: {' -> '.join(map(str, cycle))}; schedule is best-effort",
                cycle,
            ))

    early = forward_pass(graph, topo.order)
    project_duration = max((ef for _, ef in early.values()), default=0)
    late = backward_pass(graph, topo.order, project_duration)

    timings = {}
    for n in graph.nodes:
        es, ef = early[n]
        ls, lf = late[n]
        timings[n] = TaskTiming(es, ef, ls, lf, lf - ef)

    critical = tuple(n for n in topo.order if abs(timings[n].slack) < FLOAT_TOLERANCE)

    logger.debug("CPM computed: %d tasks, duration %s, critical path %s",
                 len(timings), project_duration, list(critical))

    return ScheduleResult(
        timings=MappingProxyType(timings),
        order=topo.order,
        critical_path=critical,
        critical_duration=project_duration,
        cycles=topo.cycles,
        diagnostics=tuple(diagnostics),
    )


if settings.SCHEDULE_CACHE_SIZE > 0:
    _compute_cached = lru_cache(maxsize=settings.SCHEDULE_CACHE_SIZE)(_compute)
else:
    _compute_cached = _compute


def clear_schedule_cache():
    if hasattr(_compute_cached, "cache_clear"):
        _compute_cached.cache_clear()


def calculate_critical_path(tasks: Iterable, dependencies: Iterable, mode: Optional[str] = None) -> ScheduleResult:
    """
    Run the full CPM pipeline: graph -> topological order -> forward pass
    -> backward pass -> slack and critical path.

    mode:
      strict      -> raise CycleDetectedError when the graph has a cycle
      best_effort -> compute anyway; cycles land in result.cycles and
                     result.diagnostics, result.is_reliable is False
      None        -> settings.SCHEDULE_MODE

    Results are immutable and memoized on the (tasks, dependencies) snapshot.
    Diagnostics are logged on every call, cached or not.
    """
    mode = _resolve_mode(mode)
    task_snapshot, dep_snapshot = snapshot(tasks, dependencies)
    result = _compute_cached(task_snapshot, dep_snapshot, mode)
    for diag in result.diagnostics:
        logger.warning("[%s] %s", diag.code, diag.message)
    return result
