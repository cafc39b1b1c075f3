# dependency_scheduler/cpm/graph.py

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Hashable, Iterable, Mapping, Optional, Tuple


# ---------------------------------------------------------
# LINK TYPES
# ---------------------------------------------------------

LINK_TYPES = ("FS", "SS", "FF", "SF")

_LINK_ALIASES = {
    "finish_to_start": "FS",
    "finishtostart": "FS",
    "start_to_start": "SS",
    "starttostart": "SS",
    "finish_to_finish": "FF",
    "finishtofinish": "FF",
    "start_to_finish": "SF",
    "starttofinish": "SF",
}


def normalize_link_type(value) -> str:
    """
    Map "FS", "fs", "finish_to_start", "FinishToStart", ... onto the
    two-letter link code. None means the default FS link.
    """
    if value is None:
        return "FS"
    text = str(value).strip()
    if text.upper() in LINK_TYPES:
        return text.upper()
    code = _LINK_ALIASES.get(text.lower())
    if code is None:
        raise ValueError(f"Unknown dependency type: {value!r}")
    return code


# ---------------------------------------------------------
# RECORDS
# ---------------------------------------------------------

@dataclass(frozen=True)
class Task:
    """A schedulable unit. Duration is in days, 0 is a milestone."""
    id: Hashable
    duration: float = 0
    name: str = ""
    start_date: Any = None
    due_date: Any = None

    def __post_init__(self):
        if self.duration is None:
            object.__setattr__(self, "duration", 0)
        if self.duration < 0:
            raise ValueError(f"Task {self.id!r} has a negative duration ({self.duration}).")

    @property
    def label(self) -> str:
        return self.name or str(self.id)


@dataclass(frozen=True)
class Dependency:
    """Directed, typed, lagged edge: predecessor -> successor."""
    predecessor_id: Hashable
    successor_id: Hashable
    type: str = "FS"
    lag: float = 0

    def __post_init__(self):
        object.__setattr__(self, "type", normalize_link_type(self.type))
        lag = 0 if self.lag is None else self.lag
        try:
            lag = float(lag)
        except (TypeError, ValueError):
            raise ValueError(
                f"Dependency {self.predecessor_id} -> {self.successor_id} has an invalid lag: {self.lag!r}"
            ) from None
        object.__setattr__(self, "lag", lag)


def _pick(record: Mapping, *keys, default=None):
    for key in keys:
        if key in record:
            return record[key]
    return default


def as_task(record) -> Task:
    """Accept a Task or a mapping with snake_case / camelCase keys."""
    if isinstance(record, Task):
        return record
    return Task(
        id=_pick(record, "id", "task_id", "taskId"),
        duration=_pick(record, "duration", default=0),
        name=_pick(record, "name", default="") or "",
        start_date=_pick(record, "start_date", "startDate"),
        due_date=_pick(record, "due_date", "dueDate"),
    )


def as_dependency(record) -> Dependency:
    """Accept a Dependency, a mapping, or a (predecessor_id, successor_id) pair."""
    if isinstance(record, Dependency):
        return record
    if isinstance(record, tuple):
        return Dependency(*record)
    return Dependency(
        predecessor_id=_pick(record, "predecessor_id", "predecessorId"),
        successor_id=_pick(record, "successor_id", "successorId"),
        type=_pick(record, "type", "dep_type"),
        lag=_pick(record, "lag", default=0),
    )


def snapshot(tasks: Iterable, dependencies: Iterable) -> Tuple[Tuple[Task, ...], Tuple[Dependency, ...]]:
    """Freeze caller-owned records into tuples of immutable records."""
    return (
        tuple(as_task(t) for t in tasks),
        tuple(as_dependency(d) for d in dependencies),
    )


# ---------------------------------------------------------
# GRAPH CONSTRUCTION
# ---------------------------------------------------------

@dataclass(frozen=True)
class TaskGraph:
    """
    nodes:      task ids in input order
    tasks:      {task_id: Task}
    edges_from: {pred: (Dependency, ...)}
    edges_to:   {succ: (Dependency, ...)}
    dangling:   dependencies that name an unknown task
    """
    nodes: Tuple[Hashable, ...]
    tasks: Mapping[Hashable, Task]
    edges_from: Mapping[Hashable, Tuple[Dependency, ...]]
    edges_to: Mapping[Hashable, Tuple[Dependency, ...]]
    dangling: Tuple[Dependency, ...] = field(default=())

    def duration(self, task_id) -> float:
        return self.tasks[task_id].duration

    def successors(self, task_id) -> Tuple[Dependency, ...]:
        return self.edges_from.get(task_id, ())

    def predecessors(self, task_id) -> Tuple[Dependency, ...]:
        return self.edges_to.get(task_id, ())


def build_graph(tasks: Iterable, dependencies: Iterable) -> TaskGraph:
    """
    Build the dependency-aware graph over task ids.

    Dependencies may be any iterable, including a chain of the existing
    edges and a candidate edge; nothing the caller owns is modified.
    """
    tasks_by_id = {}
    for raw in tasks:
        task = as_task(raw)
        if task.id in tasks_by_id:
            raise ValueError(f"Duplicate task id: {task.id!r}")
        tasks_by_id[task.id] = task

    edges_from = defaultdict(list)
    edges_to = defaultdict(list)
    dangling = []

    for raw in dependencies:
        dep = as_dependency(raw)
        if dep.predecessor_id not in tasks_by_id or dep.successor_id not in tasks_by_id:
            dangling.append(dep)
            continue
        edges_from[dep.predecessor_id].append(dep)
        edges_to[dep.successor_id].append(dep)

    return TaskGraph(
        nodes=tuple(tasks_by_id),
        tasks=MappingProxyType(tasks_by_id),
        edges_from=MappingProxyType({k: tuple(v) for k, v in edges_from.items()}),
        edges_to=MappingProxyType({k: tuple(v) for k, v in edges_to.items()}),
        dangling=tuple(dangling),
    )


def adjacency(dependencies: Iterable, known: Optional[set] = None) -> dict:
    """
    Plain successor lists {pred: [succ, ...]} for reachability queries that
    have no task list at hand. With `known`, edges touching unknown ids are
    dropped.
    """
    adj = defaultdict(list)
    for raw in dependencies:
        dep = as_dependency(raw)
        if known is not None and (dep.predecessor_id not in known or dep.successor_id not in known):
            continue
        adj[dep.predecessor_id].append(dep.successor_id)
    return adj
