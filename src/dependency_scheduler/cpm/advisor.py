# dependency_scheduler/cpm/advisor.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Iterable, List, Optional, Tuple

from dependency_scheduler.config import settings
from dependency_scheduler.cpm.engine import FLOAT_TOLERANCE, ScheduleResult, calculate_critical_path


@dataclass(frozen=True)
class Suggestion:
    type: str
    description: str
    impact: str
    task_ids: Tuple[Hashable, ...]


def suggest_optimizations(
    tasks: Iterable,
    dependencies: Iterable,
    schedule: Optional[ScheduleResult] = None,
    slack_threshold: Optional[float] = None,
    near_critical_threshold: Optional[float] = None,
) -> List[Suggestion]:
    """
    Advisory pass over a computed schedule. Nothing is modified.

    Returns suggestions of type:
      parallelize   -> every task off the critical path (one suggestion)
      reallocation  -> one per task whose slack exceeds `slack_threshold`
      near_critical -> tasks with 0 < slack <= `near_critical_threshold`
    """
    if schedule is None:
        schedule = calculate_critical_path(tasks, dependencies)
    if slack_threshold is None:
        slack_threshold = settings.REALLOCATION_SLACK_THRESHOLD
    if near_critical_threshold is None:
        near_critical_threshold = settings.NEAR_CRITICAL_THRESHOLD

    suggestions = []
    critical = set(schedule.critical_path)
    slack = schedule.slack_by_task

    # -----------------------------
    # Parallelization candidates
    # -----------------------------
    non_critical = tuple(n for n in schedule.order if n not in critical)
    if non_critical:
        suggestions.append(Suggestion(
            type="parallelize",
            description="Some tasks can run in parallel with the critical path",
            impact="Potential time reduction",
            task_ids=non_critical,
        ))

    # -----------------------------
    # Spare capacity
    # -----------------------------
    for n in schedule.order:
        if slack[n] > slack_threshold:
            suggestions.append(Suggestion(
                type="reallocation",
                description=f"Task has {slack[n]:g} days of slack; resources can be reassigned",
                impact="Resource optimization",
                task_ids=(n,),
            ))

    # -----------------------------
    # About to become critical
    # -----------------------------
    near = tuple(
        n for n in schedule.order
        if FLOAT_TOLERANCE <= slack[n] <= near_critical_threshold
    )
    if near:
        suggestions.append(Suggestion(
            type="near_critical",
            description="Tasks with little slack will join the critical path if they slip",
            impact="Schedule risk",
            task_ids=near,
        ))

    return suggestions
