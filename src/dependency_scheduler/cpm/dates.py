# dependency_scheduler/cpm/dates.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, List, Optional

import pandas as pd

from dependency_scheduler.cpm.graph import as_dependency, as_task
from dependency_scheduler.cpm.links import EARLIEST, predecessor_point, start_bound, successor_point
from dependency_scheduler.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TaskDates:
    start_date: pd.Timestamp
    end_date: pd.Timestamp


@dataclass(frozen=True)
class DateValidation:
    valid: bool
    errors: List[str] = field(default_factory=list)


def to_timestamp(value) -> Optional[pd.Timestamp]:
    """
    Coerce a date-like value; None/NaT/unparseable -> None.
    Zone-aware values are converted to naive UTC so they compare with plain dates.
    """
    if value is None:
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts


def _is_blank(value) -> bool:
    return value is None or value is pd.NaT


def _days(n) -> pd.Timedelta:
    return pd.Timedelta(days=n or 0)


# ---------------------------------------------------------
# DATE PROJECTION
# ---------------------------------------------------------

def calculate_task_dates(task, tasks: Iterable, dependencies: Iterable, project_start_date) -> TaskDates:
    """
    Calendar start/end for `task` given its predecessors' actual dates.

    No predecessors: starts on the project start. Otherwise each known
    predecessor imposes a floor through the same link arithmetic as the
    forward pass (FS: due + lag, SS: start + lag, FF/SF shifted back by this
    task's duration). The latest floor wins, never before the project start.
    """
    task = as_task(task)
    project_start = to_timestamp(project_start_date)
    if project_start is None:
        raise ValueError(f"Invalid project start date: {project_start_date!r}")

    tasks_by_id = {t.id: t for t in map(as_task, tasks)}
    duration = _days(task.duration)

    start = project_start
    for dep in map(as_dependency, dependencies):
        if dep.successor_id != task.id:
            continue
        pred = tasks_by_id.get(dep.predecessor_id)
        if pred is None:
            logger.debug("Predecessor %s of task %s not found; skipped", dep.predecessor_id, task.id)
            continue

        pred_start = to_timestamp(pred.start_date)
        pred_due = to_timestamp(pred.due_date)
        if predecessor_point(dep.type, pred_start, pred_due) is None:
            logger.debug("Predecessor %s of task %s has no date for a %s link; skipped",
                         pred.id, task.id, dep.type)
            continue

        floor = start_bound(dep.type, _days(dep.lag), EARLIEST, pred_start, pred_due, duration)
        start = max(start, floor)

    return TaskDates(start_date=start, end_date=start + duration)


def project_schedule_dates(result, project_start_date) -> Dict[Hashable, TaskDates]:
    """
    Project the abstract day offsets of a ScheduleResult onto the calendar,
    anchored at the project start. No working-day calendar is applied.
    """
    project_start = to_timestamp(project_start_date)
    if project_start is None:
        raise ValueError(f"Invalid project start date: {project_start_date!r}")

    return {
        tid: TaskDates(
            start_date=project_start + _days(t.earliest_start),
            end_date=project_start + _days(t.earliest_finish),
        )
        for tid, t in result.timings.items()
    }


# ---------------------------------------------------------
# DATE VALIDATION
# ---------------------------------------------------------

_LINK_MESSAGES = {
    "FS": 'Task cannot start before "{pred}" finishes',
    "SS": 'Task must start at the same time as or after "{pred}" starts',
    "FF": 'Task cannot finish before "{pred}" finishes',
    "SF": 'Task cannot finish before "{pred}" starts',
}


def validate_task_dates(task, tasks: Iterable, dependencies: Iterable) -> DateValidation:
    """
    Check a task's actual dates against itself and its predecessors.
    Never raises: every finding is collected into `errors`.
    """
    errors = []

    try:
        task = as_task(task)
        tasks_by_id = {t.id: t for t in map(as_task, tasks)}
        deps = [as_dependency(d) for d in dependencies]
    except (TypeError, ValueError) as e:
        return DateValidation(valid=False, errors=[f"Invalid input: {e}"])

    start = to_timestamp(task.start_date)
    due = to_timestamp(task.due_date)

    if not _is_blank(task.start_date) and start is None:
        errors.append(f"Invalid start date: {task.start_date!r}")
    if not _is_blank(task.due_date) and due is None:
        errors.append(f"Invalid due date: {task.due_date!r}")

    if start is not None and due is not None and start >= due:
        errors.append("Start date must be before the due date")

    for dep in deps:
        if dep.successor_id != task.id:
            continue

        pred = tasks_by_id.get(dep.predecessor_id)
        if pred is None:
            errors.append(f"Predecessor task not found: {dep.predecessor_id}")
            continue

        anchor = predecessor_point(dep.type, to_timestamp(pred.start_date), to_timestamp(pred.due_date))
        constrained = successor_point(dep.type, start, due)
        if anchor is None or constrained is None:
            continue

        if constrained < anchor + _days(dep.lag):
            message = _LINK_MESSAGES[dep.type].format(pred=pred.label)
            if dep.lag:
                message += f" (lag {dep.lag:+g} days)"
            errors.append(message)

    return DateValidation(valid=not errors, errors=errors)
