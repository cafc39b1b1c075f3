"""Critical Path Method scheduling over typed, lagged task dependencies."""

from dependency_scheduler.cpm.advisor import Suggestion, suggest_optimizations
from dependency_scheduler.cpm.dates import (
    DateValidation,
    TaskDates,
    calculate_task_dates,
    project_schedule_dates,
    validate_task_dates,
)
from dependency_scheduler.cpm.engine import (
    Diagnostic,
    ScheduleResult,
    TaskTiming,
    calculate_critical_path,
    clear_schedule_cache,
)
from dependency_scheduler.cpm.frame import load_schedule_frame, parse_predecessor_cell, schedule_to_frame
from dependency_scheduler.cpm.graph import Dependency, Task, build_graph
from dependency_scheduler.cpm.topology import (
    find_cycle,
    get_dependent_tasks,
    has_circular_dependency,
    topological_order,
    would_create_cycle,
)
from dependency_scheduler.exceptions import CycleDetectedError, SchedulingError
from dependency_scheduler.validation.schedule_validator import validate_schedule

__all__ = [
    "CycleDetectedError",
    "DateValidation",
    "Dependency",
    "Diagnostic",
    "ScheduleResult",
    "SchedulingError",
    "Suggestion",
    "Task",
    "TaskDates",
    "TaskTiming",
    "build_graph",
    "calculate_critical_path",
    "calculate_task_dates",
    "clear_schedule_cache",
    "find_cycle",
    "get_dependent_tasks",
    "has_circular_dependency",
    "load_schedule_frame",
    "parse_predecessor_cell",
    "project_schedule_dates",
    "schedule_to_frame",
    "suggest_optimizations",
    "topological_order",
    "validate_schedule",
    "validate_task_dates",
    "would_create_cycle",
]
