"""Exceptions raised by the scheduling engine."""


class SchedulingError(ValueError):
    """Base class for scheduling failures."""


class CycleDetectedError(SchedulingError):
    """
    The dependency graph contains at least one cycle, so CPM numbers
    would be meaningless.
    """

    def __init__(self, cycles):
        self.cycles = [list(c) for c in cycles]
        seen = []
        for cycle in self.cycles:
            for task_id in cycle:
                if task_id not in seen:
                    seen.append(task_id)
        self.task_ids = seen

        described = "; ".join(" -> ".join(str(t) for t in c) for c in self.cycles)
        super().__init__(f"Graph is not acyclic; cannot compute CPM. Cycles: {described}")
