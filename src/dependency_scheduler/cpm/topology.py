# dependency_scheduler/cpm/topology.py

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from itertools import chain
from typing import Hashable, Iterable, List, Optional, Tuple

from dependency_scheduler.cpm.graph import TaskGraph, adjacency, as_dependency, build_graph
from dependency_scheduler.logger import get_logger

logger = get_logger(__name__)

_VISITING = 1
_VISITED = 2


# ---------------------------------------------------------
# TOPOLOGICAL ORDER
# ---------------------------------------------------------

@dataclass(frozen=True)
class TopologicalOrder:
    order: Tuple[Hashable, ...]
    cycles: Tuple[Tuple[Hashable, ...], ...]

    @property
    def is_acyclic(self) -> bool:
        return not self.cycles


def topological_order(graph: TaskGraph) -> TopologicalOrder:
    """
    Depth-first post-order over every node (input order for the roots),
    reversed so predecessors come first.

    Uses an explicit stack of (node, successor iterator) frames. An edge back
    to a node still on the stack closes a cycle: the cycle is recorded and
    the edge skipped, so the traversal always finishes with every node
    placed somewhere.
    """
    state = {}
    postorder = []
    cycles = []

    for root in graph.nodes:
        if root in state:
            continue

        state[root] = _VISITING
        stack = [(root, iter(graph.successors(root)))]

        while stack:
            node, pending = stack[-1]
            for dep in pending:
                succ = dep.successor_id
                mark = state.get(succ)
                if mark is None:
                    state[succ] = _VISITING
                    stack.append((succ, iter(graph.successors(succ))))
                    break
                if mark == _VISITING:
                    path = [n for n, _ in stack]
                    cycle = tuple(path[path.index(succ):]) + (succ,)
                    logger.debug("Circular dependency detected: %s", " -> ".join(map(str, cycle)))
                    cycles.append(cycle)
            else:
                stack.pop()
                state[node] = _VISITED
                postorder.append(node)

    postorder.reverse()
    return TopologicalOrder(order=tuple(postorder), cycles=tuple(cycles))


# ---------------------------------------------------------
# CYCLE DETECTION
# ---------------------------------------------------------

def _find_cycle_in_graph(graph: TaskGraph) -> Optional[List[Hashable]]:
    visited = set()
    on_stack = set()

    for root in graph.nodes:
        if root in visited:
            continue

        visited.add(root)
        on_stack.add(root)
        path = [root]
        frames = [iter(graph.successors(root))]

        while frames:
            for dep in frames[-1]:
                succ = dep.successor_id
                if succ in on_stack:
                    return path[path.index(succ):] + [succ]
                if succ not in visited:
                    visited.add(succ)
                    on_stack.add(succ)
                    path.append(succ)
                    frames.append(iter(graph.successors(succ)))
                    break
            else:
                frames.pop()
                on_stack.discard(path.pop())

    return None


def find_cycle(tasks: Iterable, dependencies: Iterable) -> Optional[List[Hashable]]:
    """
    Return the first cycle found as a closed id list ([a, b, a]), or None.
    """
    return _find_cycle_in_graph(build_graph(tasks, dependencies))


def has_circular_dependency(tasks: Iterable, dependencies: Iterable) -> bool:
    return find_cycle(tasks, dependencies) is not None


def _reachable(graph: TaskGraph, source, target) -> bool:
    seen = {source}
    pending = [source]
    while pending:
        node = pending.pop()
        if node == target:
            return True
        for dep in graph.successors(node):
            if dep.successor_id not in seen:
                seen.add(dep.successor_id)
                pending.append(dep.successor_id)
    return False


def would_create_cycle(tasks: Iterable, existing_dependencies: Iterable, candidate) -> bool:
    """
    Would adding `candidate` (pred -> succ) close a cycle?

    The hypothetical graph is the existing edges chained with the candidate;
    the caller's dependency list is only read. A cycle appears exactly when
    the candidate's predecessor is reachable from its successor.
    """
    new_dep = as_dependency(candidate)
    graph = build_graph(tasks, chain(existing_dependencies, (new_dep,)))

    if new_dep.predecessor_id not in graph.tasks or new_dep.successor_id not in graph.tasks:
        return False
    return _reachable(graph, new_dep.successor_id, new_dep.predecessor_id)


# ---------------------------------------------------------
# IMPACT ANALYSIS
# ---------------------------------------------------------

def get_dependent_tasks(task_id, dependencies: Iterable) -> List[Hashable]:
    """
    Every task that directly or transitively depends on `task_id`, in
    breadth-first discovery order. Visited nodes are tracked, so a cycle
    that slipped through cannot loop forever.
    """
    adj = adjacency(dependencies)
    seen = {task_id}
    dependents = []
    queue = deque([task_id])

    while queue:
        node = queue.popleft()
        for succ in adj.get(node, []):
            if succ in seen:
                continue
            seen.add(succ)
            dependents.append(succ)
            queue.append(succ)

    return dependents
