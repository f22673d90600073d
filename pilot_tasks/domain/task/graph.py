"""Dependency graph checks over ``blocked_by`` edges.

Pure domain logic - receives the task collection as a parameter.
The graph is small (hundreds of tasks), so each check does a full
traversal instead of maintaining an incremental ordering.
"""

from dataclasses import dataclass

from .errors import CircularDependencyError
from .models import Task


@dataclass(frozen=True)
class DanglingReference:
    """A dependency edge pointing at an id that is not on the board."""

    task_id: str
    missing_id: str
    dependency_type: str

    def __str__(self) -> str:
        return f"{self.task_id}: {self.dependency_type} -> {self.missing_id} (missing)"


def has_cycle(tasks: list[Task], start_id: str, target_id: str) -> bool:
    """Check whether ``target_id`` already depends on ``start_id``.

    Walks ``blocked_by`` edges outward from the target (its blockers, their
    blockers, ...). If ``start_id`` is reachable, making ``start_id``
    blocked_by ``target_id`` would close a cycle.

    Args:
        tasks: Current task collection
        start_id: The task that would gain the edge
        target_id: The proposed blocker

    Returns:
        True if the edge would create a cycle
    """
    by_id = {task.id: task for task in tasks}
    visited: set[str] = set()
    stack = [target_id]

    while stack:
        current = stack.pop()
        if current == start_id:
            return True
        if current in visited:
            continue
        visited.add(current)

        node = by_id.get(current)
        if node is None:
            continue
        stack.extend(node.blocked_by_ids())

    return False


def validate_no_cycles(tasks: list[Task], task: Task) -> None:
    """Raise if any of ``task``'s blockers would close a cycle.

    Raises:
        CircularDependencyError: naming the task and the offending blocker
    """
    for blocker_id in task.blocked_by_ids():
        if has_cycle(tasks, task.id, blocker_id):
            raise CircularDependencyError(task.id, blocker_id)


def find_dangling_dependencies(tasks: list[Task]) -> list[DanglingReference]:
    """Report dependency edges whose target id is not on the board.

    Readiness ignores missing blockers while the blocked set counts them,
    so these edges are worth surfacing to the user.
    """
    known = {task.id for task in tasks}
    return [
        DanglingReference(
            task_id=task.id,
            missing_id=dep.task_id,
            dependency_type=dep.type.value,
        )
        for task in tasks
        for dep in task.dependencies
        if dep.task_id not in known
    ]
