"""Derived board state.

All functions in this module are pure - no I/O, no side effects.
They take a task collection snapshot in and return new data out.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from .models import (
    DependencyChain,
    EpicProgress,
    Task,
    TaskBoard,
    TaskFilter,
    TaskStatus,
    TaskType,
)


@dataclass(frozen=True)
class DerivedState:
    """The collections recomputed after every board change."""

    ready_tasks: list[Task]
    blocked_tasks: list[Task]
    epics: list[Task]


_LATEST = datetime.max.replace(tzinfo=UTC)


# =============================================================================
# Readiness
# =============================================================================


def _task_map(tasks: list[Task]) -> dict[str, Task]:
    return {task.id: task for task in tasks}


def _created_key(task: Task) -> datetime:
    try:
        created = datetime.fromisoformat(task.created_at)
    except ValueError:
        return _LATEST
    if created.tzinfo is None:
        created = created.replace(tzinfo=UTC)
    return created


def is_ready(task: Task, by_id: dict[str, Task]) -> bool:
    """Open, and every existing blocked_by target is done.

    A blocker id that is not on the board does not hold the task back.
    """
    if task.status != TaskStatus.OPEN:
        return False
    for blocker_id in task.blocked_by_ids():
        blocker = by_id.get(blocker_id)
        if blocker is not None and blocker.status != TaskStatus.DONE:
            return False
    return True


def is_blocked(task: Task, by_id: dict[str, Task]) -> bool:
    """Open or in progress, with a blocked_by target that is missing or not done."""
    if task.status not in (TaskStatus.OPEN, TaskStatus.IN_PROGRESS):
        return False
    for blocker_id in task.blocked_by_ids():
        blocker = by_id.get(blocker_id)
        if blocker is None or blocker.status != TaskStatus.DONE:
            return True
    return False


def unresolved_blocker_ids(task: Task, by_id: dict[str, Task]) -> list[str]:
    """Blocker ids that exist on the board and are not done yet."""
    return [
        blocker_id
        for blocker_id in task.blocked_by_ids()
        if blocker_id in by_id and by_id[blocker_id].status != TaskStatus.DONE
    ]


def compute_derived(tasks: list[Task]) -> DerivedState:
    """Compute ready, blocked and epic collections for a snapshot.

    Ready tasks are sorted by priority (0 first), then creation time.
    Blocked tasks and epics keep collection order.
    """
    by_id = _task_map(tasks)
    ready = sorted(
        (task for task in tasks if is_ready(task, by_id)),
        key=lambda task: (task.priority, _created_key(task)),
    )
    blocked = [task for task in tasks if is_blocked(task, by_id)]
    epics = [task for task in tasks if task.type == TaskType.EPIC]
    return DerivedState(ready_tasks=ready, blocked_tasks=blocked, epics=epics)


def apply_derived(board: TaskBoard) -> TaskBoard:
    """Recompute the derived collections of ``board`` in place."""
    state = compute_derived(board.tasks)
    board.ready_tasks = state.ready_tasks
    board.blocked_tasks = state.blocked_tasks
    board.epics = state.epics
    return board


# =============================================================================
# Queries
# =============================================================================


def matches_filter(task: Task, criteria: TaskFilter) -> bool:
    """Check a single task against every set criterion."""
    if criteria.status is not None and task.status not in criteria.status:
        return False
    if criteria.priority is not None and task.priority not in criteria.priority:
        return False
    if criteria.type is not None and task.type not in criteria.type:
        return False
    if criteria.labels:
        if not any(label in task.labels for label in criteria.labels):
            return False
    if criteria.assignee is not None and task.assignee not in criteria.assignee:
        return False
    if criteria.filters_parent() and task.parent_id != criteria.parent_id:
        return False
    if criteria.search:
        needle = criteria.search.lower()
        haystacks = (task.id, task.title, task.description)
        if not any(needle in text.lower() for text in haystacks):
            return False
    return True


def filter_tasks(tasks: list[Task], criteria: TaskFilter) -> list[Task]:
    """Return tasks matching all criteria, in collection order.

    Args:
        tasks: The task collection to search
        criteria: Filter; unset fields are ignored

    Returns:
        Matching tasks
    """
    return [task for task in tasks if matches_filter(task, criteria)]


def dependency_chain(tasks: list[Task], task_id: str) -> DependencyChain:
    """Direct blockers of a task and the tasks it blocks.

    Blocker references to ids not on the board are skipped.
    An unknown ``task_id`` yields an empty chain.
    """
    by_id = _task_map(tasks)
    task = by_id.get(task_id)
    if task is None:
        return DependencyChain()

    blockers = [by_id[bid] for bid in task.blocked_by_ids() if bid in by_id]
    dependents = [
        other
        for other in tasks
        if other.id != task_id and task_id in other.blocked_by_ids()
    ]
    return DependencyChain(blockers=blockers, dependents=dependents)


def epic_progress(tasks: list[Task], epic_id: str) -> EpicProgress:
    """Count direct children of an epic by status.

    Only one level is counted; grandchildren are not included.
    """
    progress = EpicProgress()
    for child in tasks:
        if child.parent_id != epic_id:
            continue
        progress.total += 1
        if child.status == TaskStatus.OPEN:
            progress.open += 1
        elif child.status == TaskStatus.IN_PROGRESS:
            progress.in_progress += 1
        elif child.status == TaskStatus.REVIEW:
            progress.review += 1
        elif child.status == TaskStatus.DONE:
            progress.done += 1

    if progress.total > 0:
        # half rounds up, not to even
        progress.percent_complete = int(progress.done * 100 / progress.total + 0.5)
    return progress


# =============================================================================
# Epic auto-completion
# =============================================================================


def check_epic_auto_completion(
    tasks: list[Task],
    epic_id: str,
    now: str | None = None,
) -> Task | None:
    """Return a closed copy of the epic if all its children are done.

    Returns None when ``epic_id`` is not an open epic, has no children,
    or still has unfinished children. The input is never modified.
    """
    epic = next((task for task in tasks if task.id == epic_id), None)
    if epic is None or epic.type != TaskType.EPIC or epic.status == TaskStatus.DONE:
        return None

    children = [task for task in tasks if task.parent_id == epic_id]
    if not children:
        return None
    if not all(child.status == TaskStatus.DONE for child in children):
        return None

    closed = epic.model_copy(deep=True)
    closed.set_status(TaskStatus.DONE, now)
    return closed
