"""Compact task digest for agent context.

The output is a stable micro-format read verbatim by LLM prompts:

    <tasks>

    IN PROGRESS:
    - [pt-1a2b3c4d] P1 Fix bug

    READY:
    - [pt-5e6f7a8b] P2 Write docs

    BLOCKED:
    - [pt-9c0d1e2f] P2 Ship release (blocked by: pt-5e6f7a8b)

    DONE: 3 tasks
    </tasks>

Sections appear only when non-empty, always in this order.
"""

from pilot_tasks.domain.task import Task, TaskBoard, TaskStatus, unresolved_blocker_ids

OPEN_TAG = "<tasks>"
CLOSE_TAG = "</tasks>"


def format_task_line(task: Task, suffix: str = "") -> str:
    return f"- [{task.id}] P{task.priority} {task.title}{suffix}"


def _section(lines: list[str], heading: str, tasks: list[Task]) -> None:
    if not tasks:
        return
    lines.append(f"\n{heading}:")
    lines.extend(format_task_line(task) for task in tasks)


def format_agent_task_summary(board: TaskBoard) -> str:
    """Render ``board`` as the ``<tasks>`` digest, or "" for an empty board."""
    if not board.tasks:
        return ""

    by_id = {task.id: task for task in board.tasks}
    lines = [OPEN_TAG]

    _section(lines, "IN PROGRESS", [t for t in board.tasks if t.status == TaskStatus.IN_PROGRESS])
    _section(lines, "IN REVIEW", [t for t in board.tasks if t.status == TaskStatus.REVIEW])
    _section(lines, "READY", board.ready_tasks)

    if board.blocked_tasks:
        lines.append("\nBLOCKED:")
        for task in board.blocked_tasks:
            blocker_ids = unresolved_blocker_ids(task, by_id)
            suffix = f" (blocked by: {', '.join(blocker_ids)})" if blocker_ids else ""
            lines.append(format_task_line(task, suffix))

    done_count = sum(1 for t in board.tasks if t.status == TaskStatus.DONE)
    if done_count:
        lines.append(f"\nDONE: {done_count} task{'' if done_count == 1 else 's'}")

    lines.append(CLOSE_TAG)
    return "\n".join(lines)
