"""Task board CLI commands.

Commands for listing, creating, updating, commenting on and deleting
tasks, plus the agent digest, epic progress and an integrity check.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import List, Optional

import typer
from pydantic import ValidationError

from pilot_tasks.domain.task import (
    Actor,
    Dependency,
    DependencyType,
    TaskBoardError,
    TaskStatus,
    TaskType,
)
from pilot_tasks.interfaces.agent.tools import merge_blockers
from pilot_tasks.interfaces.cli.common import (
    get_project_path,
    open_manager,
    print_epic_progress,
    print_error,
    print_info,
    print_success,
    print_task,
    print_task_list,
    print_warning,
)

app = typer.Typer(help="Task board commands")


def _project_option() -> Optional[str]:
    return typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory (or set PILOT_PROJECT env var)",
        envvar="PILOT_PROJECT",
    )


@contextmanager
def _board_errors() -> Iterator[None]:
    """Turn board and validation errors into a red message and exit code 1."""
    try:
        yield
    except TaskBoardError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except ValidationError as e:
        print_error(f"Invalid input: {e}")
        raise typer.Exit(1)


# =============================================================================
# Queries
# =============================================================================


@app.command("list")
def list_tasks(
    status: Optional[List[TaskStatus]] = typer.Option(None, "--status", "-s", help="Filter by status"),
    task_type: Optional[List[TaskType]] = typer.Option(None, "--type", "-t", help="Filter by type"),
    label: Optional[List[str]] = typer.Option(None, "--label", "-l", help="Filter by label (any match)"),
    parent: Optional[str] = typer.Option(None, "--parent", help="Only children of this epic"),
    search: Optional[str] = typer.Option(None, "--search", help="Case-insensitive text search"),
    project: Optional[str] = _project_option(),
) -> None:
    """List tasks, optionally filtered."""
    criteria: dict = {}
    if status:
        criteria["status"] = status
    if task_type:
        criteria["type"] = task_type
    if label:
        criteria["labels"] = label
    if parent:
        criteria["parent_id"] = parent
    if search:
        criteria["search"] = search

    with _board_errors(), open_manager() as manager:
        tasks = manager.query_tasks(get_project_path(project), criteria)
        print_task_list(tasks, "No matching tasks.")


@app.command("ready")
def ready(project: Optional[str] = _project_option()) -> None:
    """Show tasks that can be started now, highest priority first."""
    with _board_errors(), open_manager() as manager:
        print_task_list(manager.get_ready_tasks(get_project_path(project)), "No ready tasks.")


@app.command("show")
def show(
    task_id: str = typer.Argument(..., help="Task ID"),
    project: Optional[str] = _project_option(),
) -> None:
    """Show a task with its blockers, dependents and comments."""
    with _board_errors(), open_manager() as manager:
        project_path = get_project_path(project)
        task = manager.get_task(project_path, task_id)
        print_task(task, manager.get_dependency_chain(project_path, task_id))


@app.command("summary")
def summary(project: Optional[str] = _project_option()) -> None:
    """Print the <tasks> digest given to the agent."""
    with _board_errors(), open_manager() as manager:
        text = manager.get_agent_task_summary(get_project_path(project))
        if text:
            typer.echo(text)
        else:
            print_info("No tasks.")


@app.command("epic")
def epic(
    epic_id: str = typer.Argument(..., help="Epic ID"),
    project: Optional[str] = _project_option(),
) -> None:
    """Show progress of an epic's direct children."""
    with _board_errors(), open_manager() as manager:
        project_path = get_project_path(project)
        epic_task = manager.get_task(project_path, epic_id)
        if epic_task.type != TaskType.EPIC:
            print_warning(f"{epic_id} is a {epic_task.type.value}, not an epic")
        print_epic_progress(epic_task, manager.get_epic_progress(project_path, epic_id))


@app.command("doctor")
def doctor(project: Optional[str] = _project_option()) -> None:
    """Report dependencies that point at tasks no longer on the board."""
    with _board_errors(), open_manager() as manager:
        dangling = manager.check_integrity(get_project_path(project))
    if not dangling:
        print_success("No dangling dependencies.")
        return
    for ref in dangling:
        print_warning(str(ref))
    raise typer.Exit(1)


# =============================================================================
# Mutations
# =============================================================================


@app.command("create")
def create(
    title: str = typer.Argument(..., help="Task title"),
    description: str = typer.Option("", "--description", "-d", help="Task description"),
    task_type: TaskType = typer.Option(TaskType.TASK, "--type", "-t", help="Task type"),
    priority: int = typer.Option(2, "--priority", "-P", min=0, max=4, help="0 (highest) to 4"),
    parent: Optional[str] = typer.Option(None, "--parent", help="Parent epic ID"),
    blocked_by: Optional[List[str]] = typer.Option(None, "--blocked-by", "-b", help="Blocking task ID"),
    label: Optional[List[str]] = typer.Option(None, "--label", "-l", help="Label"),
    assignee: Optional[Actor] = typer.Option(None, "--assignee", "-a", help="human or agent"),
    estimate: Optional[int] = typer.Option(None, "--estimate", min=1, help="Estimate in minutes"),
    project: Optional[str] = _project_option(),
) -> None:
    """Create a task."""
    data = {
        "title": title,
        "description": description,
        "type": task_type,
        "priority": priority,
        "parent_id": parent,
        "dependencies": [
            Dependency(type=DependencyType.BLOCKED_BY, task_id=blocker_id)
            for blocker_id in blocked_by or []
        ],
        "labels": label or [],
        "assignee": assignee,
        "estimate_minutes": estimate,
    }
    with _board_errors(), open_manager() as manager:
        task = manager.create_task(get_project_path(project), data)
    print_success(f"Created {task.id}: {task.title}")


@app.command("update")
def update(
    task_id: str = typer.Argument(..., help="Task ID"),
    status: Optional[TaskStatus] = typer.Option(None, "--status", "-s", help="New status"),
    priority: Optional[int] = typer.Option(None, "--priority", "-P", min=0, max=4, help="New priority"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="New description"),
    assignee: Optional[Actor] = typer.Option(None, "--assignee", "-a", help="human or agent"),
    parent: Optional[str] = typer.Option(None, "--parent", help="New parent epic ID"),
    add_blocker: Optional[List[str]] = typer.Option(None, "--add-blocker", help="Add a blocking task"),
    remove_blocker: Optional[List[str]] = typer.Option(None, "--remove-blocker", help="Remove a blocking task"),
    label: Optional[List[str]] = typer.Option(None, "--label", "-l", help="Replace labels"),
    project: Optional[str] = _project_option(),
) -> None:
    """Update fields of a task. Only the given options change."""
    updates: dict = {}
    for name, value in (
        ("status", status),
        ("priority", priority),
        ("title", title),
        ("description", description),
        ("assignee", assignee),
        ("parent_id", parent),
        ("labels", label),
    ):
        if value is not None:
            updates[name] = value

    with _board_errors(), open_manager() as manager:
        project_path = get_project_path(project)
        if add_blocker or remove_blocker:
            current = manager.get_task(project_path, task_id)
            updates["dependencies"] = merge_blockers(current, add_blocker, remove_blocker)
        if not updates:
            print_info("Nothing to update.")
            return
        task = manager.update_task(project_path, task_id, updates)
    print_success(f"Updated {task.id}: {task.title} [{task.status.value}]")


@app.command("done")
def done(
    task_id: str = typer.Argument(..., help="Task ID"),
    project: Optional[str] = _project_option(),
) -> None:
    """Mark a task done (shortcut for 'update --status done')."""
    with _board_errors(), open_manager() as manager:
        task = manager.update_task(get_project_path(project), task_id, {"status": TaskStatus.DONE})
    print_success(f"Done: {task.id}: {task.title}")


@app.command("comment")
def comment(
    task_id: str = typer.Argument(..., help="Task ID"),
    text: str = typer.Argument(..., help="Comment text"),
    agent: bool = typer.Option(False, "--agent", help="Record the comment as written by the agent"),
    project: Optional[str] = _project_option(),
) -> None:
    """Add a comment to a task."""
    author = Actor.AGENT if agent else Actor.HUMAN
    with _board_errors(), open_manager() as manager:
        added = manager.add_comment(get_project_path(project), task_id, text, author)
    print_success(f"Added comment {added.id} to {task_id}")


@app.command("delete")
def delete(
    task_id: str = typer.Argument(..., help="Task ID"),
    project: Optional[str] = _project_option(),
) -> None:
    """Delete a task and remove references to it."""
    with _board_errors(), open_manager() as manager:
        deleted = manager.delete_task(get_project_path(project), task_id)
    if not deleted:
        print_error(f"Task not found: {task_id}")
        raise typer.Exit(1)
    print_success(f"Deleted {task_id}")
