"""Shared utilities for task board CLI commands.

- Project resolution (option, env var, current directory)
- Board manager construction
- Formatted output helpers (error, success, info)
- Task formatting for display
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer

from pilot_tasks.application import BoardManager
from pilot_tasks.config import load_settings
from pilot_tasks.domain.task import DependencyChain, EpicProgress, Task, TaskStatus

PROJECT_ENV_VAR = "PILOT_PROJECT"

STATUS_MARKS = {
    TaskStatus.OPEN: "[ ]",
    TaskStatus.IN_PROGRESS: "[~]",
    TaskStatus.REVIEW: "[?]",
    TaskStatus.DONE: "[x]",
}


def configure_logging(verbose: bool) -> None:
    """Send log output to stderr; debug level when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def get_project_path(explicit_project: str | None = None) -> str:
    """Resolve the project directory.

    Resolution order:
    1. Explicit project parameter (from -p/--project CLI option)
    2. PILOT_PROJECT environment variable
    3. Current working directory
    """
    if explicit_project:
        return str(Path(explicit_project).resolve())
    env_project = os.environ.get(PROJECT_ENV_VAR)
    if env_project:
        return str(Path(env_project).resolve())
    return str(Path.cwd())


@contextmanager
def open_manager() -> Iterator[BoardManager]:
    """A board manager that is disposed when the command finishes."""
    manager = BoardManager(settings=load_settings())
    try:
        yield manager
    finally:
        manager.dispose()


def print_error(msg: str) -> None:
    """Print a formatted error message."""
    typer.echo(typer.style(f"Error: {msg}", fg=typer.colors.RED), err=True)


def print_success(msg: str) -> None:
    """Print a formatted success message."""
    typer.echo(typer.style(msg, fg=typer.colors.GREEN))


def print_info(msg: str) -> None:
    """Print a formatted info message."""
    typer.echo(typer.style(msg, fg=typer.colors.BLUE))


def print_warning(msg: str) -> None:
    """Print a formatted warning message."""
    typer.echo(typer.style(f"Warning: {msg}", fg=typer.colors.YELLOW), err=True)


def print_separator(char: str = "=", width: int = 60) -> None:
    typer.echo(char * width)


def format_task_row(task: Task) -> str:
    """One-line listing: status mark, id, priority, type and title."""
    mark = STATUS_MARKS.get(task.status, "[ ]")
    labels = f"  #{' #'.join(task.labels)}" if task.labels else ""
    return f"{mark} {task.id}  P{task.priority}  {task.type.value:<7} {task.title}{labels}"


def print_task_list(tasks: list[Task], empty_message: str = "No tasks.") -> None:
    if not tasks:
        print_info(empty_message)
        return
    for task in tasks:
        typer.echo(format_task_row(task))


def print_task(task: Task, chain: DependencyChain | None = None) -> None:
    """Print the full details of a task."""
    print_separator()
    typer.echo(f"{task.id}: {task.title}")
    print_separator()
    typer.echo(f"Status:     {task.status.value}")
    typer.echo(f"Priority:   P{task.priority}")
    typer.echo(f"Type:       {task.type.value}")
    if task.parent_id:
        typer.echo(f"Parent:     {task.parent_id}")
    if task.assignee:
        typer.echo(f"Assignee:   {task.assignee.value}")
    if task.labels:
        typer.echo(f"Labels:     {', '.join(task.labels)}")
    if task.estimate_minutes:
        typer.echo(f"Estimate:   {task.estimate_minutes} min")
    typer.echo(f"Created:    {task.created_at} by {task.created_by.value}")
    typer.echo(f"Updated:    {task.updated_at}")
    if task.closed_at:
        typer.echo(f"Closed:     {task.closed_at}")

    if task.description:
        typer.echo(f"\n{task.description}")

    if chain is not None:
        if chain.blockers:
            typer.echo("\nBlocked by:")
            for blocker in chain.blockers:
                typer.echo(f"  {format_task_row(blocker)}")
        if chain.dependents:
            typer.echo("\nBlocks:")
            for dependent in chain.dependents:
                typer.echo(f"  {format_task_row(dependent)}")

    if task.comments:
        typer.echo("\nComments:")
        for comment in task.comments:
            typer.echo(f"  [{comment.created_at}] {comment.author.value}: {comment.text}")
    print_separator()


def print_epic_progress(epic: Task, progress: EpicProgress, width: int = 30) -> None:
    filled = int(width * progress.percent_complete / 100)
    bar = "#" * filled + "-" * (width - filled)
    typer.echo(f"{epic.id}: {epic.title}")
    typer.echo(f"[{bar}] {progress.percent_complete}% ({progress.done}/{progress.total})")
    typer.echo(
        f"open {progress.open} | in progress {progress.in_progress} | "
        f"review {progress.review} | done {progress.done}"
    )
