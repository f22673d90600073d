"""CLI interface for the task board using Typer.

Usage:
    pilot-tasks ready               # What can be started now
    pilot-tasks task create "Fix"   # Create a task
    pilot-tasks done pt-1a2b3c4d    # Mark a task done
    pilot-tasks summary             # The agent digest

The CLI is structured as:
- app: Main Typer application
- commands/: Command groups (task)
- common.py: Shared utilities for CLI commands
- main.py: Entry point that runs the app
"""

from typing import Optional

import typer

from pilot_tasks import __version__
from pilot_tasks.interfaces.cli.commands import task
from pilot_tasks.interfaces.cli.common import configure_logging

app = typer.Typer(
    name="pilot-tasks",
    help="Dependency-aware task board for human and agent pair programming",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pilot-tasks version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """pilot-tasks - the project task board from the command line."""
    configure_logging(verbose)


# =============================================================================
# Register Command Groups
# =============================================================================

app.add_typer(task.app, name="task")


# =============================================================================
# Top-Level Shortcuts for Common Commands
# =============================================================================

app.command("ready", help="Show ready tasks (shortcut for 'task ready').")(task.ready)
app.command("list", help="List tasks (shortcut for 'task list').")(task.list_tasks)
app.command("done", help="Mark a task done (shortcut for 'task done').")(task.done)
app.command("summary", help="Print the agent digest (shortcut for 'task summary').")(task.summary)


__all__ = ["app"]
