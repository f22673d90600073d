"""CLI command groups.

Command groups:
- task: Task board management (list, ready, create, update, etc.)

Each command group is a Typer app registered with the main app
using app.add_typer().
"""

from pilot_tasks.interfaces.cli.commands import task

__all__ = ["task"]
