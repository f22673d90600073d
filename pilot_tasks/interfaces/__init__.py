"""Interfaces layer for the task board.

This layer contains adapters for external interactions:
- CLI: Command-line interface using Typer
- Agent: Tool definitions the coding agent calls

The interfaces layer is responsible for:
- Accepting input and validating it
- Calling the board manager
- Formatting output for the caller
"""

from pilot_tasks.interfaces.cli import app

__all__ = ["app"]
