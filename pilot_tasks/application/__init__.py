"""Application layer for the task board.

Services:
    board_manager - Registry of loaded boards; all reads and writes go through it
    summary - ``<tasks>`` digest for agent context

Example usage:
    >>> from pilot_tasks.application import BoardManager
    >>>
    >>> with BoardManager() as manager:
    ...     task = manager.create_task("/path/to/project", {"title": "Fix bug"})
    ...     print(manager.get_agent_task_summary("/path/to/project"))
"""

from pilot_tasks.application.board_manager import BoardEntry, BoardListener, BoardManager
from pilot_tasks.application.summary import format_agent_task_summary

__all__ = [
    "BoardManager",
    "BoardEntry",
    "BoardListener",
    "format_agent_task_summary",
]
