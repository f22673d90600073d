"""Shared domain utilities.

Example usage:
    >>> from pilot_tasks.domain.shared import Ok, Err, Result
    >>>
    >>> def find_title(task_id: str) -> Result[str, str]:
    ...     if task_id == "pt-missing":
    ...         return Err("Task not found")
    ...     return Ok("Fix bug")
"""

from pilot_tasks.domain.shared.result import Err, Ok, Result

__all__ = [
    "Ok",
    "Err",
    "Result",
]
