"""Error taxonomy for task board operations.

Validation and lookup errors are raised before anything is written.
Storage errors wrap the underlying ``OSError`` and leave the in-memory
board at its last known good state.
"""

from pathlib import Path


class TaskBoardError(Exception):
    """Base class for all task board errors."""


class TaskValidationError(TaskBoardError):
    """A proposed change violates a board invariant."""


class CircularDependencyError(TaskValidationError):
    """Adding ``task_id`` blocked_by ``blocker_id`` would close a cycle."""

    def __init__(self, task_id: str, blocker_id: str) -> None:
        self.task_id = task_id
        self.blocker_id = blocker_id
        super().__init__(f"Circular dependency detected: {task_id} -> {blocker_id}")


class TaskNotFoundError(TaskBoardError):
    """The task id does not exist on the board."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class StorageError(TaskBoardError):
    """Reading or writing the task log failed."""

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Task log I/O failed for {path}: {cause}")
