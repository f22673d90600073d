"""Storage infrastructure for the task board."""

from pilot_tasks.infrastructure.storage.task_log import TaskLog, encode_task, ensure_dir

__all__ = [
    "TaskLog",
    "encode_task",
    "ensure_dir",
]
