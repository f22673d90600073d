"""Infrastructure layer for the task board.

Exports:
    Storage:
        - TaskLog: Append-only JSONL task log with compaction

    Watch:
        - PollingFileWatcher: Detects external edits to the log
        - Debouncer: Collapses bursts of changes into one reload
"""

from pilot_tasks.infrastructure.storage import TaskLog
from pilot_tasks.infrastructure.watch import Debouncer, PollingFileWatcher

__all__ = [
    # Storage
    "TaskLog",
    # Watch
    "PollingFileWatcher",
    "Debouncer",
]
