"""File watching for external edits to the task log."""

from pilot_tasks.infrastructure.watch.file_watcher import (
    Debouncer,
    FileWatcher,
    PollingFileWatcher,
    Signature,
    WatcherFactory,
    file_signature,
    polling_watcher_factory,
)

__all__ = [
    "Debouncer",
    "FileWatcher",
    "PollingFileWatcher",
    "Signature",
    "WatcherFactory",
    "file_signature",
    "polling_watcher_factory",
]
