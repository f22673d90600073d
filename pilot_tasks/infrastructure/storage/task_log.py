"""Append-only JSONL task log.

One JSON object per line, one line per write. Reading folds the lines by
task id so that the last record for an id wins. Deletions cannot be
expressed as an appended record, so they go through ``compact`` which
rewrites the file with exactly the current tasks.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from pilot_tasks.config import BoardSettings
from pilot_tasks.domain.task import StorageError, Task
from pilot_tasks.infrastructure.watch import Signature, file_signature

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> Path:
    """Create ``path`` and its parents if missing."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def encode_task(task: Task) -> str:
    """Serialize a task as a single log line (without the newline)."""
    return json.dumps(task.to_wire(), ensure_ascii=False, separators=(",", ":"))


class TaskLog:
    """Durable storage for one project's tasks.

    Example:
        log = TaskLog.for_project("/path/to/project")
        log.append(task)
        tasks = log.read_all()
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @classmethod
    def for_project(
        cls,
        project_path: str | Path,
        settings: BoardSettings | None = None,
    ) -> "TaskLog":
        settings = settings or BoardSettings()
        return cls(settings.log_path(project_path))

    def signature(self) -> Signature:
        """``(mtime_ns, size)`` of the log, or None if it does not exist."""
        return file_signature(self.path)

    def append(self, task: Task) -> None:
        """Append one task record.

        Raises:
            StorageError: if the directory or file cannot be written.
        """
        line = encode_task(task) + "\n"
        try:
            ensure_dir(self.path.parent)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            raise StorageError(self.path, e) from e
        logger.debug(f"Appended {task.id} to {self.path}")

    def read_all(self) -> list[Task]:
        """Read every record, keeping the last one for each id.

        Tasks come back in the order their id first appeared. Malformed
        lines are skipped with a warning. A missing or unreadable file is
        an empty log.
        """
        if not self.path.exists():
            return []
        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read task log {self.path}: {e}")
            return []

        tasks: dict[str, Task] = {}
        for lineno, line in enumerate(content.split("\n"), start=1):
            if not line.strip():
                continue
            try:
                task = Task.model_validate(json.loads(line))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Skipping malformed record at {self.path}:{lineno}: {e}")
                continue
            tasks[task.id] = task
        return list(tasks.values())

    def compact(self, tasks: list[Task]) -> None:
        """Rewrite the log as exactly one record per task, in order.

        The new content is written to a sibling temp file and moved into
        place, so a concurrent reader sees either the old or the new log.

        Raises:
            StorageError: if the rewrite fails. The old log is left intact.
        """
        content = "".join(encode_task(task) + "\n" for task in tasks)
        tmp_name = None
        try:
            ensure_dir(self.path.parent)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(self.path, e) from e
        logger.debug(f"Compacted {self.path} to {len(tasks)} records")

