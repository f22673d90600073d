"""Board manager: the registry of loaded task boards.

One ``BoardManager`` is created at application start and passed to
whatever issues task operations. It owns, per project path, the in-memory
``TaskBoard``, its ``TaskLog``, a watcher on the log file and a debounced
reload slot.

Every write follows the same order: validate, write to the log, then
update memory and recompute derived state, then notify listeners once.
If the log write fails, memory is untouched.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel

from pilot_tasks.application.summary import format_agent_task_summary
from pilot_tasks.config import BoardSettings
from pilot_tasks.domain.task import (
    Actor,
    Comment,
    DanglingReference,
    DependencyChain,
    EpicProgress,
    Task,
    TaskBoard,
    TaskCreateInput,
    TaskFilter,
    TaskNotFoundError,
    TaskUpdateInput,
    apply_derived,
    check_epic_auto_completion,
    dependency_chain,
    epic_progress,
    filter_tasks,
    find_dangling_dependencies,
    generate_comment_id,
    generate_task_id,
    utc_now_iso,
    validate_no_cycles,
)
from pilot_tasks.infrastructure.storage import TaskLog
from pilot_tasks.infrastructure.watch import (
    Debouncer,
    FileWatcher,
    Signature,
    WatcherFactory,
    polling_watcher_factory,
)

logger = logging.getLogger(__name__)

BoardListener = Callable[[str], None]
M = TypeVar("M", bound=BaseModel)


def _coerce(model: type[M], value: M | Mapping[str, Any] | None) -> M:
    if isinstance(value, model):
        return value
    return model.model_validate(value or {})


@dataclass
class BoardEntry:
    """Everything the manager holds for one project."""

    board: TaskBoard
    log: TaskLog
    debouncer: Debouncer
    watcher: FileWatcher | None = None


class BoardManager:
    """Load, mutate and query task boards keyed by project path.

    Example:
        manager = BoardManager(on_board_changed=refresh_ui)
        task = manager.create_task(project, {"title": "Write docs"})
        manager.update_task(project, task.id, {"status": "done"})
        manager.dispose()
    """

    def __init__(
        self,
        settings: BoardSettings | None = None,
        on_board_changed: BoardListener | None = None,
        watcher_factory: WatcherFactory | None = None,
    ) -> None:
        self.settings = settings or BoardSettings()
        self.on_board_changed = on_board_changed
        self._watcher_factory = watcher_factory or polling_watcher_factory(
            self.settings.poll_interval
        )
        self._boards: dict[str, BoardEntry] = {}
        self._listeners: list[BoardListener] = []
        self._lock = threading.RLock()
        self._enabled = self.settings.enabled

    # -------------------------------------------------------------------------
    # Feature toggle & listeners
    # -------------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled

    def subscribe(self, listener: BoardListener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, project_path: str) -> None:
        listeners = list(self._listeners)
        if self.on_board_changed is not None:
            listeners.insert(0, self.on_board_changed)
        for listener in listeners:
            try:
                listener(project_path)
            except Exception:
                logger.exception(f"Board change listener failed for {project_path}")

    # -------------------------------------------------------------------------
    # Loading & reloading
    # -------------------------------------------------------------------------

    def load_board(self, project_path: str | Path) -> TaskBoard:
        """Return the board for a project, loading it on first access."""
        return self._entry(project_path).board

    def is_loaded(self, project_path: str | Path) -> bool:
        return str(project_path) in self._boards

    def _entry(self, project_path: str | Path) -> BoardEntry:
        key = str(project_path)
        with self._lock:
            entry = self._boards.get(key)
            if entry is not None:
                return entry

            log = TaskLog.for_project(key, self.settings)
            board = apply_derived(TaskBoard(project_path=key, tasks=log.read_all()))
            entry = BoardEntry(
                board=board,
                log=log,
                debouncer=Debouncer(
                    self.settings.debounce_seconds,
                    lambda: self._reload_board(key),
                ),
            )
            entry.watcher = self._start_watcher(key, log.path)
            self._boards[key] = entry
            logger.info(f"Loaded task board for {key} ({len(board.tasks)} tasks)")
            return entry

    def _start_watcher(self, key: str, path: Path) -> FileWatcher | None:
        try:
            watcher = self._watcher_factory(path, lambda: self.handle_file_change(key))
            watcher.start()
        except (OSError, RuntimeError) as e:
            logger.warning(f"Failed to start file watcher for {key}: {e}")
            return None
        return watcher

    def handle_file_change(self, project_path: str | Path) -> None:
        """Schedule a reload; repeated calls collapse into one."""
        entry = self._boards.get(str(project_path))
        if entry is not None:
            entry.debouncer.trigger()

    def flush_pending_reload(self, project_path: str | Path) -> bool:
        """Run a scheduled reload now. Returns True if one was pending."""
        entry = self._boards.get(str(project_path))
        if entry is None:
            return False
        return entry.debouncer.flush()

    def _reload_board(self, key: str) -> None:
        with self._lock:
            entry = self._boards.get(key)
            if entry is None:
                return
            entry.board.tasks = entry.log.read_all()
            apply_derived(entry.board)
            logger.info(f"Reloaded task board for {key} after external change")
        self._notify(key)

    def _acknowledge(self, entry: BoardEntry, before: Signature) -> None:
        if entry.watcher is not None:
            entry.watcher.acknowledge(before)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create_task(
        self,
        project_path: str | Path,
        data: TaskCreateInput | Mapping[str, Any],
    ) -> Task:
        """Create a task and append it to the log.

        Raises:
            CircularDependencyError: if a blocked_by edge would close a cycle
            StorageError: if the log cannot be written
        """
        data = _coerce(TaskCreateInput, data)
        key = str(project_path)
        with self._lock:
            entry = self._entry(key)
            board = entry.board
            task = data.build(generate_task_id({t.id for t in board.tasks}))
            if task.has_blockers():
                validate_no_cycles(board.tasks, task)

            before = entry.log.signature()
            entry.log.append(task)
            self._acknowledge(entry, before)
            board.tasks.append(task)
            apply_derived(board)
        self._notify(key)
        return task

    def update_task(
        self,
        project_path: str | Path,
        task_id: str,
        updates: TaskUpdateInput | Mapping[str, Any],
    ) -> Task:
        """Apply a partial update, then auto-complete the parent epic if due.

        Raises:
            TaskNotFoundError: if ``task_id`` is not on the board
            CircularDependencyError: if new blocked_by edges would close a cycle
            StorageError: if the log cannot be written
        """
        updates = _coerce(TaskUpdateInput, updates)
        key = str(project_path)
        changed = False
        try:
            with self._lock:
                entry = self._entry(key)
                board = entry.board
                current = board.find(task_id)
                if current is None:
                    raise TaskNotFoundError(task_id)

                updated = current.with_updates(updates)
                if updates.touches_dependencies() and updated.has_blockers():
                    validate_no_cycles(_replaced(board.tasks, updated), updated)

                self._write(entry, updated)
                changed = True

                if updated.parent_id:
                    epic = check_epic_auto_completion(board.tasks, updated.parent_id)
                    if epic is not None:
                        self._write(entry, epic)
                        logger.info(f"Auto-completed epic {epic.id} on {key}")
        finally:
            if changed:
                self._notify(key)
        return updated

    def add_comment(
        self,
        project_path: str | Path,
        task_id: str,
        text: str,
        author: Actor | str = Actor.HUMAN,
    ) -> Comment:
        """Append a comment to a task and persist the whole record.

        Raises:
            TaskNotFoundError: if ``task_id`` is not on the board
            StorageError: if the log cannot be written
        """
        key = str(project_path)
        with self._lock:
            entry = self._entry(key)
            current = entry.board.find(task_id)
            if current is None:
                raise TaskNotFoundError(task_id)

            now = utc_now_iso()
            comment = Comment(
                id=generate_comment_id({c.id for c in current.comments}),
                text=text,
                author=Actor(author),
                created_at=now,
            )
            updated = current.model_copy(deep=True)
            updated.comments.append(comment)
            updated.touch(now)
            self._write(entry, updated)
        self._notify(key)
        return comment

    def delete_task(self, project_path: str | Path, task_id: str) -> bool:
        """Remove a task and every dependency edge pointing at it.

        Returns False (and does nothing) if the task does not exist.

        Raises:
            StorageError: if the log cannot be rewritten
        """
        key = str(project_path)
        with self._lock:
            entry = self._entry(key)
            board = entry.board
            if board.find(task_id) is None:
                return False

            remaining: list[Task] = []
            for task in board.tasks:
                if task.id == task_id:
                    continue
                if any(dep.task_id == task_id for dep in task.dependencies):
                    task = task.model_copy(deep=True)
                    task.dependencies = [
                        dep for dep in task.dependencies if dep.task_id != task_id
                    ]
                remaining.append(task)

            before = entry.log.signature()
            entry.log.compact(remaining)
            self._acknowledge(entry, before)
            board.tasks = remaining
            apply_derived(board)
        self._notify(key)
        return True

    def _write(self, entry: BoardEntry, task: Task) -> None:
        """Append ``task`` and swap it into the board in place of the old record."""
        before = entry.log.signature()
        entry.log.append(task)
        self._acknowledge(entry, before)
        tasks = entry.board.tasks
        for i, existing in enumerate(tasks):
            if existing.id == task.id:
                tasks[i] = task
                break
        else:
            tasks.append(task)
        apply_derived(entry.board)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_task(self, project_path: str | Path, task_id: str) -> Task:
        task = self.load_board(project_path).find(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def query_tasks(
        self,
        project_path: str | Path,
        criteria: TaskFilter | Mapping[str, Any] | None = None,
    ) -> list[Task]:
        return filter_tasks(self.load_board(project_path).tasks, _coerce(TaskFilter, criteria))

    def get_ready_tasks(self, project_path: str | Path) -> list[Task]:
        return list(self.load_board(project_path).ready_tasks)

    def get_dependency_chain(self, project_path: str | Path, task_id: str) -> DependencyChain:
        return dependency_chain(self.load_board(project_path).tasks, task_id)

    def get_epic_progress(self, project_path: str | Path, epic_id: str) -> EpicProgress:
        return epic_progress(self.load_board(project_path).tasks, epic_id)

    def get_agent_task_summary(self, project_path: str | Path) -> str:
        """The ``<tasks>`` digest for agent context ("" when disabled)."""
        if not self._enabled:
            return ""
        return format_agent_task_summary(self.load_board(project_path))

    def check_integrity(self, project_path: str | Path) -> list[DanglingReference]:
        """Dependency edges that point at tasks no longer on the board."""
        return find_dangling_dependencies(self.load_board(project_path).tasks)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def dispose(self, project_path: str | Path | None = None) -> None:
        """Release the watcher and pending reload of one project, or all."""
        with self._lock:
            if project_path is None:
                entries = list(self._boards.values())
                self._boards.clear()
            else:
                entry = self._boards.pop(str(project_path), None)
                entries = [entry] if entry is not None else []

        # stop outside the lock: a watcher thread may be waiting on it
        for entry in entries:
            entry.debouncer.cancel()
            if entry.watcher is not None:
                entry.watcher.stop()

    def close(self) -> None:
        self.dispose()

    def __enter__(self) -> "BoardManager":
        return self

    def __exit__(self, *exc: object) -> None:
        self.dispose()


def _replaced(tasks: list[Task], task: Task) -> list[Task]:
    return [task if t.id == task.id else t for t in tasks]
