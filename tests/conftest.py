"""Shared fixtures for the task board tests."""

from pathlib import Path

import pytest

from pilot_tasks.application import BoardManager
from pilot_tasks.config import BoardSettings
from pilot_tasks.domain.task import Dependency, DependencyType, Task, TaskStatus, TaskType


class FakeWatcher:
    """Watcher double: changes are delivered by calling ``fire``."""

    def __init__(self, path: Path, on_change) -> None:
        self.path = path
        self.on_change = on_change
        self.started = False
        self.stopped = 0
        self.acks = 0
        self.acknowledged: list = []

    def start(self) -> None:
        self.started = True

    def acknowledge(self, before) -> None:
        self.acks += 1
        self.acknowledged.append(before)

    def stop(self) -> None:
        self.stopped += 1

    def fire(self) -> None:
        self.on_change()


class WatcherRecorder:
    def __init__(self) -> None:
        self.watchers: list[FakeWatcher] = []

    def __call__(self, path: Path, on_change) -> FakeWatcher:
        watcher = FakeWatcher(path, on_change)
        self.watchers.append(watcher)
        return watcher


def make_task(
    task_id: str,
    status: TaskStatus = TaskStatus.OPEN,
    priority: int = 2,
    task_type: TaskType = TaskType.TASK,
    blocked_by: tuple[str, ...] = (),
    parent_id: str | None = None,
    created_at: str = "2024-01-01T00:00:00.000Z",
    **fields,
) -> Task:
    """Build a task directly, bypassing the manager."""
    return Task(
        id=task_id,
        title=fields.pop("title", f"Task {task_id}"),
        status=status,
        priority=priority,
        type=task_type,
        parent_id=parent_id,
        dependencies=[
            Dependency(type=DependencyType.BLOCKED_BY, task_id=blocker) for blocker in blocked_by
        ],
        created_at=created_at,
        updated_at=created_at,
        **fields,
    )


@pytest.fixture
def project(tmp_path: Path) -> str:
    path = tmp_path / "project"
    path.mkdir()
    return str(path)


@pytest.fixture
def watchers() -> WatcherRecorder:
    return WatcherRecorder()


@pytest.fixture
def notifications() -> list[str]:
    return []


@pytest.fixture
def manager(watchers: WatcherRecorder, notifications: list[str]):
    manager = BoardManager(
        settings=BoardSettings(debounce_seconds=60),
        on_board_changed=notifications.append,
        watcher_factory=watchers,
    )
    yield manager
    manager.dispose()


@pytest.fixture
def log_path(project: str) -> Path:
    return BoardSettings().log_path(project)
