"""Tests for the board manager: writes, queries, reloads and lifecycle."""

import pytest

from pilot_tasks.application import BoardManager
from pilot_tasks.config import BoardSettings
from pilot_tasks.domain.task import (
    Actor,
    CircularDependencyError,
    StorageError,
    TaskNotFoundError,
    TaskStatus,
    TaskType,
)
from pilot_tasks.infrastructure.storage import TaskLog, encode_task
from pilot_tasks.infrastructure.watch import PollingFileWatcher

from .conftest import make_task


def blocked_by(*task_ids):
    return [{"type": "blocked_by", "task_id": task_id} for task_id in task_ids]


def ids(tasks):
    return [t.id for t in tasks]


class TestCreate:
    def test_create_persists_and_notifies(self, manager, project, log_path, notifications):
        task = manager.create_task(project, {"title": "Write docs", "priority": 1})

        assert task.id.startswith("pt-")
        assert manager.get_task(project, task.id) == task
        assert [t.id for t in TaskLog(log_path).read_all()] == [task.id]
        assert notifications == [project]

    def test_first_access_loads_existing_log(self, manager, project, log_path):
        log = TaskLog(log_path)
        log.append(make_task("pt-old", title="From disk"))

        board = manager.load_board(project)

        assert ids(board.tasks) == ["pt-old"]
        assert ids(board.ready_tasks) == ["pt-old"]

    def test_load_board_is_cached(self, manager, project, watchers):
        first = manager.load_board(project)
        second = manager.load_board(project)

        assert first is second
        assert manager.is_loaded(project)
        assert len(watchers.watchers) == 1
        assert watchers.watchers[0].started

    def test_self_dependency_rejected(self, manager, project, log_path, monkeypatch):
        monkeypatch.setattr(
            "pilot_tasks.application.board_manager.generate_task_id", lambda taken: "pt-self"
        )
        with pytest.raises(CircularDependencyError):
            manager.create_task(project, {"title": "Loop", "dependencies": blocked_by("pt-self")})

        assert manager.load_board(project).tasks == []
        assert not log_path.exists()

    def test_invalid_input_raises_before_write(self, manager, project, log_path):
        with pytest.raises(ValueError):
            manager.create_task(project, {"title": ""})
        assert not log_path.exists()


class TestScenarios:
    def test_dependency_unblocking(self, manager, project):
        a = manager.create_task(project, {"title": "A"})
        b = manager.create_task(project, {"title": "B", "dependencies": blocked_by(a.id)})

        assert ids(manager.get_ready_tasks(project)) == [a.id]
        assert ids(manager.load_board(project).blocked_tasks) == [b.id]

        manager.update_task(project, a.id, {"status": "done"})

        assert ids(manager.get_ready_tasks(project)) == [b.id]
        assert manager.load_board(project).blocked_tasks == []

    def test_cycle_rejected_and_log_unchanged(self, manager, project, log_path):
        a = manager.create_task(project, {"title": "A"})
        b = manager.create_task(project, {"title": "B", "dependencies": blocked_by(a.id)})
        before = log_path.read_bytes()

        with pytest.raises(CircularDependencyError) as exc_info:
            manager.update_task(project, a.id, {"dependencies": blocked_by(b.id)})

        assert str(exc_info.value) == f"Circular dependency detected: {a.id} -> {b.id}"
        assert log_path.read_bytes() == before
        assert manager.get_task(project, a.id).dependencies == []

    def test_epic_auto_completion(self, manager, project, notifications):
        epic = manager.create_task(project, {"title": "E", "type": "epic"})
        c1 = manager.create_task(project, {"title": "c1", "parent_id": epic.id})
        c2 = manager.create_task(project, {"title": "c2", "parent_id": epic.id})

        manager.update_task(project, c1.id, {"status": "done"})
        assert manager.get_task(project, epic.id).status == TaskStatus.OPEN

        notifications.clear()
        manager.update_task(project, c2.id, {"status": "done"})

        closed = manager.get_task(project, epic.id)
        assert closed.status == TaskStatus.DONE
        assert closed.closed_at is not None
        assert notifications == [project]

        reloaded = TaskLog.for_project(project).read_all()
        assert next(t for t in reloaded if t.id == epic.id).status == TaskStatus.DONE

    def test_epic_stays_done_when_child_reopens(self, manager, project):
        epic = manager.create_task(project, {"title": "E", "type": "epic"})
        child = manager.create_task(project, {"title": "c", "parent_id": epic.id})
        manager.update_task(project, child.id, {"status": "done"})

        manager.update_task(project, child.id, {"status": "open"})

        assert manager.get_task(project, epic.id).status == TaskStatus.DONE


class TestUpdate:
    def test_unknown_task(self, manager, project, notifications):
        with pytest.raises(TaskNotFoundError) as exc_info:
            manager.update_task(project, "pt-missing", {"title": "x"})
        assert str(exc_info.value) == "Task not found: pt-missing"
        assert notifications == []

    def test_partial_update_keeps_other_fields(self, manager, project):
        task = manager.create_task(
            project, {"title": "T", "labels": ["ui"], "estimate_minutes": 30, "priority": 1}
        )

        updated = manager.update_task(project, task.id, {"status": "in_progress"})

        assert updated.status == TaskStatus.IN_PROGRESS
        assert updated.labels == ["ui"]
        assert updated.estimate_minutes == 30
        assert updated.priority == 1

    def test_explicit_none_clears_parent(self, manager, project):
        epic = manager.create_task(project, {"title": "E", "type": "epic"})
        task = manager.create_task(project, {"title": "T", "parent_id": epic.id})

        updated = manager.update_task(project, task.id, {"parent_id": None})

        assert updated.parent_id is None

    def test_closed_at_transitions(self, manager, project):
        task = manager.create_task(project, {"title": "T"})

        done = manager.update_task(project, task.id, {"status": "done"})
        assert done.closed_at is not None

        reopened = manager.update_task(project, task.id, {"status": "open"})
        assert reopened.closed_at is None

    def test_notifies_once(self, manager, project, notifications):
        task = manager.create_task(project, {"title": "T"})
        notifications.clear()

        manager.update_task(project, task.id, {"title": "Renamed"})

        assert notifications == [project]

    def test_storage_failure_leaves_memory_untouched(
        self, manager, project, notifications, monkeypatch
    ):
        task = manager.create_task(project, {"title": "T"})
        notifications.clear()

        def fail(self, task):
            raise StorageError(self.path, OSError("disk full"))

        monkeypatch.setattr(TaskLog, "append", fail)

        with pytest.raises(StorageError):
            manager.update_task(project, task.id, {"status": "done"})

        assert manager.get_task(project, task.id).status == TaskStatus.OPEN
        assert ids(manager.get_ready_tasks(project)) == [task.id]
        assert notifications == []


class TestComment:
    def test_add_comment(self, manager, project, notifications):
        task = manager.create_task(project, {"title": "T"})
        notifications.clear()

        comment = manager.add_comment(project, task.id, "Looks good", Actor.AGENT)

        stored = manager.get_task(project, task.id)
        assert comment.id.startswith("cm-")
        assert stored.comments == [comment]
        assert stored.comments[0].author == Actor.AGENT
        assert stored.updated_at == comment.created_at
        assert notifications == [project]
        assert TaskLog.for_project(project).read_all()[0].comments[0].text == "Looks good"

    def test_comment_on_unknown_task(self, manager, project):
        with pytest.raises(TaskNotFoundError):
            manager.add_comment(project, "pt-missing", "hello")


class TestDelete:
    def test_delete_strips_references_and_compacts(self, manager, project, log_path):
        a = manager.create_task(project, {"title": "A"})
        b = manager.create_task(project, {"title": "B", "dependencies": blocked_by(a.id)})
        manager.update_task(project, b.id, {"title": "B2"})

        assert manager.delete_task(project, a.id) is True

        assert manager.load_board(project).find(a.id) is None
        assert manager.get_task(project, b.id).dependencies == []
        assert ids(manager.get_ready_tasks(project)) == [b.id]

        lines = [line for line in log_path.read_text(encoding="utf-8").split("\n") if line]
        assert len(lines) == 1
        reloaded = TaskLog(log_path).read_all()
        assert ids(reloaded) == [b.id]
        assert reloaded[0].title == "B2"
        assert reloaded[0].dependencies == []

    def test_delete_unknown_is_noop(self, manager, project, notifications):
        assert manager.delete_task(project, "pt-missing") is False
        assert notifications == []


class TestQueries:
    def test_query_tasks_with_mapping(self, manager, project):
        manager.create_task(project, {"title": "Bug", "type": "bug"})
        manager.create_task(project, {"title": "Feature", "type": "feature"})

        result = manager.query_tasks(project, {"type": ["bug"]})

        assert [t.title for t in result] == ["Bug"]
        assert len(manager.query_tasks(project)) == 2

    def test_get_ready_tasks_returns_a_copy(self, manager, project):
        manager.create_task(project, {"title": "A"})
        ready = manager.get_ready_tasks(project)
        ready.clear()
        assert len(manager.get_ready_tasks(project)) == 1

    def test_dependency_chain_and_epic_progress(self, manager, project):
        epic = manager.create_task(project, {"title": "E", "type": "epic"})
        a = manager.create_task(project, {"title": "A", "parent_id": epic.id})
        b = manager.create_task(
            project, {"title": "B", "parent_id": epic.id, "dependencies": blocked_by(a.id)}
        )
        manager.update_task(project, a.id, {"status": "done"})

        chain = manager.get_dependency_chain(project, a.id)
        progress = manager.get_epic_progress(project, epic.id)

        assert ids(chain.dependents) == [b.id]
        assert progress.total == 2
        assert progress.done == 1
        assert progress.percent_complete == 50

    def test_get_task_unknown(self, manager, project):
        with pytest.raises(TaskNotFoundError):
            manager.get_task(project, "pt-missing")

    def test_check_integrity(self, manager, project, log_path):
        TaskLog(log_path).append(make_task("pt-1", blocked_by=("pt-gone",)))

        dangling = manager.check_integrity(project)

        assert [(d.task_id, d.missing_id) for d in dangling] == [("pt-1", "pt-gone")]

    def test_summary_empty_when_disabled(self, manager, project):
        manager.create_task(project, {"title": "A"})
        assert manager.get_agent_task_summary(project).startswith("<tasks>")

        manager.set_enabled(False)

        assert not manager.enabled
        assert manager.get_agent_task_summary(project) == ""


class TestReload:
    def test_external_change_reloads_after_debounce(
        self, manager, project, log_path, watchers, notifications
    ):
        manager.load_board(project)
        TaskLog(log_path).append(make_task("pt-ext", title="External"))

        watcher = watchers.watchers[0]
        watcher.fire()
        watcher.fire()
        watcher.fire()

        assert manager.load_board(project).find("pt-ext") is None
        assert manager.flush_pending_reload(project) is True
        assert manager.flush_pending_reload(project) is False

        assert manager.get_task(project, "pt-ext").title == "External"
        assert notifications == [project]

    def test_reload_replaces_board_contents(self, manager, project, log_path):
        task = manager.create_task(project, {"title": "Mine"})
        log_path.write_text(
            encode_task(make_task(task.id, title="Edited elsewhere")) + "\n", encoding="utf-8"
        )

        manager.handle_file_change(project)
        manager.flush_pending_reload(project)

        assert manager.get_task(project, task.id).title == "Edited elsewhere"

    def test_own_writes_are_acknowledged(self, manager, project, watchers):
        task = manager.create_task(project, {"title": "A"})
        manager.update_task(project, task.id, {"title": "B"})

        acknowledged = watchers.watchers[0].acknowledged
        assert len(acknowledged) == 2
        # the first write created the file
        assert acknowledged[0] is None
        assert acknowledged[1] is not None

    def test_change_for_unloaded_project_is_ignored(self, manager, project):
        manager.handle_file_change(project)
        assert not manager.is_loaded(project)
        assert manager.flush_pending_reload(project) is False


class TestListeners:
    def test_subscribe_and_unsubscribe(self, manager, project):
        seen = []
        unsubscribe = manager.subscribe(seen.append)

        manager.create_task(project, {"title": "A"})
        unsubscribe()
        manager.create_task(project, {"title": "B"})

        assert seen == [project]

    def test_failing_listener_does_not_break_writes(self, manager, project, notifications):
        def boom(path):
            raise RuntimeError("listener bug")

        manager.subscribe(boom)
        task = manager.create_task(project, {"title": "A"})

        assert manager.get_task(project, task.id) == task
        assert notifications == [project]


class TestLifecycle:
    def test_dispose_one_project(self, manager, project, tmp_path, watchers):
        other = tmp_path / "other"
        other.mkdir()
        manager.load_board(project)
        manager.load_board(other)

        manager.dispose(project)

        assert not manager.is_loaded(project)
        assert manager.is_loaded(other)
        assert watchers.watchers[0].stopped == 1
        assert watchers.watchers[1].stopped == 0

    def test_dispose_is_idempotent(self, manager, project, watchers):
        manager.load_board(project)
        manager.handle_file_change(project)

        manager.dispose(project)
        manager.dispose(project)
        manager.dispose()

        assert watchers.watchers[0].stopped == 1
        assert manager.flush_pending_reload(project) is False

    def test_reload_after_dispose_reads_from_disk(self, manager, project):
        task = manager.create_task(project, {"title": "A"})
        manager.dispose()

        assert manager.get_task(project, task.id).title == "A"

    def test_context_manager_disposes(self, project, watchers):
        with BoardManager(settings=BoardSettings(), watcher_factory=watchers) as manager:
            manager.load_board(project)
        assert not manager.is_loaded(project)
        assert watchers.watchers[0].stopped == 1

    def test_watcher_failure_is_not_fatal(self, project):
        def broken_factory(path, on_change):
            raise OSError("no inotify")

        with BoardManager(watcher_factory=broken_factory) as manager:
            task = manager.create_task(project, {"title": "A"})
            assert manager.get_task(project, task.id) == task

    def test_board_created_for_loaded_project_only(self, manager, project):
        assert not manager.is_loaded(project)
        manager.get_ready_tasks(project)
        assert manager.is_loaded(project)


def test_epic_type_visible_in_epics(manager, project):
    epic = manager.create_task(project, {"title": "E", "type": TaskType.EPIC})
    assert ids(manager.load_board(project).epics) == [epic.id]


class TestPollingWatcherIntegration:
    @pytest.fixture
    def polling(self):
        created = []

        def factory(path, on_change):
            # long interval: the test drives polling by hand
            watcher = PollingFileWatcher(path, on_change, interval=3600)
            created.append(watcher)
            return watcher

        return created, factory

    def test_own_writes_do_not_schedule_reload(self, project, polling):
        created, factory = polling
        with BoardManager(settings=BoardSettings(debounce_seconds=60), watcher_factory=factory) as manager:
            task = manager.create_task(project, {"title": "A"})
            manager.update_task(project, task.id, {"status": "in_progress"})

            assert created[0].poll() is False
            assert manager.flush_pending_reload(project) is False

    def test_external_append_before_local_write_is_not_lost(self, project, log_path, polling):
        created, factory = polling
        with BoardManager(settings=BoardSettings(debounce_seconds=60), watcher_factory=factory) as manager:
            first = manager.create_task(project, {"title": "First"})
            with open(log_path, "a", encoding="utf-8") as f:
                f.write(encode_task(make_task("pt-external", title="Other writer")) + "\n")
            second = manager.create_task(project, {"title": "Second"})

            assert created[0].poll() is True
            assert manager.flush_pending_reload(project) is True
            assert ids(manager.load_board(project).tasks) == [first.id, "pt-external", second.id]

            manager.delete_task(project, first.id)

        assert ids(TaskLog(log_path).read_all()) == ["pt-external", second.id]
