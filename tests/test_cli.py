"""Tests for the pilot-tasks command line."""

import re

import pytest
from typer.testing import CliRunner

from pilot_tasks import __version__
from pilot_tasks.infrastructure.storage import TaskLog
from pilot_tasks.interfaces.cli import app

from .conftest import make_task

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for name in ("PILOT_PROJECT", "PILOT_TASKS_DEBOUNCE", "PILOT_TASKS_POLL_INTERVAL", "PILOT_TASKS_ENABLED"):
        monkeypatch.delenv(name, raising=False)


def invoke(*args):
    return runner.invoke(app, list(args))


def create(project, *args):
    result = invoke("task", "create", *args, "-p", project)
    assert result.exit_code == 0, result.output
    return re.search(r"Created (pt-[0-9a-f]{8})", result.output).group(1)


def test_version():
    result = invoke("--version")
    assert result.exit_code == 0
    assert __version__ in result.output


def test_create_list_and_show(project):
    task_id = create(project, "Write docs", "--priority", "1", "--label", "docs")

    listed = invoke("list", "-p", project)
    assert listed.exit_code == 0
    assert f"[ ] {task_id}  P1" in listed.output
    assert "#docs" in listed.output

    shown = invoke("task", "show", task_id, "-p", project)
    assert shown.exit_code == 0
    assert f"{task_id}: Write docs" in shown.output
    assert "Priority:   P1" in shown.output


def test_ready_and_done(project):
    a = create(project, "A")
    b = create(project, "B", "--blocked-by", a)

    ready = invoke("ready", "-p", project)
    assert a in ready.output
    assert b not in ready.output

    done = invoke("done", a, "-p", project)
    assert done.exit_code == 0

    ready = invoke("ready", "-p", project)
    assert b in ready.output
    assert a not in ready.output


def test_project_from_environment(project, monkeypatch):
    monkeypatch.setenv("PILOT_PROJECT", project)
    task_id = create(project, "From env")

    result = invoke("list")
    assert task_id in result.output


def test_update_blockers_and_cycle(project):
    a = create(project, "A")
    b = create(project, "B", "--blocked-by", a)

    result = invoke("task", "update", a, "--add-blocker", b, "-p", project)

    assert result.exit_code == 1
    assert f"Circular dependency detected: {a} -> {b}" in result.output

    result = invoke("task", "update", b, "--remove-blocker", a, "--status", "in_progress", "-p", project)
    assert result.exit_code == 0
    assert "[in_progress]" in result.output


def test_update_unknown_task(project):
    result = invoke("task", "update", "pt-missing", "--title", "x", "-p", project)
    assert result.exit_code == 1
    assert "Task not found: pt-missing" in result.output


def test_comment(project):
    task_id = create(project, "A")

    result = invoke("task", "comment", task_id, "Half way", "--agent", "-p", project)

    assert result.exit_code == 0
    stored = TaskLog.for_project(project).read_all()[0]
    assert stored.comments[0].text == "Half way"
    assert stored.comments[0].author.value == "agent"


def test_delete(project):
    task_id = create(project, "A")

    assert invoke("task", "delete", task_id, "-p", project).exit_code == 0
    assert TaskLog.for_project(project).read_all() == []

    missing = invoke("task", "delete", task_id, "-p", project)
    assert missing.exit_code == 1


def test_summary(project):
    assert "No tasks." in invoke("summary", "-p", project).output

    task_id = create(project, "A", "--priority", "0")
    result = invoke("summary", "-p", project)

    assert result.output.startswith("<tasks>")
    assert f"- [{task_id}] P0 A" in result.output


def test_summary_disabled_by_environment(project, monkeypatch):
    create(project, "A")
    monkeypatch.setenv("PILOT_TASKS_ENABLED", "false")

    assert "No tasks." in invoke("summary", "-p", project).output


def test_epic_progress(project):
    epic = create(project, "Launch", "--type", "epic")
    child = create(project, "Child", "--parent", epic)
    create(project, "Other child", "--parent", epic)
    invoke("done", child, "-p", project)

    result = invoke("task", "epic", epic, "-p", project)

    assert result.exit_code == 0
    assert "50% (1/2)" in result.output


def test_doctor(project):
    assert invoke("task", "doctor", "-p", project).exit_code == 0

    TaskLog.for_project(project).append(make_task("pt-1", blocked_by=("pt-gone",)))
    result = invoke("task", "doctor", "-p", project)

    assert result.exit_code == 1
    assert "pt-1: blocked_by -> pt-gone (missing)" in result.output
