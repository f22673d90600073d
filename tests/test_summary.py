"""Tests for the agent task digest."""

from pilot_tasks.application import format_agent_task_summary
from pilot_tasks.domain.task import TaskBoard, TaskStatus, apply_derived

from .conftest import make_task


def board_of(*tasks):
    return apply_derived(TaskBoard(project_path="/p", tasks=list(tasks)))


def test_empty_board_is_empty_string():
    assert format_agent_task_summary(board_of()) == ""


def test_full_format():
    board = board_of(
        make_task("pt-ip", title="Refactor parser", priority=1, status=TaskStatus.IN_PROGRESS),
        make_task("pt-rv", title="Review docs", priority=2, status=TaskStatus.REVIEW),
        make_task("pt-r2", title="Later", priority=3),
        make_task("pt-r1", title="Now", priority=0),
        make_task("pt-bl", title="Ship", priority=2, blocked_by=("pt-r1", "pt-ip")),
        make_task("pt-d1", title="Old", status=TaskStatus.DONE),
        make_task("pt-d2", title="Older", status=TaskStatus.DONE),
    )

    assert format_agent_task_summary(board) == (
        "<tasks>\n"
        "\n"
        "IN PROGRESS:\n"
        "- [pt-ip] P1 Refactor parser\n"
        "\n"
        "IN REVIEW:\n"
        "- [pt-rv] P2 Review docs\n"
        "\n"
        "READY:\n"
        "- [pt-r1] P0 Now\n"
        "- [pt-r2] P3 Later\n"
        "\n"
        "BLOCKED:\n"
        "- [pt-bl] P2 Ship (blocked by: pt-r1, pt-ip)\n"
        "\n"
        "DONE: 2 tasks\n"
        "</tasks>"
    )


def test_sections_omitted_when_empty():
    board = board_of(make_task("pt-1", title="Only", priority=1))

    assert format_agent_task_summary(board) == "<tasks>\n\nREADY:\n- [pt-1] P1 Only\n</tasks>"


def test_ready_then_blocked_after_completion():
    a = make_task("pt-a", title="A")
    b = make_task("pt-b", title="B", blocked_by=("pt-a",))

    before = format_agent_task_summary(board_of(a, b))
    assert "READY:\n- [pt-a] P2 A\n" in before
    assert "BLOCKED:\n- [pt-b] P2 B (blocked by: pt-a)\n" in before

    a.status = TaskStatus.DONE
    after = format_agent_task_summary(board_of(a, b))
    assert "READY:\n- [pt-b] P2 B\n" in after
    assert "BLOCKED" not in after
    assert "DONE: 1 task\n" in after


def test_missing_blocker_not_listed():
    board = board_of(
        make_task("pt-a", title="A", status=TaskStatus.IN_PROGRESS),
        make_task("pt-b", title="B", blocked_by=("pt-ghost", "pt-a")),
    )
    text = format_agent_task_summary(board)
    assert "- [pt-b] P2 B (blocked by: pt-a)" in text


def test_blocked_only_by_missing_task_has_no_suffix():
    board = board_of(make_task("pt-b", title="B", blocked_by=("pt-ghost",)))
    text = format_agent_task_summary(board)
    assert "BLOCKED:\n- [pt-b] P2 B\n" in text
