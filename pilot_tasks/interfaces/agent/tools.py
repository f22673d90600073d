"""Task tools offered to the coding agent.

Four tools wrap the board manager for one project. Each takes a params
dict as produced by the agent's tool call, validates it against a pydantic
schema and returns ``Ok(json_text)`` or ``Err(message)``. Tools never raise
for bad input or board errors; the agent reads the message and retries.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from pilot_tasks.application import BoardManager
from pilot_tasks.domain.shared import Err, Ok, Result
from pilot_tasks.domain.task import (
    Actor,
    Dependency,
    DependencyType,
    Task,
    TaskBoardError,
    TaskStatus,
    TaskType,
)


# =============================================================================
# Parameter schemas
# =============================================================================


class CreateTaskParams(BaseModel):
    """Create a new task on the project task board."""

    title: str = Field(min_length=1, description="Short descriptive title")
    description: str | None = Field(default=None, description="Detailed description (Markdown)")
    type: TaskType | None = Field(default=None, description="Task type. Default: task")
    priority: int | None = Field(
        default=None, ge=0, le=4, description="Priority 0-4 (0=Critical, 4=Backlog). Default: 2"
    )
    parent_id: str | None = Field(default=None, description="Parent epic ID")
    blocked_by: list[str] | None = Field(
        default=None, description="Task IDs that must be completed first"
    )
    labels: list[str] | None = Field(default=None, description="Tags for categorization")


class UpdateTaskParams(BaseModel):
    """Update a task's status, priority, or other fields."""

    task_id: str = Field(description="Task ID (e.g. pt-a1b2c3d4)")
    status: TaskStatus | None = Field(default=None, description="New status")
    priority: int | None = Field(default=None, ge=0, le=4, description="New priority (0-4)")
    title: str | None = Field(default=None, min_length=1, description="New title")
    description: str | None = Field(default=None, description="New description")
    add_blocked_by: list[str] | None = Field(default=None, description="Task IDs to add as blockers")
    remove_blocked_by: list[str] | None = Field(
        default=None, description="Task IDs to remove from blockers"
    )
    labels: list[str] | None = Field(default=None, description="Replace all labels")
    assignee: Actor | None = Field(default=None, description="New assignee")


class QueryTaskParams(BaseModel):
    """Query the task board."""

    ready: bool | None = Field(
        default=None, description="If true, return only unblocked tasks sorted by priority"
    )
    status: list[TaskStatus] | None = Field(default=None, description="Filter by statuses")
    priority: list[int] | None = Field(default=None, description="Filter by priority levels")
    type: list[TaskType] | None = Field(default=None, description="Filter by types")
    labels: list[str] | None = Field(default=None, description="Filter by labels")
    parent_id: str | None = Field(default=None, description="Filter to subtasks of an epic")
    search: str | None = Field(default=None, description="Search by keyword")
    task_id: str | None = Field(default=None, description="Get specific task by ID with full details")


class CommentParams(BaseModel):
    """Add a comment to a task."""

    task_id: str = Field(description="Task ID")
    text: str = Field(min_length=1, description="Comment text (Markdown)")


@dataclass(frozen=True)
class TaskTool:
    """A named tool with a parameter schema and an executor."""

    name: str
    label: str
    description: str
    parameters: type[BaseModel]
    run: Callable[[BaseModel], Result[str, str]]
    error_prefix: str

    def json_schema(self) -> dict[str, Any]:
        return self.parameters.model_json_schema()

    def execute(self, params: dict[str, Any] | None) -> Result[str, str]:
        try:
            parsed = self.parameters.model_validate(params or {})
        except ValidationError as e:
            return Err(f"{self.error_prefix}: invalid parameters: {e}")
        try:
            return self.run(parsed)
        except TaskBoardError as e:
            return Err(f"{self.error_prefix}: {e}")


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _brief(task: Task) -> dict[str, Any]:
    return {"id": task.id, "title": task.title, "status": task.status.value}


def merge_blockers(
    task: Task,
    add: list[str] | None,
    remove: list[str] | None,
) -> list[Dependency]:
    """Apply add/remove blocker lists to a task's dependencies.

    Removals are applied first and only drop ``blocked_by`` edges, so an id
    in both lists stays a blocker. Added ids are skipped if the task is
    already blocked by them.
    """
    remove_set = set(remove or [])
    merged = [
        dep.model_copy()
        for dep in task.dependencies
        if not (dep.type == DependencyType.BLOCKED_BY and dep.task_id in remove_set)
    ]
    existing = {dep.task_id for dep in merged if dep.type == DependencyType.BLOCKED_BY}
    for blocker_id in add or []:
        if blocker_id not in existing:
            merged.append(Dependency(type=DependencyType.BLOCKED_BY, task_id=blocker_id))
            existing.add(blocker_id)
    return merged


# =============================================================================
# Tool factory
# =============================================================================


def create_task_tools(manager: BoardManager, project_path: str) -> list[TaskTool]:
    """Build the agent tools bound to one project.

    Returns an empty list when the task feature is disabled.
    """
    if not manager.enabled:
        return []

    def run_create(p: CreateTaskParams) -> Result[str, str]:
        data: dict[str, Any] = {
            "title": p.title,
            "parent_id": p.parent_id or None,
            "dependencies": [
                {"type": DependencyType.BLOCKED_BY, "task_id": blocker_id}
                for blocker_id in p.blocked_by or []
            ],
            "assignee": Actor.AGENT,
            "created_by": Actor.AGENT,
        }
        if p.description is not None:
            data["description"] = p.description
        if p.type is not None:
            data["type"] = p.type
        if p.priority is not None:
            data["priority"] = p.priority
        if p.labels is not None:
            data["labels"] = p.labels
        task = manager.create_task(project_path, data)
        return Ok(_dump(_brief(task)))

    def run_update(p: UpdateTaskParams) -> Result[str, str]:
        existing = manager.load_board(project_path).find(p.task_id)
        if existing is None:
            return Err(f"Error: Task not found: {p.task_id}")

        updates = p.model_dump(
            include={"status", "priority", "title", "description", "labels", "assignee"},
            exclude_none=True,
        )
        if p.add_blocked_by is not None or p.remove_blocked_by is not None:
            updates["dependencies"] = merge_blockers(existing, p.add_blocked_by, p.remove_blocked_by)
        task = manager.update_task(project_path, p.task_id, updates)
        return Ok(_dump(_brief(task)))

    def run_query(p: QueryTaskParams) -> Result[str, str]:
        if p.task_id:
            task = manager.load_board(project_path).find(p.task_id)
            if task is None:
                return Err(f"Task not found: {p.task_id}")
            chain = manager.get_dependency_chain(project_path, p.task_id)
            return Ok(_dump({
                "task": task.to_wire(),
                "blockers": [_brief(t) for t in chain.blockers],
                "dependents": [_brief(t) for t in chain.dependents],
            }))

        if p.ready:
            ready = manager.get_ready_tasks(project_path)
            return Ok(_dump({
                "count": len(ready),
                "tasks": [
                    {
                        "id": t.id,
                        "title": t.title,
                        "priority": t.priority,
                        "type": t.type.value,
                        "labels": t.labels,
                    }
                    for t in ready
                ],
            }))

        criteria = p.model_dump(
            include={"status", "priority", "type", "labels", "search"},
            exclude_none=True,
        )
        if p.parent_id:
            criteria["parent_id"] = p.parent_id
        tasks = manager.query_tasks(project_path, criteria)
        return Ok(_dump({
            "count": len(tasks),
            "tasks": [
                {
                    "id": t.id,
                    "title": t.title,
                    "status": t.status.value,
                    "priority": t.priority,
                    "type": t.type.value,
                    "labels": t.labels,
                    "assignee": t.assignee.value if t.assignee else None,
                }
                for t in tasks
            ],
        }))

    def run_comment(p: CommentParams) -> Result[str, str]:
        comment = manager.add_comment(project_path, p.task_id, p.text, Actor.AGENT)
        return Ok(_dump({"commented": True, "commentId": comment.id}))

    return [
        TaskTool(
            name="pilot_task_create",
            label="Task Manager",
            description=(
                "Create a new task on the project task board. Use when you identify "
                "work that needs to be done, want to break an epic into subtasks, "
                "or discover a dependency."
            ),
            parameters=CreateTaskParams,
            run=run_create,
            error_prefix="Error creating task",
        ),
        TaskTool(
            name="pilot_task_update",
            label="Task Manager",
            description=(
                "Update a task's status, priority, or other fields. Always update "
                "status when starting work (in_progress), finishing (done), or "
                "sending for review (review)."
            ),
            parameters=UpdateTaskParams,
            run=run_update,
            error_prefix="Error updating task",
        ),
        TaskTool(
            name="pilot_task_query",
            label="Task Manager",
            description=(
                "Query the task board. Use to find ready tasks, check specific task "
                "details, list epic subtasks, or search."
            ),
            parameters=QueryTaskParams,
            run=run_query,
            error_prefix="Error querying tasks",
        ),
        TaskTool(
            name="pilot_task_comment",
            label="Task Manager",
            description="Add a comment to a task. Use to log progress, note decisions, or flag issues.",
            parameters=CommentParams,
            run=run_comment,
            error_prefix="Error adding comment",
        ),
    ]
