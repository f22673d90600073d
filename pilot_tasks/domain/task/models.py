"""Task domain models.

Pure domain models for the task board. Attribute names are snake_case;
the serialized names are the camelCase keys of the persisted log format
(``parentId``, ``createdAt``, ...), produced by the alias generator. Both
spellings are accepted when building a model.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Update fields where an explicit None means "clear"
CLEARABLE_FIELDS = frozenset({"parent_id", "assignee", "estimate_minutes"})


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and ``Z``."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TaskStatus(str, Enum):
    """Workflow status of a task."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"


class TaskType(str, Enum):
    """Kind of task. Only epics aggregate progress and auto-complete."""

    EPIC = "epic"
    TASK = "task"
    BUG = "bug"
    FEATURE = "feature"


class DependencyType(str, Enum):
    """Kind of dependency edge. Only ``blocked_by`` has behavioural effect."""

    BLOCKS = "blocks"
    BLOCKED_BY = "blocked_by"
    RELATED = "related"


class Actor(str, Enum):
    """Who created, owns or commented on a task."""

    HUMAN = "human"
    AGENT = "agent"


class Record(BaseModel):
    """Base for models that round-trip through the camelCase wire format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Dump using the persisted key names and JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)


class Dependency(Record):
    """Edge from the owning task to ``task_id``."""

    type: DependencyType
    task_id: str


class Comment(Record):
    """Append-only note attached to a task."""

    id: str
    text: str
    author: Actor
    created_at: str


class Task(Record):
    """The unit of work on a board.

    ``closed_at`` is set when the status moves into ``done`` and cleared
    when it moves out. ``created_by`` never changes after creation.

    Keys the model does not know are kept as extra attributes, so fields
    added to the log by hand survive a rewrite.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    title: str = Field(min_length=1)
    description: str = ""
    status: TaskStatus = TaskStatus.OPEN
    priority: int = Field(default=2, ge=0, le=4)
    type: TaskType = TaskType.TASK
    parent_id: str | None = None
    dependencies: list[Dependency] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    assignee: Actor | None = None
    estimate_minutes: int | None = None
    created_at: str
    updated_at: str
    closed_at: str | None = None
    created_by: Actor = Actor.HUMAN
    comments: list[Comment] = Field(default_factory=list)

    def blocked_by_ids(self) -> list[str]:
        """Ids referenced by this task's ``blocked_by`` edges, in order."""
        return [
            dep.task_id
            for dep in self.dependencies
            if dep.type == DependencyType.BLOCKED_BY
        ]

    def has_blockers(self) -> bool:
        return any(dep.type == DependencyType.BLOCKED_BY for dep in self.dependencies)

    def touch(self, now: str | None = None) -> None:
        """Refresh ``updated_at``."""
        self.updated_at = now or utc_now_iso()

    def set_status(self, status: TaskStatus, now: str | None = None) -> None:
        """Change status, setting or clearing ``closed_at`` across ``done``."""
        now = now or utc_now_iso()
        status = TaskStatus(status)
        if status == TaskStatus.DONE and self.status != TaskStatus.DONE:
            self.closed_at = now
        elif status != TaskStatus.DONE and self.status == TaskStatus.DONE:
            self.closed_at = None
        self.status = status
        self.updated_at = now

    def with_updates(self, updates: "TaskUpdateInput", now: str | None = None) -> "Task":
        """Return a copy with the explicitly-set fields of ``updates`` applied.

        Fields absent from ``updates`` are left untouched. ``closed_at``
        follows the status transition and ``updated_at`` is always refreshed.
        """
        now = now or utc_now_iso()
        updated = self.model_copy(deep=True)

        for name in updates.model_fields_set:
            value = getattr(updates, name)
            if value is None and name not in CLEARABLE_FIELDS:
                continue
            if name == "status":
                updated.set_status(value, now)
                continue
            if name == "dependencies":
                value = [dep.model_copy() for dep in value]
            elif name == "labels":
                value = list(value)
            setattr(updated, name, value)

        updated.updated_at = now
        return updated


class TaskCreateInput(Record):
    """Fields accepted when creating a task. Only ``title`` is required."""

    title: str = Field(min_length=1)
    description: str = ""
    status: TaskStatus = TaskStatus.OPEN
    priority: int = Field(default=2, ge=0, le=4)
    type: TaskType = TaskType.TASK
    parent_id: str | None = None
    dependencies: list[Dependency] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    assignee: Actor | None = None
    estimate_minutes: int | None = None
    created_by: Actor = Actor.HUMAN

    def build(self, task_id: str, now: str | None = None) -> Task:
        """Materialize a new task with creation timestamps."""
        now = now or utc_now_iso()
        return Task(
            id=task_id,
            title=self.title,
            description=self.description,
            status=self.status,
            priority=self.priority,
            type=self.type,
            parent_id=self.parent_id or None,
            dependencies=[dep.model_copy() for dep in self.dependencies],
            labels=list(self.labels),
            assignee=self.assignee,
            estimate_minutes=self.estimate_minutes,
            created_at=now,
            updated_at=now,
            closed_at=None,
            created_by=self.created_by,
            comments=[],
        )


class TaskUpdateInput(Record):
    """Partial update. Only fields explicitly set are applied.

    Setting ``parent_id``, ``assignee`` or ``estimate_minutes`` to ``None``
    explicitly clears them; leaving them out keeps the current value.
    """

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: TaskStatus | None = None
    priority: int | None = Field(default=None, ge=0, le=4)
    type: TaskType | None = None
    parent_id: str | None = None
    dependencies: list[Dependency] | None = None
    labels: list[str] | None = None
    assignee: Actor | None = None
    estimate_minutes: int | None = None

    def touches_dependencies(self) -> bool:
        return "dependencies" in self.model_fields_set and self.dependencies is not None


class TaskFilter(Record):
    """Conjunctive query criteria. Unset fields do not filter.

    ``parent_id`` distinguishes "unset" from an explicit ``None``: the
    latter selects tasks without a parent.
    """

    status: list[TaskStatus] | None = None
    priority: list[int] | None = None
    type: list[TaskType] | None = None
    labels: list[str] | None = None
    assignee: list[Actor | None] | None = None
    parent_id: str | None = None
    search: str | None = None

    def filters_parent(self) -> bool:
        return "parent_id" in self.model_fields_set


class TaskBoard(Record):
    """In-memory aggregate for one project: tasks plus derived collections."""

    project_path: str
    tasks: list[Task] = Field(default_factory=list)
    ready_tasks: list[Task] = Field(default_factory=list)
    blocked_tasks: list[Task] = Field(default_factory=list)
    epics: list[Task] = Field(default_factory=list)

    def find(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


class EpicProgress(Record):
    """Status counts over an epic's direct children."""

    total: int = 0
    open: int = 0
    in_progress: int = 0
    review: int = 0
    done: int = 0
    percent_complete: int = 0


class DependencyChain(Record):
    """Tasks blocking a task and tasks blocked by it."""

    blockers: list[Task] = Field(default_factory=list)
    dependents: list[Task] = Field(default_factory=list)
