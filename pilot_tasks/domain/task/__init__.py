"""Task domain - records, derived state and dependency graph checks.

All exports are pure (no I/O, no side effects).

Key Types:
    Task - The unit of work
    TaskBoard - Per-project aggregate with derived collections
    TaskCreateInput / TaskUpdateInput - Mutation inputs
    TaskFilter - Query criteria

Derived State:
    compute_derived - Ready, blocked and epic collections
    filter_tasks - Conjunctive query
    dependency_chain - Blockers and dependents of a task
    epic_progress - Child status counts for an epic
    check_epic_auto_completion - Close an epic whose children are all done

Graph:
    has_cycle / validate_no_cycles - blocked_by cycle rejection
    find_dangling_dependencies - Integrity report
"""

from .derived import (
    DerivedState,
    apply_derived,
    check_epic_auto_completion,
    compute_derived,
    dependency_chain,
    epic_progress,
    filter_tasks,
    is_blocked,
    is_ready,
    unresolved_blocker_ids,
)
from .errors import (
    CircularDependencyError,
    StorageError,
    TaskBoardError,
    TaskNotFoundError,
    TaskValidationError,
)
from .graph import (
    DanglingReference,
    find_dangling_dependencies,
    has_cycle,
    validate_no_cycles,
)
from .ids import generate_comment_id, generate_task_id
from .models import (
    Actor,
    Comment,
    Dependency,
    DependencyChain,
    DependencyType,
    EpicProgress,
    Task,
    TaskBoard,
    TaskCreateInput,
    TaskFilter,
    TaskStatus,
    TaskType,
    TaskUpdateInput,
    utc_now_iso,
)

__all__ = [
    # Models
    "Actor",
    "Comment",
    "Dependency",
    "DependencyChain",
    "DependencyType",
    "EpicProgress",
    "Task",
    "TaskBoard",
    "TaskCreateInput",
    "TaskFilter",
    "TaskStatus",
    "TaskType",
    "TaskUpdateInput",
    "utc_now_iso",
    # Ids
    "generate_task_id",
    "generate_comment_id",
    # Derived state
    "DerivedState",
    "apply_derived",
    "compute_derived",
    "filter_tasks",
    "dependency_chain",
    "epic_progress",
    "check_epic_auto_completion",
    "is_ready",
    "is_blocked",
    "unresolved_blocker_ids",
    # Graph
    "DanglingReference",
    "has_cycle",
    "validate_no_cycles",
    "find_dangling_dependencies",
    # Errors
    "TaskBoardError",
    "TaskValidationError",
    "CircularDependencyError",
    "TaskNotFoundError",
    "StorageError",
]
