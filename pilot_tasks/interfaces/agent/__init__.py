"""Agent-facing adapters for the task board."""

from pilot_tasks.interfaces.agent.tools import TaskTool, create_task_tools, merge_blockers

__all__ = ["TaskTool", "create_task_tools", "merge_blockers"]
