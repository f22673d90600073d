"""Configuration for the task board.

Defaults can be overridden by ``~/.pilot/tasks.json`` and then by
environment variables.
"""

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

ENV_DEBOUNCE = "PILOT_TASKS_DEBOUNCE"
ENV_POLL_INTERVAL = "PILOT_TASKS_POLL_INTERVAL"
ENV_ENABLED = "PILOT_TASKS_ENABLED"


class BoardSettings(BaseModel):
    """Task board settings."""

    tasks_dir: str = ".pilot/tasks"
    tasks_file: str = "tasks.jsonl"
    debounce_seconds: float = Field(default=0.1, ge=0)
    poll_interval: float = Field(default=0.25, gt=0)
    enabled: bool = True

    def log_path(self, project_path: str | Path) -> Path:
        """Location of the task log for a project."""
        return Path(project_path) / self.tasks_dir / self.tasks_file


def get_config_dir() -> Path:
    """Get the per-user config directory (not created)."""
    return Path.home() / ".pilot"


def _read_config_file(config_file: Path) -> dict:
    if not config_file.exists():
        return {}
    try:
        data = json.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable config {config_file}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {config_file}: expected a JSON object")
        return {}
    return data


def _env_overrides() -> dict:
    overrides: dict = {}
    if ENV_DEBOUNCE in os.environ:
        overrides["debounce_seconds"] = os.environ[ENV_DEBOUNCE]
    if ENV_POLL_INTERVAL in os.environ:
        overrides["poll_interval"] = os.environ[ENV_POLL_INTERVAL]
    if ENV_ENABLED in os.environ:
        overrides["enabled"] = os.environ[ENV_ENABLED]
    return overrides


def load_settings(config_file: Path | None = None) -> BoardSettings:
    """Load settings from the config file and environment.

    Invalid values fall back to the defaults with a warning.
    """
    config_file = config_file or get_config_dir() / "tasks.json"
    data = _read_config_file(config_file)
    data.update(_env_overrides())
    try:
        return BoardSettings(**data)
    except ValidationError as e:
        logger.warning(f"Invalid task board settings, using defaults: {e}")
        return BoardSettings()
