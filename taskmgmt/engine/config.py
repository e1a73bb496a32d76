"""
TaskMgmt Configuration — Load and validate taskmgmt.yaml at startup.

The database URL is never hard-coded: ``TASKMGMT_DATABASE_URL`` overrides
whatever the YAML file (or the default) says.

Usage:
    from taskmgmt.engine.config import load_config, get_config
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = "taskmgmt.yaml"
DATABASE_URL_ENV = "TASKMGMT_DATABASE_URL"


# ---------------------------------------------------------------------------
# Pydantic models for taskmgmt.yaml
# ---------------------------------------------------------------------------

class DatabaseConfig(BaseModel):
    url: str = "sqlite:///taskmgmt.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True


class RulesConfig(BaseModel):
    """
    Limits and modes enforced by the rules engines.

    ``comment_history_snapshot`` picks the status/priority recorded when a
    comment is added: ``synthetic`` (default) writes Pending/Medium whatever
    the task holds, ``task`` writes the task's current values.
    """
    max_tasks_per_project: int = Field(default=20, ge=1)
    report_window_days: int = Field(default=30, ge=1)
    comment_history_snapshot: str = "synthetic"

    @field_validator("comment_history_snapshot")
    @classmethod
    def validate_snapshot(cls, v: str) -> str:
        if v not in ("task", "synthetic"):
            raise ValueError(f"comment_history_snapshot must be task/synthetic, got '{v}'")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".taskmgmt/logs"
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class TaskMgmtConfig(BaseModel):
    """Root model for taskmgmt.yaml."""
    name: str = "TaskMgmt"
    environment: str = "dev"

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[TaskMgmtConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for taskmgmt.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILENAME).exists():
            return parent
    return current


def load_config(config_path: Optional[str] = None) -> TaskMgmtConfig:
    """
    Load and validate taskmgmt.yaml.

    Args:
        config_path: Explicit path to the YAML file. If None, auto-discovers.

    Returns:
        Validated TaskMgmtConfig instance.
    """
    global _config

    if config_path is None:
        config_path = str(_find_project_root() / CONFIG_FILENAME)

    path = Path(config_path)
    raw = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    config = TaskMgmtConfig(**raw)

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        config.database.url = env_url

    _config = config
    return _config


def get_config() -> TaskMgmtConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached config (tests, reloads)."""
    global _config
    _config = None
