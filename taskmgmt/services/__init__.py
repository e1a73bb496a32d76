"""Rules engines for projects and tasks, plus the task history trail."""

from taskmgmt.services.history import HistoryTrail  # noqa: F401
from taskmgmt.services.project_service import ProjectService  # noqa: F401
from taskmgmt.services.task_service import TaskService  # noqa: F401

__all__ = ["HistoryTrail", "ProjectService", "TaskService"]
