"""Persistence gateway — repository interfaces, SQLAlchemy implementations, unit of work."""

from taskmgmt.repositories.base import (  # noqa: F401
    CommentRepository,
    CompletedTasksRow,
    HistoryRepository,
    ProjectRepository,
    TaskRepository,
)
from taskmgmt.repositories.unit_of_work import UnitOfWork  # noqa: F401

__all__ = [
    "ProjectRepository",
    "TaskRepository",
    "CommentRepository",
    "HistoryRepository",
    "CompletedTasksRow",
    "UnitOfWork",
]
