"""
Persistence gateway interfaces.

The rules engines only talk to these abstractions; ``taskmgmt.repositories.sql``
provides the SQLAlchemy implementations. Repositories stage writes in the
session and never commit — ``UnitOfWork.commit()`` is the single commit point.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from taskmgmt.db.models import Comment, HistoryEntry, Project, Task
from taskmgmt.engine.errors import ValidationError


@dataclass(frozen=True)
class CompletedTasksRow:
    """One row of the completed-task aggregate: owner and how many tasks they finished."""

    owner_id: uuid.UUID
    completed: int


def require_id(value: Optional[uuid.UUID], name: str) -> uuid.UUID:
    """Empty ids are a validation error, never a silent miss."""
    if value is None or value == uuid.UUID(int=0):
        raise ValidationError(
            f"{name} cannot be empty",
            validation_errors=[{"field": name, "error": "empty"}],
        )
    return value


class ProjectRepository(ABC):

    @abstractmethod
    def get_by_id(self, project_id: uuid.UUID) -> Optional[Project]:
        """Project with its tasks (and their comments/history) loaded."""

    @abstractmethod
    def get_by_id_for_update(self, project_id: uuid.UUID) -> Optional[Project]:
        """Same as get_by_id but locks the row until the transaction ends."""

    @abstractmethod
    def add(self, project: Project) -> None: ...

    @abstractmethod
    def update(self, project: Project) -> None: ...

    @abstractmethod
    def remove(self, project_id: uuid.UUID) -> bool:
        """Stage removal. Returns False when nothing matched."""

    @abstractmethod
    def list_by_owner(self, owner_id: uuid.UUID) -> List[Project]: ...

    @abstractmethod
    def name_conflict_exists(
        self,
        name: str,
        owner_id: uuid.UUID,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool: ...


class TaskRepository(ABC):

    @abstractmethod
    def get_by_id(self, task_id: uuid.UUID) -> Optional[Task]: ...

    @abstractmethod
    def add(self, task: Task) -> None: ...

    @abstractmethod
    def update(self, task: Task) -> None: ...

    @abstractmethod
    def remove(self, task_id: uuid.UUID) -> bool: ...

    @abstractmethod
    def list_by_project(self, project_id: uuid.UUID) -> List[Task]: ...

    @abstractmethod
    def count_by_project(self, project_id: uuid.UUID) -> int: ...

    @abstractmethod
    def list_by_owner(self, owner_id: uuid.UUID) -> List[Task]: ...

    @abstractmethod
    def list_deletable(self, project_id: uuid.UUID) -> List[Task]:
        """Tasks of the project that are not pending."""

    @abstractmethod
    def completed_per_owner(self, since: datetime) -> List[CompletedTasksRow]:
        """Completed tasks with completed_at >= since, counted per project owner."""


class CommentRepository(ABC):

    @abstractmethod
    def get_by_id(self, comment_id: uuid.UUID) -> Optional[Comment]: ...

    @abstractmethod
    def add(self, comment: Comment) -> None: ...

    @abstractmethod
    def list_by_task(self, task_id: uuid.UUID) -> List[Comment]: ...

    @abstractmethod
    def remove(self, comment_id: uuid.UUID) -> bool: ...


class HistoryRepository(ABC):
    """Append-only: there is deliberately no update or remove."""

    @abstractmethod
    def append(self, entry: HistoryEntry) -> None: ...

    @abstractmethod
    def list_by_task(self, task_id: uuid.UUID) -> List[HistoryEntry]:
        """Entries for a task, oldest first."""

    @abstractmethod
    def last_recorded_at(self, task_id: uuid.UUID) -> Optional[datetime]: ...
