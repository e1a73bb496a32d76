"""SQLAlchemy implementations of the persistence gateway."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from taskmgmt.db.models import Comment, HistoryEntry, Project, Task, TaskStatus
from taskmgmt.repositories.base import (
    CommentRepository,
    CompletedTasksRow,
    HistoryRepository,
    ProjectRepository,
    TaskRepository,
    require_id,
)


class SqlProjectRepository(ProjectRepository):

    def __init__(self, session: Session):
        self._session = session

    def get_by_id(self, project_id: uuid.UUID) -> Optional[Project]:
        require_id(project_id, "project_id")
        return self._session.get(Project, project_id)

    def get_by_id_for_update(self, project_id: uuid.UUID) -> Optional[Project]:
        # SQLite ignores FOR UPDATE; PostgreSQL serialises concurrent task creation here
        require_id(project_id, "project_id")
        return self._session.get(Project, project_id, with_for_update=True)

    def add(self, project: Project) -> None:
        self._session.add(project)

    def update(self, project: Project) -> None:
        self._session.add(project)

    def remove(self, project_id: uuid.UUID) -> bool:
        project = self.get_by_id(project_id)
        if project is None:
            return False
        self._session.delete(project)
        return True

    def list_by_owner(self, owner_id: uuid.UUID) -> List[Project]:
        require_id(owner_id, "owner_id")
        stmt = (
            select(Project)
            .where(Project.owner_id == owner_id)
            .order_by(Project.created_at)
        )
        return list(self._session.scalars(stmt))

    def name_conflict_exists(
        self,
        name: str,
        owner_id: uuid.UUID,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool:
        require_id(owner_id, "owner_id")
        stmt = select(Project.id).where(Project.name == name, Project.owner_id == owner_id)
        if exclude_id is not None:
            stmt = stmt.where(Project.id != exclude_id)
        return self._session.scalar(stmt.limit(1)) is not None


class SqlTaskRepository(TaskRepository):

    def __init__(self, session: Session):
        self._session = session

    def get_by_id(self, task_id: uuid.UUID) -> Optional[Task]:
        require_id(task_id, "task_id")
        return self._session.get(Task, task_id)

    def add(self, task: Task) -> None:
        self._session.add(task)

    def update(self, task: Task) -> None:
        self._session.add(task)

    def remove(self, task_id: uuid.UUID) -> bool:
        task = self.get_by_id(task_id)
        if task is None:
            return False
        self._session.delete(task)
        return True

    def list_by_project(self, project_id: uuid.UUID) -> List[Task]:
        require_id(project_id, "project_id")
        stmt = select(Task).where(Task.project_id == project_id).order_by(Task.created_at)
        return list(self._session.scalars(stmt))

    def count_by_project(self, project_id: uuid.UUID) -> int:
        require_id(project_id, "project_id")
        stmt = select(func.count(Task.id)).where(Task.project_id == project_id)
        return self._session.scalar(stmt) or 0

    def list_by_owner(self, owner_id: uuid.UUID) -> List[Task]:
        require_id(owner_id, "owner_id")
        stmt = (
            select(Task)
            .join(Project, Project.id == Task.project_id)
            .where(Project.owner_id == owner_id)
            .order_by(Task.created_at)
        )
        return list(self._session.scalars(stmt))

    def list_deletable(self, project_id: uuid.UUID) -> List[Task]:
        require_id(project_id, "project_id")
        stmt = (
            select(Task)
            .where(Task.project_id == project_id, Task.status != TaskStatus.PENDING)
            .order_by(Task.created_at)
        )
        return list(self._session.scalars(stmt))

    def completed_per_owner(self, since: datetime) -> List[CompletedTasksRow]:
        stmt = (
            select(Project.owner_id, func.count(Task.id))
            .join(Project, Project.id == Task.project_id)
            .where(
                Task.status == TaskStatus.COMPLETED,
                Task.completed_at.is_not(None),
                Task.completed_at >= since,
            )
            .group_by(Project.owner_id)
            .order_by(func.count(Task.id).desc(), Project.owner_id)
        )
        return [
            CompletedTasksRow(owner_id=owner_id, completed=count)
            for owner_id, count in self._session.execute(stmt)
        ]


class SqlCommentRepository(CommentRepository):

    def __init__(self, session: Session):
        self._session = session

    def get_by_id(self, comment_id: uuid.UUID) -> Optional[Comment]:
        require_id(comment_id, "comment_id")
        return self._session.get(Comment, comment_id)

    def add(self, comment: Comment) -> None:
        self._session.add(comment)

    def list_by_task(self, task_id: uuid.UUID) -> List[Comment]:
        require_id(task_id, "task_id")
        stmt = select(Comment).where(Comment.task_id == task_id).order_by(Comment.created_at)
        return list(self._session.scalars(stmt))

    def remove(self, comment_id: uuid.UUID) -> bool:
        comment = self.get_by_id(comment_id)
        if comment is None:
            return False
        self._session.delete(comment)
        return True


class SqlHistoryRepository(HistoryRepository):

    def __init__(self, session: Session):
        self._session = session

    def append(self, entry: HistoryEntry) -> None:
        self._session.add(entry)

    def list_by_task(self, task_id: uuid.UUID) -> List[HistoryEntry]:
        require_id(task_id, "task_id")
        stmt = (
            select(HistoryEntry)
            .where(HistoryEntry.task_id == task_id)
            .order_by(HistoryEntry.recorded_at, HistoryEntry.id)
        )
        return list(self._session.scalars(stmt))

    def last_recorded_at(self, task_id: uuid.UUID) -> Optional[datetime]:
        require_id(task_id, "task_id")
        stmt = select(func.max(HistoryEntry.recorded_at)).where(HistoryEntry.task_id == task_id)
        return self._session.scalar(stmt)
