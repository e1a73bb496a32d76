"""
Task Rules Engine.

Rules enforced:
- a task may only be created in a project owned by the requesting user
- a project holds at most ``rules.max_tasks_per_project`` tasks (20)
- priority is fixed at creation
- every create, update and comment appends exactly one history entry, committed
  together with the change it describes
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from taskmgmt.db.base import utcnow
from taskmgmt.db.models import Comment, Task, TaskPriority, TaskStatus
from taskmgmt.engine.config import RulesConfig
from taskmgmt.engine.errors import ConflictError, NotFoundError, UnauthorizedError
from taskmgmt.repositories.unit_of_work import UnitOfWork
from taskmgmt.services.base import RulesEngine
from taskmgmt.services.history import HistoryTrail
from taskmgmt.services.schemas import (
    CommentView,
    HistoryView,
    NewCommentPayload,
    NewTaskPayload,
    PerformanceReportRow,
    TaskView,
    UpdateTaskPayload,
)

TASK_LIMIT = "Maximum of {limit} tasks per project reached."
IMMUTABLE_PRIORITY = "Task priority cannot be changed."


def effective_description(current: Optional[str], requested: Optional[str]) -> Optional[str]:
    """
    Description that an update actually leaves on the task.

    Blank input, or input equal to the current text ignoring case, keeps the
    current description.
    """
    if requested is None or not requested.strip():
        return current
    if current is not None and requested.casefold() == current.casefold():
        return current
    return requested


def owner_display_name(owner_id: uuid.UUID) -> str:
    # No identity lookup exists; the name is derived from the id
    return f"User {owner_id}"


class TaskService(RulesEngine):

    area = "tasks"

    def __init__(self, uow: UnitOfWork, rules: Optional[RulesConfig] = None):
        super().__init__(uow, rules)
        self._history = HistoryTrail(uow.history)

    def _get_or_raise(self, task_id: uuid.UUID, operation: str) -> Task:
        task = self._uow.tasks.get_by_id(task_id)
        if task is None:
            raise self._reject(
                operation,
                NotFoundError("Task not found.", entity="task", entity_id=task_id),
            )
        return task

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    def get_full(self, task_id: uuid.UUID) -> TaskView:
        return TaskView.model_validate(self._get_or_raise(task_id, "get"))

    def list_by_owner(self, owner_id: uuid.UUID) -> List[TaskView]:
        """Every task in every project the user owns."""
        return [TaskView.model_validate(t) for t in self._uow.tasks.list_by_owner(owner_id)]

    def list_comments(self, task_id: uuid.UUID) -> List[CommentView]:
        self._get_or_raise(task_id, "list_comments")
        return [CommentView.model_validate(c) for c in self._uow.comments.list_by_task(task_id)]

    def get_history(self, task_id: uuid.UUID) -> List[HistoryView]:
        """History entries for the task, oldest first."""
        self._get_or_raise(task_id, "get_history")
        return [HistoryView.model_validate(h) for h in self._history.for_task(task_id)]

    def performance_report(self, now: Optional[datetime] = None) -> List[PerformanceReportRow]:
        """Completed tasks per owner over the last ``rules.report_window_days`` days."""
        window = self._rules.report_window_days
        since = (now or utcnow()) - timedelta(days=window)
        return [
            PerformanceReportRow(
                owner_id=row.owner_id,
                owner_name=owner_display_name(row.owner_id),
                completed=row.completed,
                window_days=window,
            )
            for row in self._uow.tasks.completed_per_owner(since)
        ]

    # -----------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------

    def create(self, payload: NewTaskPayload) -> TaskView:
        limit = self._rules.max_tasks_per_project
        with self._uow.atomic():
            project = self._uow.projects.get_by_id_for_update(payload.project_id)
            if project is None or project.owner_id != payload.user_id:
                raise self._reject(
                    "create",
                    UnauthorizedError(
                        "Project not found for the user.",
                        user_id=payload.user_id,
                        entity_id=payload.project_id,
                    ),
                )

            if self._uow.tasks.count_by_project(project.id) >= limit:
                raise self._reject(
                    "create",
                    ConflictError(TASK_LIMIT.format(limit=limit), rule="task_limit", entity_id=project.id),
                )

            task = Task.new(
                title=payload.title,
                description=payload.description,
                due_date=payload.due_date,
                priority=payload.priority,
                project_id=project.id,
            )
            project.add_task(task, limit=limit)
            self._history.task_created(task, payload.user_id)
        self._done("create", task.id, user_id=payload.user_id)
        return TaskView.model_validate(task)

    def update(self, payload: UpdateTaskPayload) -> TaskView:
        with self._uow.atomic():
            task = self._get_or_raise(payload.task_id, "update")
            if TaskPriority(payload.priority) != task.priority:
                raise self._reject(
                    "update",
                    ConflictError(
                        IMMUTABLE_PRIORITY,
                        rule="immutable_priority",
                        entity_id=task.id,
                        details=[f"stored={task.priority.value}", f"requested={payload.priority.value}"],
                    ),
                )

            before = (task.title, task.description, task.status)
            description = effective_description(task.description, payload.description)
            task.apply_update(payload.title, description, payload.status)
            self._uow.tasks.update(task)
            self._history.task_updated(task, description, payload.user_id)

        changed = [
            name
            for name, old, new in zip(
                ("title", "description", "status"), before, (task.title, task.description, task.status)
            )
            if old != new
        ]
        self._done("update", task.id, user_id=payload.user_id, fields_changed=changed)
        return TaskView.model_validate(task)

    def add_comment(self, payload: NewCommentPayload) -> CommentView:
        with self._uow.atomic():
            task = self._get_or_raise(payload.task_id, "add_comment")
            comment = Comment.new(task.id, payload.content, payload.user_id)
            self._uow.comments.add(comment)

            if self._rules.comment_history_snapshot == "synthetic":
                status, priority = TaskStatus.PENDING, TaskPriority.MEDIUM
            else:
                status, priority = task.status, task.priority
            self._history.comment_added(task.id, payload.content, status, priority, payload.user_id)
        self._done("add", comment.id, user_id=payload.user_id, area="comments")
        return CommentView.model_validate(comment)

    def delete(self, task_id: uuid.UUID) -> bool:
        """
        Remove a task whatever its status; comments and history go with it.

        An unknown id is a no-op. Returns True if a task was removed.
        """
        with self._uow.atomic():
            removed = self._uow.tasks.remove(task_id)
        if removed:
            self._done("delete", task_id)
        return removed

    def delete_comment(self, comment_id: uuid.UUID) -> bool:
        """An unknown id is a no-op. Returns True if a comment was removed."""
        with self._uow.atomic():
            removed = self._uow.comments.remove(comment_id)
        if removed:
            self._done("delete", comment_id, area="comments")
        return removed
