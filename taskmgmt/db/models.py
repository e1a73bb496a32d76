"""
TaskMgmt Models — SQLAlchemy models for projects, tasks, comments and history.

Tables:
1. projects      — Owned by one user, unique (name, owner_id), at most 20 tasks
2. tasks         — Belong to a project, unique (title, project_id), fixed priority
3. task_comments — Free-text notes on a task
4. task_history  — Append-only audit trail of task-affecting actions

Ownership flows downwards only: a project owns its tasks, a task owns its
comments and history entries (ORM ``delete-orphan`` plus ``ON DELETE CASCADE``).
Children keep a plain foreign-key id back to their parent.

The ``new()`` classmethods are the domain constructors: they generate the id
and enforce field limits. Rows loaded by the ORM never pass through them.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from taskmgmt.db.base import Base, TimestampMixin, utcnow
from taskmgmt.engine.errors import ConflictError, ValidationError

MAX_TASKS_PER_PROJECT = 20

PROJECT_NAME_MAX = 150
TASK_TITLE_MAX = 100
TASK_DESCRIPTION_MAX = 500
COMMENT_CONTENT_MAX = 1000
HISTORY_DESCRIPTION_MAX = 500


class TaskStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


class TaskPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _require_text(field: str, value: Optional[str], max_length: int) -> str:
    if _is_blank(value):
        raise ValidationError(f"{field} is required", validation_errors=[{"field": field, "error": "empty"}])
    if len(value) > max_length:
        raise ValidationError(
            f"{field} must be {max_length} characters or fewer",
            validation_errors=[{"field": field, "error": "too_long", "max_length": max_length}],
        )
    return value


def _require_id(field: str, value) -> uuid.UUID:
    if value is None or value == "" or value == uuid.UUID(int=0):
        raise ValidationError(f"{field} cannot be empty", validation_errors=[{"field": field, "error": "empty"}])
    return value


# ---------------------------------------------------------------------------
# 1. Projects
# ---------------------------------------------------------------------------

class Project(Base, TimestampMixin):
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(PROJECT_NAME_MAX), nullable=False)
    owner_id = Column(Uuid, nullable=False, index=True)

    tasks = relationship(
        "Task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Task.created_at",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("name", "owner_id", name="uq_projects_name_owner"),
    )

    @classmethod
    def new(cls, name: str, owner_id: uuid.UUID) -> "Project":
        return cls(
            id=uuid.uuid4(),
            name=_require_text("name", name, PROJECT_NAME_MAX),
            owner_id=_require_id("owner_id", owner_id),
            created_at=utcnow(),
        )

    @property
    def task_count(self) -> int:
        return len(self.tasks)

    def can_delete(self) -> bool:
        """True when no owned task is still pending."""
        return not any(t.status == TaskStatus.PENDING for t in self.tasks)

    def add_task(self, task: "Task", limit: int = MAX_TASKS_PER_PROJECT) -> None:
        if len(self.tasks) >= limit:
            raise ConflictError(
                "Project has reached the maximum number of tasks.",
                rule="task_limit",
                entity_id=self.id,
            )
        self.tasks.append(task)

    def rename(self, new_name: Optional[str]) -> bool:
        """Blank names are ignored. Returns True if the name changed."""
        if _is_blank(new_name):
            return False
        _require_text("name", new_name, PROJECT_NAME_MAX)
        if new_name == self.name:
            return False
        self.name = new_name
        self.updated_at = utcnow()
        return True

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name='{self.name}', owner_id={self.owner_id})>"


# ---------------------------------------------------------------------------
# 2. Tasks
# ---------------------------------------------------------------------------

class Task(Base, TimestampMixin):
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(TASK_TITLE_MAX), nullable=False)
    description = Column(String(TASK_DESCRIPTION_MAX), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    priority = Column(Enum(TaskPriority, name="task_priority", native_enum=False), nullable=False)
    status = Column(
        Enum(TaskStatus, name="task_status", native_enum=False),
        default=TaskStatus.PENDING,
        nullable=False,
        index=True,
    )
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    comments = relationship(
        "Comment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Comment.created_at",
        lazy="selectin",
    )
    history = relationship(
        "HistoryEntry",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="HistoryEntry.id",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("title", "project_id", name="uq_tasks_title_project"),
        Index("idx_tasks_project_id", "project_id"),
    )

    @classmethod
    def new(
        cls,
        title: str,
        description: Optional[str],
        due_date: datetime,
        priority: TaskPriority,
        project_id: uuid.UUID,
    ) -> "Task":
        if description is not None and len(description) > TASK_DESCRIPTION_MAX:
            raise ValidationError(
                f"description must be {TASK_DESCRIPTION_MAX} characters or fewer",
                validation_errors=[{"field": "description", "error": "too_long"}],
            )
        if due_date is None:
            raise ValidationError("due_date is required")
        return cls(
            id=uuid.uuid4(),
            title=_require_text("title", title, TASK_TITLE_MAX),
            description=description,
            due_date=due_date,
            priority=TaskPriority(priority),
            status=TaskStatus.PENDING,
            project_id=_require_id("project_id", project_id),
            created_at=utcnow(),
        )

    def set_status(self, status: TaskStatus) -> None:
        """Entering Completed stamps completed_at; leaving it never clears the stamp."""
        status = TaskStatus(status)
        if status == TaskStatus.COMPLETED:
            self.completed_at = utcnow()
        self.status = status

    def apply_update(
        self,
        title: Optional[str],
        description: Optional[str],
        status: TaskStatus,
    ) -> None:
        """Partial update: blank title/description keep the stored value. Priority is not touched."""
        if not _is_blank(title):
            self.title = _require_text("title", title, TASK_TITLE_MAX)
        if not _is_blank(description):
            if len(description) > TASK_DESCRIPTION_MAX:
                raise ValidationError(
                    f"description must be {TASK_DESCRIPTION_MAX} characters or fewer",
                    validation_errors=[{"field": "description", "error": "too_long"}],
                )
            self.description = description
        self.set_status(status)
        self.updated_at = utcnow()

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title='{self.title}', status={self.status.value})>"


# ---------------------------------------------------------------------------
# 3. Comments
# ---------------------------------------------------------------------------

class Comment(Base):
    __tablename__ = "task_comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(String(COMMENT_CONTENT_MAX), nullable=False)
    author_id = Column(Uuid, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    @classmethod
    def new(cls, task_id: uuid.UUID, content: str, author_id: uuid.UUID) -> "Comment":
        return cls(
            id=uuid.uuid4(),
            task_id=_require_id("task_id", task_id),
            content=_require_text("content", content, COMMENT_CONTENT_MAX),
            author_id=_require_id("author_id", author_id),
            created_at=utcnow(),
        )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, task_id={self.task_id})>"


# ---------------------------------------------------------------------------
# 4. Task History (append-only)
# ---------------------------------------------------------------------------

class HistoryEntry(Base):
    __tablename__ = "task_history"

    # Integer identity gives a total append order for entries sharing a timestamp
    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    description = Column(String(HISTORY_DESCRIPTION_MAX), nullable=False)
    status = Column(Enum(TaskStatus, name="task_status", native_enum=False), nullable=False)
    priority = Column(Enum(TaskPriority, name="task_priority", native_enum=False), nullable=False)
    author_id = Column(Uuid, nullable=False)
    recorded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_task_history_task_recorded", "task_id", "recorded_at"),
    )

    @classmethod
    def new(
        cls,
        task_id: uuid.UUID,
        description: str,
        status: TaskStatus,
        priority: TaskPriority,
        author_id: uuid.UUID,
        recorded_at: Optional[datetime] = None,
    ) -> "HistoryEntry":
        if _is_blank(description):
            raise ValidationError("history description is required")
        if len(description) > HISTORY_DESCRIPTION_MAX:
            description = description[: HISTORY_DESCRIPTION_MAX - 1] + "…"
        return cls(
            task_id=_require_id("task_id", task_id),
            description=description,
            status=TaskStatus(status),
            priority=TaskPriority(priority),
            author_id=_require_id("author_id", author_id),
            recorded_at=recorded_at or utcnow(),
        )

    def __repr__(self) -> str:
        return f"<HistoryEntry(id={self.id}, task_id={self.task_id}, status={self.status.value})>"
