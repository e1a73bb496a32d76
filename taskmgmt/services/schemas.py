"""
Payloads accepted by the rules engines and the views they return.

Views are built straight from ORM rows (``from_attributes``); this is the only
entity-to-presentation mapping in the project and carries no business logic.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from taskmgmt.db.models import (
    COMMENT_CONTENT_MAX,
    PROJECT_NAME_MAX,
    TASK_DESCRIPTION_MAX,
    TASK_TITLE_MAX,
    TaskPriority,
    TaskStatus,
)


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

class NewProjectPayload(BaseModel):
    name: str = Field(min_length=1, max_length=PROJECT_NAME_MAX)
    user_id: uuid.UUID


class UpdateProjectPayload(BaseModel):
    """A blank ``name`` leaves the current name in place."""
    project_id: uuid.UUID
    name: Optional[str] = Field(default=None, max_length=PROJECT_NAME_MAX)
    user_id: uuid.UUID


class NewTaskPayload(BaseModel):
    title: str = Field(min_length=1, max_length=TASK_TITLE_MAX)
    description: Optional[str] = Field(default=None, max_length=TASK_DESCRIPTION_MAX)
    due_date: datetime
    priority: TaskPriority
    project_id: uuid.UUID
    user_id: uuid.UUID


class UpdateTaskPayload(BaseModel):
    """
    Partial update. Blank ``title``/``description`` keep the stored values.
    ``priority`` must repeat the stored priority; it can never change.
    """
    task_id: uuid.UUID
    title: Optional[str] = Field(default=None, max_length=TASK_TITLE_MAX)
    description: Optional[str] = Field(default=None, max_length=TASK_DESCRIPTION_MAX)
    status: TaskStatus
    priority: TaskPriority
    user_id: uuid.UUID


class NewCommentPayload(BaseModel):
    task_id: uuid.UUID
    content: str = Field(min_length=1, max_length=COMMENT_CONTENT_MAX)
    user_id: uuid.UUID


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

class _View(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class CommentView(_View):
    id: uuid.UUID
    task_id: uuid.UUID
    content: str
    author_id: uuid.UUID
    created_at: datetime


class HistoryView(_View):
    id: int
    task_id: uuid.UUID
    description: str
    status: TaskStatus
    priority: TaskPriority
    author_id: uuid.UUID
    recorded_at: datetime


class TaskView(_View):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    due_date: datetime
    completed_at: Optional[datetime] = None
    priority: TaskPriority
    status: TaskStatus
    project_id: uuid.UUID
    comments: List[CommentView] = Field(default_factory=list)
    history: List[HistoryView] = Field(default_factory=list)


class ProjectSummary(_View):
    id: uuid.UUID
    name: str


class ProjectView(_View):
    id: uuid.UUID
    name: str
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: Optional[datetime] = None
    tasks: List[TaskView] = Field(default_factory=list)


class PerformanceReportRow(BaseModel):
    """Completed tasks per owner over the report window."""
    owner_id: uuid.UUID
    owner_name: str
    completed: int
    window_days: int = 30

    @computed_field  # type: ignore[prop-decorator]
    @property
    def daily_average(self) -> float:
        return round(self.completed / float(self.window_days), 2)
