"""
History/Audit Trail — append-only ledger of task-affecting actions.

One entry per task creation, task update and comment addition. Entries are
only ever appended; the trail exposes no way to change or drop one. Each
entry's timestamp is clamped so it never precedes the task's previous entry.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from taskmgmt.db.base import as_utc, utcnow
from taskmgmt.db.models import HistoryEntry, Task, TaskPriority, TaskStatus
from taskmgmt.repositories.base import HistoryRepository

logger = logging.getLogger("taskmgmt.services.history")

TASK_CREATED = "Tarefa criada."
TASK_UPDATED = "Tarefa atualizada."
COMMENT_ADDED = "Comentário adicionado: {content}"


class HistoryTrail:

    def __init__(self, repository: HistoryRepository):
        self._repository = repository

    def record(
        self,
        task_id: uuid.UUID,
        description: str,
        status: TaskStatus,
        priority: TaskPriority,
        author_id: uuid.UUID,
        new_task: bool = False,
    ) -> HistoryEntry:
        """Append one entry capturing the status/priority snapshot given."""
        recorded_at = utcnow()
        if not new_task:
            last = as_utc(self._repository.last_recorded_at(task_id))
            if last is not None and last > recorded_at:
                recorded_at = last

        entry = HistoryEntry.new(
            task_id=task_id,
            description=description,
            status=status,
            priority=priority,
            author_id=author_id,
            recorded_at=recorded_at,
        )
        self._repository.append(entry)
        logger.debug("History entry staged for task %s: %s", task_id, entry.description)
        return entry

    def task_created(self, task: Task, author_id: uuid.UUID) -> HistoryEntry:
        return self.record(task.id, TASK_CREATED, task.status, task.priority, author_id, new_task=True)

    def task_updated(
        self,
        task: Task,
        effective_description: Optional[str],
        author_id: uuid.UUID,
    ) -> HistoryEntry:
        text = effective_description if effective_description and effective_description.strip() else TASK_UPDATED
        return self.record(task.id, text, task.status, task.priority, author_id)

    def comment_added(
        self,
        task_id: uuid.UUID,
        content: str,
        status: TaskStatus,
        priority: TaskPriority,
        author_id: uuid.UUID,
    ) -> HistoryEntry:
        return self.record(task_id, COMMENT_ADDED.format(content=content), status, priority, author_id)

    def for_task(self, task_id: uuid.UUID) -> List[HistoryEntry]:
        """Entries for the task, oldest first."""
        return self._repository.list_by_task(task_id)
