"""Unit tests for taskmgmt.db.models — domain constructors and aggregate rules."""

import uuid
from datetime import datetime, timezone

import pytest

from taskmgmt.db.models import (
    HISTORY_DESCRIPTION_MAX,
    MAX_TASKS_PER_PROJECT,
    Comment,
    HistoryEntry,
    Project,
    Task,
    TaskPriority,
    TaskStatus,
)
from taskmgmt.engine.errors import ConflictError, ValidationError

DUE = datetime(2030, 1, 1, tzinfo=timezone.utc)


def _task(project_id=None, **kw):
    values = dict(
        title="T",
        description="desc",
        due_date=DUE,
        priority=TaskPriority.LOW,
        project_id=project_id or uuid.uuid4(),
    )
    values.update(kw)
    return Task.new(**values)


class TestProject:

    def test_new(self):
        owner = uuid.uuid4()
        p = Project.new("Alpha", owner)
        assert isinstance(p.id, uuid.UUID)
        assert p.name == "Alpha"
        assert p.owner_id == owner
        assert p.created_at is not None
        assert p.task_count == 0

    def test_new_rejects_blank_name(self):
        with pytest.raises(ValidationError):
            Project.new("   ", uuid.uuid4())

    def test_new_rejects_long_name(self):
        with pytest.raises(ValidationError, match="150"):
            Project.new("x" * 151, uuid.uuid4())

    def test_new_rejects_nil_owner(self):
        with pytest.raises(ValidationError):
            Project.new("Alpha", uuid.UUID(int=0))

    def test_rename(self):
        p = Project.new("Alpha", uuid.uuid4())
        assert p.rename("Beta") is True
        assert p.name == "Beta"
        assert p.updated_at is not None

    def test_rename_blank_is_ignored(self):
        p = Project.new("Alpha", uuid.uuid4())
        assert p.rename("  ") is False
        assert p.rename(None) is False
        assert p.name == "Alpha"
        assert p.updated_at is None

    def test_can_delete(self):
        p = Project.new("Alpha", uuid.uuid4())
        assert p.can_delete()
        task = _task(p.id)
        p.add_task(task)
        assert not p.can_delete()
        task.set_status(TaskStatus.IN_PROGRESS)
        assert p.can_delete()

    def test_add_task_at_cap(self):
        p = Project.new("Alpha", uuid.uuid4())
        for i in range(MAX_TASKS_PER_PROJECT):
            p.add_task(_task(p.id, title=f"T{i}"))
        with pytest.raises(ConflictError) as exc:
            p.add_task(_task(p.id, title="one more"))
        assert exc.value.rule == "task_limit"
        assert p.task_count == MAX_TASKS_PER_PROJECT

    def test_add_task_custom_limit(self):
        p = Project.new("Alpha", uuid.uuid4())
        p.add_task(_task(p.id), limit=1)
        with pytest.raises(ConflictError):
            p.add_task(_task(p.id, title="again"), limit=1)


class TestTask:

    def test_new_is_pending(self):
        t = _task()
        assert t.status == TaskStatus.PENDING
        assert t.completed_at is None
        assert t.priority == TaskPriority.LOW

    def test_new_validates(self):
        with pytest.raises(ValidationError):
            _task(title="")
        with pytest.raises(ValidationError):
            _task(title="x" * 101)
        with pytest.raises(ValidationError):
            _task(description="x" * 501)
        with pytest.raises(ValidationError):
            _task(project_id=uuid.UUID(int=0))

    def test_completion_stamp_survives_leaving_completed(self):
        t = _task()
        t.set_status(TaskStatus.COMPLETED)
        stamp = t.completed_at
        assert stamp is not None
        t.set_status(TaskStatus.IN_PROGRESS)
        assert t.status == TaskStatus.IN_PROGRESS
        assert t.completed_at == stamp

    def test_apply_update_keeps_blank_fields(self):
        t = _task()
        t.apply_update("", "   ", TaskStatus.IN_PROGRESS)
        assert t.title == "T"
        assert t.description == "desc"
        assert t.status == TaskStatus.IN_PROGRESS
        assert t.updated_at is not None

    def test_apply_update_replaces_non_blank(self):
        t = _task()
        t.apply_update("New title", "new desc", TaskStatus.PENDING)
        assert t.title == "New title"
        assert t.description == "new desc"

    def test_apply_update_never_touches_priority(self):
        t = _task(priority=TaskPriority.HIGH)
        t.apply_update("x", "y", TaskStatus.COMPLETED)
        assert t.priority == TaskPriority.HIGH


class TestComment:

    def test_new(self):
        task_id, author = uuid.uuid4(), uuid.uuid4()
        c = Comment.new(task_id, "looks good", author)
        assert c.task_id == task_id
        assert c.author_id == author
        assert c.created_at is not None

    def test_content_limits(self):
        with pytest.raises(ValidationError):
            Comment.new(uuid.uuid4(), " ", uuid.uuid4())
        with pytest.raises(ValidationError):
            Comment.new(uuid.uuid4(), "x" * 1001, uuid.uuid4())


class TestHistoryEntry:

    def test_new(self):
        e = HistoryEntry.new(uuid.uuid4(), "Tarefa criada.", "Pending", "High", uuid.uuid4())
        assert e.status == TaskStatus.PENDING
        assert e.priority == TaskPriority.HIGH
        assert e.recorded_at is not None

    def test_long_description_is_truncated(self):
        e = HistoryEntry.new(uuid.uuid4(), "x" * 800, TaskStatus.PENDING, TaskPriority.LOW, uuid.uuid4())
        assert len(e.description) == HISTORY_DESCRIPTION_MAX
        assert e.description.endswith("…")

    def test_blank_description_rejected(self):
        with pytest.raises(ValidationError):
            HistoryEntry.new(uuid.uuid4(), "", TaskStatus.PENDING, TaskPriority.LOW, uuid.uuid4())
