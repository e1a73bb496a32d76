"""Tests for taskmgmt.repositories — SQL repositories and the unit of work."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from taskmgmt.db.base import utcnow
from taskmgmt.db.models import Comment, HistoryEntry, Project, Task, TaskPriority, TaskStatus
from taskmgmt.engine.errors import ConflictError, ValidationError

DUE = datetime(2030, 1, 1, tzinfo=timezone.utc)


def _project(uow, name="Alpha", owner=None):
    project = Project.new(name, owner or uuid.uuid4())
    uow.projects.add(project)
    uow.commit()
    return project


def _task(uow, project, title="T", status=TaskStatus.PENDING):
    task = Task.new(title, None, DUE, TaskPriority.MEDIUM, project.id)
    task.set_status(status)
    uow.tasks.add(task)
    uow.commit()
    return task


class TestProjectRepository:

    def test_add_and_get(self, uow):
        project = _project(uow)
        assert uow.projects.get_by_id(project.id).name == "Alpha"

    def test_get_missing_returns_none(self, uow):
        assert uow.projects.get_by_id(uuid.uuid4()) is None

    def test_nil_id_is_validation_error(self, uow):
        with pytest.raises(ValidationError):
            uow.projects.get_by_id(uuid.UUID(int=0))
        with pytest.raises(ValidationError):
            uow.projects.list_by_owner(None)

    def test_list_by_owner(self, uow):
        owner = uuid.uuid4()
        _project(uow, "A", owner)
        _project(uow, "B", owner)
        _project(uow, "C")
        assert [p.name for p in uow.projects.list_by_owner(owner)] == ["A", "B"]

    def test_name_conflict(self, uow):
        owner = uuid.uuid4()
        project = _project(uow, "Alpha", owner)
        assert uow.projects.name_conflict_exists("Alpha", owner)
        assert not uow.projects.name_conflict_exists("alpha", owner)
        assert not uow.projects.name_conflict_exists("Alpha", uuid.uuid4())
        assert not uow.projects.name_conflict_exists("Alpha", owner, exclude_id=project.id)

    def test_remove(self, uow):
        project = _project(uow)
        assert uow.projects.remove(project.id) is True
        uow.commit()
        assert uow.projects.get_by_id(project.id) is None
        assert uow.projects.remove(project.id) is False


class TestTaskRepository:

    def test_count_and_list_by_project(self, uow):
        project = _project(uow)
        _task(uow, project, "one")
        _task(uow, project, "two")
        assert uow.tasks.count_by_project(project.id) == 2
        assert [t.title for t in uow.tasks.list_by_project(project.id)] == ["one", "two"]

    def test_list_deletable_excludes_pending(self, uow):
        project = _project(uow)
        _task(uow, project, "pending")
        _task(uow, project, "doing", TaskStatus.IN_PROGRESS)
        _task(uow, project, "done", TaskStatus.COMPLETED)
        assert sorted(t.title for t in uow.tasks.list_deletable(project.id)) == ["doing", "done"]

    def test_list_by_owner(self, uow):
        owner = uuid.uuid4()
        mine = _project(uow, "Mine", owner)
        other = _project(uow, "Other")
        _task(uow, mine, "a")
        _task(uow, other, "b")
        assert [t.title for t in uow.tasks.list_by_owner(owner)] == ["a"]

    def test_completed_per_owner(self, uow):
        busy, idle = uuid.uuid4(), uuid.uuid4()
        p1 = _project(uow, "P1", busy)
        p2 = _project(uow, "P2", idle)
        _task(uow, p1, "a", TaskStatus.COMPLETED)
        _task(uow, p1, "b", TaskStatus.COMPLETED)
        _task(uow, p1, "c", TaskStatus.PENDING)
        _task(uow, p2, "d", TaskStatus.COMPLETED)

        rows = uow.tasks.completed_per_owner(utcnow() - timedelta(days=30))
        assert [(r.owner_id, r.completed) for r in rows] == [(busy, 2), (idle, 1)]
        assert uow.tasks.completed_per_owner(utcnow() + timedelta(days=1)) == []


class TestCommentAndHistoryRepositories:

    def test_comments(self, uow):
        project = _project(uow)
        task = _task(uow, project)
        comment = Comment.new(task.id, "hello", uuid.uuid4())
        uow.comments.add(comment)
        uow.commit()
        assert [c.content for c in uow.comments.list_by_task(task.id)] == ["hello"]
        assert uow.comments.remove(comment.id) is True
        uow.commit()
        assert uow.comments.get_by_id(comment.id) is None

    def test_history_order_and_last_recorded(self, uow):
        project = _project(uow)
        task = _task(uow, project)
        base = utcnow()
        for i in range(3):
            uow.history.append(
                HistoryEntry.new(task.id, f"e{i}", TaskStatus.PENDING, TaskPriority.LOW,
                                 uuid.uuid4(), recorded_at=base + timedelta(seconds=i))
            )
        uow.commit()
        entries = uow.history.list_by_task(task.id)
        assert [e.description for e in entries] == ["e0", "e1", "e2"]
        assert entries[0].id < entries[1].id < entries[2].id
        assert uow.history.last_recorded_at(task.id) is not None
        assert uow.history.last_recorded_at(uuid.uuid4()) is None


class TestUnitOfWork:

    def test_commit_returns_affected_rows(self, uow):
        uow.projects.add(Project.new("A", uuid.uuid4()))
        uow.projects.add(Project.new("B", uuid.uuid4()))
        assert uow.commit() == 2
        assert uow.commit() == 0

    def test_unique_constraint_becomes_conflict(self, uow):
        owner = uuid.uuid4()
        uow.projects.add(Project.new("Same", owner))
        uow.projects.add(Project.new("Same", owner))
        with pytest.raises(ConflictError) as exc:
            uow.commit()
        assert exc.value.rule == "unique_constraint"
        assert uow.projects.list_by_owner(owner) == []

    def test_atomic_rolls_back_on_error(self, uow):
        owner = uuid.uuid4()
        with pytest.raises(RuntimeError):
            with uow.atomic():
                uow.projects.add(Project.new("Gone", owner))
                raise RuntimeError("abort")
        assert uow.projects.list_by_owner(owner) == []

    def test_atomic_commits_once(self, uow):
        owner = uuid.uuid4()
        with uow.atomic():
            uow.projects.add(Project.new("Kept", owner))
        assert [p.name for p in uow.projects.list_by_owner(owner)] == ["Kept"]

    def test_delete_project_cascades(self, uow):
        project = _project(uow)
        task = _task(uow, project, status=TaskStatus.COMPLETED)
        uow.comments.add(Comment.new(task.id, "c", uuid.uuid4()))
        uow.history.append(HistoryEntry.new(task.id, "h", TaskStatus.COMPLETED, TaskPriority.MEDIUM, uuid.uuid4()))
        uow.commit()

        uow.projects.remove(project.id)
        uow.commit()
        assert uow.tasks.get_by_id(task.id) is None
        assert uow.comments.list_by_task(task.id) == []
        assert uow.history.list_by_task(task.id) == []
