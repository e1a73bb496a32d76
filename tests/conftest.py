"""
TaskMgmt Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v

Every test gets a fresh in-memory SQLite database; nothing touches Postgres.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy.pool import StaticPool

from taskmgmt.db.models import TaskPriority
from taskmgmt.db.session import close_db, init_db
from taskmgmt.engine.config import DATABASE_URL_ENV, RulesConfig, reset_config
from taskmgmt.repositories.unit_of_work import UnitOfWork
from taskmgmt.services.project_service import ProjectService
from taskmgmt.services.schemas import NewProjectPayload, NewTaskPayload
from taskmgmt.services.task_service import TaskService

DUE = datetime(2030, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Reset global config between tests and ignore any real database URL."""
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def session_factory():
    factory = init_db(
        "sqlite://",
        create_tables=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield factory
    close_db()


@pytest.fixture
def rules():
    return RulesConfig()


@pytest.fixture
def uow(session_factory):
    with UnitOfWork.from_factory(session_factory) as unit:
        yield unit


@pytest.fixture
def project_service(uow, rules):
    return ProjectService(uow, rules)


@pytest.fixture
def task_service(uow, rules):
    return TaskService(uow, rules)


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def project(project_service, owner_id):
    """A persisted, empty project owned by ``owner_id``."""
    return project_service.create(NewProjectPayload(name="Alpha", user_id=owner_id))


@pytest.fixture
def make_task(task_service, project, owner_id):
    """Create a task in ``project``; keyword overrides replace payload fields."""

    def _make(title="Write report", **overrides):
        payload = dict(
            title=title,
            description="desc",
            due_date=DUE,
            priority=TaskPriority.HIGH,
            project_id=project.id,
            user_id=owner_id,
        )
        payload.update(overrides)
        return task_service.create(NewTaskPayload(**payload))

    return _make
