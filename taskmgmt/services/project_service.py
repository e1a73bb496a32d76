"""
Project Rules Engine.

Rules enforced:
- (name, owner) is unique; renames are checked against the owner's *other* projects
- a project with any pending task cannot be deleted
- only the owner may rename a project
"""

from __future__ import annotations

import uuid
from typing import List

from taskmgmt.db.models import Project
from taskmgmt.engine.errors import ConflictError, NotFoundError, UnauthorizedError
from taskmgmt.services.base import RulesEngine
from taskmgmt.services.schemas import (
    NewProjectPayload,
    ProjectSummary,
    ProjectView,
    TaskView,
    UpdateProjectPayload,
)

DUPLICATE_NAME = "A project with this name already exists for the user."
PENDING_TASKS = "Project has pending tasks. Complete or remove them before deleting the project."


class ProjectService(RulesEngine):

    area = "projects"

    def _get_or_raise(self, project_id: uuid.UUID, operation: str) -> Project:
        project = self._uow.projects.get_by_id(project_id)
        if project is None:
            raise self._reject(
                operation,
                NotFoundError("Project not found.", entity="project", entity_id=project_id),
            )
        return project

    def get_full(self, project_id: uuid.UUID) -> ProjectView:
        """Project with its tasks, their comments and history."""
        return ProjectView.model_validate(self._get_or_raise(project_id, "get"))

    def list_by_owner(self, owner_id: uuid.UUID) -> List[ProjectSummary]:
        return [ProjectSummary.model_validate(p) for p in self._uow.projects.list_by_owner(owner_id)]

    def can_delete(self, project_id: uuid.UUID) -> bool:
        """True iff no task of the project is pending."""
        return self._get_or_raise(project_id, "can_delete").can_delete()

    def list_deletable_tasks(self, project_id: uuid.UUID) -> List[TaskView]:
        """Tasks that are no longer pending."""
        self._get_or_raise(project_id, "list_deletable_tasks")
        return [TaskView.model_validate(t) for t in self._uow.tasks.list_deletable(project_id)]

    def delete(self, project_id: uuid.UUID) -> bool:
        """
        Remove the project; its tasks, comments and history go with it.

        An unknown id is a no-op. Returns True if a project was removed.
        """
        with self._uow.atomic():
            project = self._uow.projects.get_by_id(project_id)
            if project is not None and not project.can_delete():
                raise self._reject(
                    "delete",
                    ConflictError(PENDING_TASKS, rule="pending_tasks", entity_id=project_id),
                )
            removed = self._uow.projects.remove(project_id)
        if removed:
            self._done("delete", project_id)
        return removed

    def create(self, payload: NewProjectPayload) -> ProjectView:
        with self._uow.atomic():
            if self._uow.projects.name_conflict_exists(payload.name, payload.user_id):
                raise self._reject(
                    "create",
                    ConflictError(DUPLICATE_NAME, rule="duplicate_name", name=payload.name),
                )
            project = Project.new(payload.name, payload.user_id)
            self._uow.projects.add(project)
        self._done("create", project.id, user_id=payload.user_id)
        return ProjectView.model_validate(project)

    def update(self, payload: UpdateProjectPayload) -> ProjectView:
        """Rename a project. A blank name is ignored, not an error."""
        with self._uow.atomic():
            project = self._get_or_raise(payload.project_id, "update")
            if project.owner_id != payload.user_id:
                raise self._reject(
                    "update",
                    UnauthorizedError(
                        "Project does not belong to the user.",
                        user_id=payload.user_id,
                        entity_id=payload.project_id,
                    ),
                )

            name = payload.name
            if name and name.strip() and self._uow.projects.name_conflict_exists(
                name, payload.user_id, exclude_id=project.id
            ):
                raise self._reject(
                    "update",
                    ConflictError(DUPLICATE_NAME, rule="duplicate_name", name=name),
                )

            changed = project.rename(name)
            self._uow.projects.update(project)
        self._done("update", project.id, user_id=payload.user_id, fields_changed=["name"] if changed else None)
        return ProjectView.model_validate(project)
