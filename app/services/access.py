"""
app/services/access.py

Dataset and project access checks shared by the services.

A user may act on a dataset when they own its project or are an accepted
member of it. Admins may act on every dataset.
"""

from __future__ import annotations

import uuid

from sqlalchemy.orm import Session

from app.domain.actor import Actor
from app.domain.errors import NotFoundError, PermissionDeniedError
from db.models.dataset import Dataset
from db.models.project import Project
from db.repositories.dataset_repository import DatasetRepository
from db.repositories.project_repository import ProjectRepository


class AccessPolicy:
    def __init__(self, session: Session) -> None:
        self._projects = ProjectRepository(session)
        self._datasets = DatasetRepository(session)

    def require_project(self, project_id: uuid.UUID, actor: Actor) -> Project:
        project = self._projects.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")
        if not actor.is_admin and not self._projects.user_can_access(project, actor.user_id):
            raise PermissionDeniedError("You do not have access to this project.")
        return project

    def require_project_owner(self, project_id: uuid.UUID, actor: Actor) -> Project:
        project = self.require_project(project_id, actor)
        if not actor.is_admin and project.owner_id != actor.user_id:
            raise PermissionDeniedError("Only the project owner can perform this action.")
        return project

    def require_dataset(self, dataset_id: uuid.UUID, actor: Actor) -> Dataset:
        dataset = self._datasets.get_dataset(dataset_id)
        if dataset is None:
            raise NotFoundError(f"Dataset not found: {dataset_id}")
        self.require_project(dataset.project_id, actor)
        return dataset


def require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError("Admin privileges are required.")
