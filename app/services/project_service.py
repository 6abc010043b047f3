"""
app/services/project_service.py

Project management: create, list, inspect, rename, delete and invite members.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.actor import Actor
from app.domain.errors import ConflictError, NotFoundError
from app.services.access import AccessPolicy
from db.base import utcnow
from db.models.project import MemberRole, MemberStatus, Project, ProjectMember
from db.repositories.project_repository import ProjectRepository

logger = logging.getLogger(__name__)

MAX_PROJECT_NAME_LENGTH = 255
MAX_PROJECT_DESCRIPTION_LENGTH = 1000


class ProjectService:
    def __init__(self, session: Session) -> None:
        self._session = session
        self._projects = ProjectRepository(session)
        self._access = AccessPolicy(session)

    def create_project(self, actor: Actor, *, name: str, description: str | None = None) -> Project:
        try:
            project = self._projects.create_project(
                owner_id=actor.user_id,
                name=name.strip(),
                description=description,
            )
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        logger.info("Project created project_id=%s owner_id=%s", project.id, actor.user_id)
        return project

    def list_projects(self, actor: Actor, *, limit: int = 100) -> list[Project]:
        return self._projects.list_projects_for_user(actor.user_id, limit=limit)

    def get_project(self, actor: Actor, project_id: uuid.UUID) -> Project:
        return self._access.require_project(project_id, actor)

    def update_project(
        self,
        actor: Actor,
        project_id: uuid.UUID,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Project:
        """
        Owner-only partial update; fields left as None keep their value.
        """

        if name is None and description is None:
            raise ValueError("No updates provided.")
        project = self._access.require_project_owner(project_id, actor)
        if name is not None:
            cleaned = name.strip()
            if not 1 <= len(cleaned) <= MAX_PROJECT_NAME_LENGTH:
                raise ValueError(f"Project name must be between 1 and {MAX_PROJECT_NAME_LENGTH} characters.")
            project.name = cleaned
        if description is not None:
            cleaned = description.strip()
            if len(cleaned) > MAX_PROJECT_DESCRIPTION_LENGTH:
                raise ValueError(
                    f"Project description must be at most {MAX_PROJECT_DESCRIPTION_LENGTH} characters."
                )
            project.description = cleaned
        try:
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        logger.info("Project updated project_id=%s by=%s", project_id, actor.user_id)
        return project

    def delete_project(self, actor: Actor, project_id: uuid.UUID) -> None:
        project = self._access.require_project_owner(project_id, actor)
        try:
            self._projects.delete_project(project)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        logger.info("Project deleted project_id=%s by=%s", project_id, actor.user_id)

    def list_members(self, actor: Actor, project_id: uuid.UUID) -> list[ProjectMember]:
        self._access.require_project(project_id, actor)
        return self._projects.list_members(project_id)

    def add_member(
        self,
        actor: Actor,
        project_id: uuid.UUID,
        *,
        user_id: uuid.UUID,
        role: str = MemberRole.COLLABORATOR,
        status: str = MemberStatus.PENDING,
    ) -> ProjectMember:
        """
        Invite a user to a project. Only the owner (or an admin) may invite.
        """

        self._access.require_project_owner(project_id, actor)
        if role not in MemberRole.ALL or role == MemberRole.OWNER:
            raise ValueError(f"Unsupported member role '{role}'.")
        if status not in MemberStatus.ALL:
            raise ValueError(f"Unsupported member status '{status}'.")
        if self._projects.get_user(user_id) is None:
            raise NotFoundError(f"User not found: {user_id}")
        if self._projects.get_member(project_id, user_id) is not None:
            raise ConflictError("User is already a member of this project.")

        try:
            member = self._projects.add_member(
                project_id=project_id,
                user_id=user_id,
                role=role,
                invited_by=actor.user_id,
                status=status,
            )
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConflictError("User is already a member of this project.") from exc
        except SQLAlchemyError:
            self._session.rollback()
            raise
        logger.info(
            "Project member added project_id=%s user_id=%s role=%s status=%s",
            project_id,
            user_id,
            role,
            status,
        )
        return member

    def respond_to_invitation(self, actor: Actor, project_id: uuid.UUID, *, accept: bool) -> ProjectMember:
        member = self._projects.get_member(project_id, actor.user_id)
        if member is None:
            raise NotFoundError("No invitation found for this project.")
        if member.status != MemberStatus.PENDING:
            raise ConflictError(f"Invitation is already {member.status}.")
        member.status = MemberStatus.ACCEPTED if accept else MemberStatus.DECLINED
        if accept:
            member.joined_at = utcnow()
        try:
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        return member
