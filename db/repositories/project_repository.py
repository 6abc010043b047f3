"""
Project repository: users, projects, memberships and access lookups.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Select, exists, or_, select
from sqlalchemy.orm import Session

from db.models.project import MemberRole, MemberStatus, Project, ProjectMember
from db.models.user import User


class ProjectRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: uuid.UUID) -> User | None:
        return self._session.get(User, user_id)

    def get_user_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email.strip().lower())
        return self._session.scalars(stmt).first()

    def create_user(
        self,
        *,
        email: str,
        name: str,
        password_hash: str | None = None,
        google_id: str | None = None,
    ) -> User:
        user = User(
            email=email.strip().lower(),
            name=name.strip(),
            password_hash=password_hash,
            google_id=google_id or None,
        )
        self._session.add(user)
        self._session.flush()
        return user

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(
        self,
        *,
        owner_id: uuid.UUID,
        name: str,
        description: str | None = None,
    ) -> Project:
        """
        Insert a project and its owner membership row.
        """

        project = Project(owner_id=owner_id, name=name, description=description)
        self._session.add(project)
        self._session.flush()
        now = datetime.now(timezone.utc)
        self._session.add(
            ProjectMember(
                project_id=project.id,
                user_id=owner_id,
                role=MemberRole.OWNER,
                status=MemberStatus.ACCEPTED,
                invited_at=now,
                joined_at=now,
                permissions={},
            )
        )
        self._session.flush()
        return project

    def get_project(self, project_id: uuid.UUID) -> Project | None:
        return self._session.get(Project, project_id)

    def list_projects_for_user(self, user_id: uuid.UUID, *, limit: int = 100) -> list[Project]:
        member_of = exists().where(
            ProjectMember.project_id == Project.id,
            ProjectMember.user_id == user_id,
            ProjectMember.status == MemberStatus.ACCEPTED,
        )
        stmt: Select[tuple[Project]] = (
            select(Project)
            .where(or_(Project.owner_id == user_id, member_of))
            .order_by(Project.created_at.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def delete_project(self, project: Project) -> None:
        self._session.delete(project)
        self._session.flush()

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def get_member(self, project_id: uuid.UUID, user_id: uuid.UUID) -> ProjectMember | None:
        stmt = select(ProjectMember).where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
        return self._session.scalars(stmt).first()

    def add_member(
        self,
        *,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        role: str,
        invited_by: uuid.UUID,
        status: str = MemberStatus.PENDING,
    ) -> ProjectMember:
        now = datetime.now(timezone.utc)
        member = ProjectMember(
            project_id=project_id,
            user_id=user_id,
            role=role,
            invited_by=invited_by,
            invited_at=now,
            joined_at=now if status == MemberStatus.ACCEPTED else None,
            status=status,
            permissions={},
        )
        self._session.add(member)
        self._session.flush()
        return member

    def list_members(self, project_id: uuid.UUID) -> list[ProjectMember]:
        stmt = (
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.created_at)
        )
        return list(self._session.scalars(stmt).all())

    def user_can_access(self, project: Project, user_id: uuid.UUID) -> bool:
        """
        True for the project owner and for accepted members.
        """

        if project.owner_id == user_id:
            return True
        member = self.get_member(project.id, user_id)
        return member is not None and member.status == MemberStatus.ACCEPTED
