"""
db/models/project.py

Project and ProjectMember models.

A project groups datasets; access to a dataset is granted to the project owner
and to every member whose invitation was accepted.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.dataset import Dataset
    from db.models.user import User


class MemberRole:
    """Roles a project member may hold."""

    OWNER = "owner"
    ADMIN = "admin"
    COLLABORATOR = "collaborator"
    VIEWER = "viewer"

    ALL = (OWNER, ADMIN, COLLABORATOR, VIEWER)


class MemberStatus:
    """Invitation lifecycle of a project member."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    REMOVED = "removed"

    ALL = (PENDING, ACCEPTED, DECLINED, REMOVED)


class Project(Base, TimestampMixin):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="owned_projects",
    )

    members: Mapped[list["ProjectMember"]] = relationship(
        "ProjectMember",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    datasets: Mapped[list["Dataset"]] = relationship(
        "Dataset",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # ── Indexes ────────────────────────────────────────────────────────────────

    __table_args__ = (
        Index("idx_projects_owner_id", "owner_id"),
        Index("idx_projects_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id} name={self.name!r} owner_id={self.owner_id}>"


class ProjectMember(Base, TimestampMixin):
    __tablename__ = "project_members"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    role: Mapped[str] = mapped_column(String(20), nullable=False)

    invited_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=True,
    )

    invited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    joined_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MemberStatus.PENDING,
    )

    permissions: Mapped[dict[str, Any]] = mapped_column(
        nullable=False,
        default=dict,
        comment="Free-form per-member permission flags",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="members",
    )

    # ── Indexes / constraints ──────────────────────────────────────────────────

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
        CheckConstraint(
            "role IN ('owner', 'admin', 'collaborator', 'viewer')",
            name="chk_project_members_role",
        ),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'removed')",
            name="chk_project_members_status",
        ),
        Index("idx_project_members_project_id", "project_id"),
        Index("idx_project_members_user_id", "user_id"),
        Index("idx_project_members_role", "role"),
        Index("idx_project_members_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectMember project_id={self.project_id} user_id={self.user_id} "
            f"role={self.role!r} status={self.status!r}>"
        )
