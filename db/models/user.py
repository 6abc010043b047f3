"""
db/models/user.py

User model: identities referenced by projects, datasets and submissions.
Credential checks live with the upstream auth gateway; this table only records
who exists.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.project import Project


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Set for password accounts; hashing is owned by the auth gateway",
    )

    google_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Set for Google accounts; unique when present",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    owned_projects: Mapped[list["Project"]] = relationship(
        "Project",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # ── Indexes / constraints ──────────────────────────────────────────────────

    __table_args__ = (
        CheckConstraint(
            "length(trim(name)) > 0 AND length(name) <= 100",
            name="chk_name_length",
        ),
        CheckConstraint(
            "password_hash IS NOT NULL OR google_id IS NOT NULL",
            name="chk_auth_method",
        ),
        Index("idx_users_email", "email"),
        Index("idx_users_created_at", "created_at"),
        Index(
            "users_google_id_unique_idx",
            "google_id",
            unique=True,
            postgresql_where=text("google_id IS NOT NULL"),
            sqlite_where=text("google_id IS NOT NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
