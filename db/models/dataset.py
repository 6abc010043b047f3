"""
db/models/dataset.py

Dataset model: one uploaded CSV/Excel file of tabular data inside a project.
Parsed rows are materialized in ``dataset_data`` (see DatasetRow).
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.business_rule import BusinessRule
    from db.models.data_submission import DataSubmission
    from db.models.dataset_row import DatasetRow
    from db.models.dataset_schema import DatasetSchema
    from db.models.project import Project


class DatasetStatus:
    """Processing states of an uploaded dataset."""

    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class Dataset(Base, TimestampMixin):
    """
    Represents one uploaded file of tabular data.

    row_count always equals the number of ``dataset_data`` rows once the
    dataset is ready; uploads, row deletes and applied submissions keep it in
    step inside the same transaction that changes the rows.
    """

    __tablename__ = "datasets"

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

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Human-readable label for this dataset",
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True, default="")

    file_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Original upload file name",
    )

    file_path: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Storage-relative path of the uploaded file",
    )

    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)

    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    column_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DatasetStatus.PROCESSING,
        comment="processing → ready | error",
    )

    uploaded_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="datasets",
    )

    schemas: Mapped[list["DatasetSchema"]] = relationship(
        "DatasetSchema",
        back_populates="dataset",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    rows: Mapped[list["DatasetRow"]] = relationship(
        "DatasetRow",
        back_populates="dataset",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DatasetRow.row_index",
    )

    submissions: Mapped[list["DataSubmission"]] = relationship(
        "DataSubmission",
        back_populates="dataset",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    business_rules: Mapped[list["BusinessRule"]] = relationship(
        "BusinessRule",
        back_populates="dataset",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # ── Indexes ────────────────────────────────────────────────────────────────

    __table_args__ = (
        Index("idx_datasets_project_id", "project_id"),
        Index("idx_datasets_uploaded_by", "uploaded_by"),
        Index("idx_datasets_status", "status"),
        Index("idx_datasets_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Dataset id={self.id} name={self.name!r} "
            f"project_id={self.project_id} status={self.status!r}>"
        )
