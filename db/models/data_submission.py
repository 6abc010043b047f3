"""
db/models/data_submission.py

DataSubmission and StagingRow models: append requests against an existing
dataset and the candidate rows they carry until review completes.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, CreatedAtMixin, TimestampMixin

if TYPE_CHECKING:
    from db.models.dataset import Dataset


class SubmissionStatus:
    """Review lifecycle of a data submission."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    APPLIED = "applied"

    IN_FLIGHT = (PENDING, UNDER_REVIEW, APPROVED)
    REVIEW_QUEUE = (PENDING, UNDER_REVIEW)
    EDITABLE = (PENDING, UNDER_REVIEW)


class ValidationStatus:
    """Per-row outcome of the validation pass."""

    VALID = "valid"
    INVALID = "invalid"
    WARNING = "warning"


class DataSubmission(Base, TimestampMixin):
    """
    One append request: an uploaded file whose rows wait in staging.

    validation_results holds the aggregate report of the last validation
    pass (counts, capped error lists, per-field statistics).
    """

    __tablename__ = "data_submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    dataset_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("datasets.id", ondelete="CASCADE"),
        nullable=False,
    )

    submitted_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)

    file_path: Mapped[str] = mapped_column(String(500), nullable=False)

    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)

    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=SubmissionStatus.PENDING,
        comment="pending → under_review → approved → applied | rejected",
    )

    validation_results: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)

    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=True,
    )

    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    applied_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set only when status is applied",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    dataset: Mapped["Dataset"] = relationship(
        "Dataset",
        back_populates="submissions",
    )

    staging_rows: Mapped[list["StagingRow"]] = relationship(
        "StagingRow",
        back_populates="submission",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StagingRow.row_index",
    )

    # ── Indexes ────────────────────────────────────────────────────────────────

    __table_args__ = (
        Index("idx_data_submissions_dataset_id", "dataset_id"),
        Index("idx_data_submissions_status", "status"),
        Index("idx_data_submissions_submitted_by", "submitted_by"),
        Index("idx_data_submissions_reviewed_by", "reviewed_by"),
    )

    def __repr__(self) -> str:
        return (
            f"<DataSubmission id={self.id} dataset_id={self.dataset_id} "
            f"status={self.status!r} row_count={self.row_count}>"
        )


class StagingRow(Base, CreatedAtMixin):
    __tablename__ = "data_submission_staging"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("data_submissions.id", ondelete="CASCADE"),
        nullable=False,
    )

    row_index: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Input order, contiguous from 0",
    )

    data: Mapped[dict[str, Any]] = mapped_column(nullable=False)

    validation_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ValidationStatus.VALID,
    )

    validation_errors: Mapped[list[dict[str, Any]] | None] = mapped_column(nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────────

    submission: Mapped["DataSubmission"] = relationship(
        "DataSubmission",
        back_populates="staging_rows",
    )

    # ── Indexes / constraints ──────────────────────────────────────────────────

    __table_args__ = (
        UniqueConstraint("submission_id", "row_index", name="uq_submission_staging_row_index"),
        Index("idx_data_submission_staging_submission_id", "submission_id"),
        Index("idx_data_submission_staging_validation_status", "validation_status"),
    )

    def __repr__(self) -> str:
        return (
            f"<StagingRow submission_id={self.submission_id} row_index={self.row_index} "
            f"validation_status={self.validation_status!r}>"
        )
