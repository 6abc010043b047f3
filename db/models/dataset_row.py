"""
db/models/dataset_row.py

DatasetRow model: one materialized row document of a dataset, stored in
``dataset_data`` and keyed by (dataset_id, row_index).
"""

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, Index, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.dataset import Dataset


class DatasetRow(Base, TimestampMixin):
    __tablename__ = "dataset_data"

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

    row_index: Mapped[int] = mapped_column(Integer, nullable=False)

    data: Mapped[dict[str, Any]] = mapped_column(
        nullable=False,
        comment="Field name -> scalar value",
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Incremented on every row edit",
    )

    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )

    updated_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    dataset: Mapped["Dataset"] = relationship(
        "Dataset",
        back_populates="rows",
    )

    # ── Indexes / constraints ──────────────────────────────────────────────────

    __table_args__ = (
        UniqueConstraint("dataset_id", "row_index", name="uq_dataset_data_dataset_row_index"),
        Index("idx_dataset_data_dataset_id", "dataset_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<DatasetRow dataset_id={self.dataset_id} row_index={self.row_index} "
            f"version={self.version}>"
        )
