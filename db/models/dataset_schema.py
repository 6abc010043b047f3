"""
db/models/dataset_schema.py

DatasetSchema and SchemaField models.

A schema is an ordered set of typed fields describing the columns of one
dataset. Field names and positions are unique within a schema.
"""

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.dataset import Dataset


class FieldDataType:
    """Data types a schema field may declare."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    EMAIL = "email"
    URL = "url"

    ALL = (STRING, NUMBER, DATE, BOOLEAN, EMAIL, URL)


class DatasetSchema(Base, TimestampMixin):
    __tablename__ = "dataset_schemas"

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

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────────

    dataset: Mapped["Dataset"] = relationship(
        "Dataset",
        back_populates="schemas",
    )

    fields: Mapped[list["SchemaField"]] = relationship(
        "SchemaField",
        back_populates="schema",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SchemaField.position",
    )

    __table_args__ = (
        Index("idx_dataset_schemas_dataset_id", "dataset_id"),
    )

    def __repr__(self) -> str:
        return f"<DatasetSchema id={self.id} dataset_id={self.dataset_id} name={self.name!r}>"


class SchemaField(Base, TimestampMixin):
    """
    One column definition of a dataset schema.

    ``validation`` holds optional per-field constraints:
    min_length, max_length, min_value, max_value, pattern, options.
    """

    __tablename__ = "schema_fields"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    schema_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("dataset_schemas.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Column key in row documents",
    )

    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    data_type: Mapped[str] = mapped_column(String(50), nullable=False)

    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_unique: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    default_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    position: Mapped[int] = mapped_column(Integer, nullable=False)

    validation: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)

    # ── Relationships ──────────────────────────────────────────────────────────

    schema: Mapped["DatasetSchema"] = relationship(
        "DatasetSchema",
        back_populates="fields",
    )

    # ── Indexes / constraints ──────────────────────────────────────────────────

    __table_args__ = (
        UniqueConstraint("schema_id", "name", name="uq_schema_fields_schema_name"),
        UniqueConstraint("schema_id", "position", name="uq_schema_fields_schema_position"),
        CheckConstraint(
            "data_type IN ('string', 'number', 'date', 'boolean', 'email', 'url')",
            name="chk_schema_fields_data_type",
        ),
        Index("idx_schema_fields_schema_id", "schema_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<SchemaField name={self.name!r} data_type={self.data_type!r} "
            f"position={self.position}>"
        )
