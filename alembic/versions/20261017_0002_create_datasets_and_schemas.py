"""create datasets, dataset_schemas, schema_fields and dataset_data tables

Revision ID: 20261017_0002
Revises: 20261017_0001
Create Date: 2026-10-17 09:10:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0002"
down_revision = "20261017_0001"
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "datasets",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=True),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=False),
        sa.Column("file_size", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=False),
        sa.Column("row_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("column_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("status", sa.String(length=20), server_default="processing", nullable=False),
        sa.Column("uploaded_by", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["uploaded_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_datasets_project_id", "datasets", ["project_id"], unique=False)
    op.create_index("idx_datasets_uploaded_by", "datasets", ["uploaded_by"], unique=False)
    op.create_index("idx_datasets_status", "datasets", ["status"], unique=False)
    op.create_index("idx_datasets_created_at", "datasets", ["created_at"], unique=False)

    op.create_table(
        "dataset_schemas",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("dataset_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["dataset_id"], ["datasets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_dataset_schemas_dataset_id", "dataset_schemas", ["dataset_id"], unique=False)

    op.create_table(
        "schema_fields",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("schema_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("data_type", sa.String(length=50), nullable=False),
        sa.Column("is_required", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_unique", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("default_value", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column(
            "validation",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["schema_id"], ["dataset_schemas.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("schema_id", "name", name="uq_schema_fields_schema_name"),
        sa.UniqueConstraint("schema_id", "position", name="uq_schema_fields_schema_position"),
        sa.CheckConstraint(
            "data_type IN ('string', 'number', 'date', 'boolean', 'email', 'url')",
            name="chk_schema_fields_data_type",
        ),
    )
    op.create_index("idx_schema_fields_schema_id", "schema_fields", ["schema_id"], unique=False)

    op.create_table(
        "dataset_data",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("dataset_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("row_index", sa.Integer(), nullable=False),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("updated_by", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["dataset_id"], ["datasets.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["updated_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("dataset_id", "row_index", name="uq_dataset_data_dataset_row_index"),
    )
    op.create_index("idx_dataset_data_dataset_id", "dataset_data", ["dataset_id"], unique=False)
    op.create_index(
        "idx_dataset_data_data_gin",
        "dataset_data",
        ["data"],
        unique=False,
        postgresql_using="gin",
    )


def downgrade() -> None:
    op.drop_index("idx_dataset_data_data_gin", table_name="dataset_data")
    op.drop_index("idx_dataset_data_dataset_id", table_name="dataset_data")
    op.drop_table("dataset_data")
    op.drop_index("idx_schema_fields_schema_id", table_name="schema_fields")
    op.drop_table("schema_fields")
    op.drop_index("idx_dataset_schemas_dataset_id", table_name="dataset_schemas")
    op.drop_table("dataset_schemas")
    op.drop_index("idx_datasets_created_at", table_name="datasets")
    op.drop_index("idx_datasets_status", table_name="datasets")
    op.drop_index("idx_datasets_uploaded_by", table_name="datasets")
    op.drop_index("idx_datasets_project_id", table_name="datasets")
    op.drop_table("datasets")
