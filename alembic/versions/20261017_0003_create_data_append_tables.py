"""create data_submissions, data_submission_staging and dataset_business_rules tables

Revision ID: 20261017_0003
Revises: 20261017_0002
Create Date: 2026-10-17 09:20:00

Timestamps are TIMESTAMPTZ like the rest of the schema and are written in UTC.
Staging rows always carry a validation_status, so the column is NOT NULL with
a server default of "valid" instead of nullable.
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0003"
down_revision = "20261017_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "data_submissions",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("dataset_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("submitted_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("row_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("status", sa.String(length=50), server_default="pending", nullable=False),
        sa.Column("validation_results", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["dataset_id"], ["datasets.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["submitted_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["reviewed_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_data_submissions_dataset_id", "data_submissions", ["dataset_id"], unique=False)
    op.create_index("idx_data_submissions_status", "data_submissions", ["status"], unique=False)
    op.create_index("idx_data_submissions_submitted_by", "data_submissions", ["submitted_by"], unique=False)
    op.create_index("idx_data_submissions_reviewed_by", "data_submissions", ["reviewed_by"], unique=False)

    op.create_table(
        "data_submission_staging",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("submission_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("row_index", sa.Integer(), nullable=False),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("validation_status", sa.String(length=50), server_default="valid", nullable=False),
        sa.Column("validation_errors", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["submission_id"], ["data_submissions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("submission_id", "row_index", name="uq_submission_staging_row_index"),
    )
    op.create_index(
        "idx_data_submission_staging_submission_id",
        "data_submission_staging",
        ["submission_id"],
        unique=False,
    )
    op.create_index(
        "idx_data_submission_staging_validation_status",
        "data_submission_staging",
        ["validation_status"],
        unique=False,
    )

    op.create_table(
        "dataset_business_rules",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("dataset_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("rule_name", sa.String(length=255), nullable=False),
        sa.Column("rule_type", sa.String(length=50), nullable=False),
        sa.Column("rule_config", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("priority", sa.Integer(), server_default="100", nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["dataset_id"], ["datasets.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_dataset_business_rules_dataset_id",
        "dataset_business_rules",
        ["dataset_id"],
        unique=False,
    )
    op.create_index(
        "idx_dataset_business_rules_is_active",
        "dataset_business_rules",
        ["is_active"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("idx_dataset_business_rules_is_active", table_name="dataset_business_rules")
    op.drop_index("idx_dataset_business_rules_dataset_id", table_name="dataset_business_rules")
    op.drop_table("dataset_business_rules")
    op.drop_index("idx_data_submission_staging_validation_status", table_name="data_submission_staging")
    op.drop_index("idx_data_submission_staging_submission_id", table_name="data_submission_staging")
    op.drop_table("data_submission_staging")
    op.drop_index("idx_data_submissions_reviewed_by", table_name="data_submissions")
    op.drop_index("idx_data_submissions_submitted_by", table_name="data_submissions")
    op.drop_index("idx_data_submissions_status", table_name="data_submissions")
    op.drop_index("idx_data_submissions_dataset_id", table_name="data_submissions")
    op.drop_table("data_submissions")
