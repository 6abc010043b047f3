"""
db/models/business_rule.py

BusinessRule model: named, prioritized validation rules attached to a dataset.
Lower priority numbers run first.
"""

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.dataset import Dataset


class RuleType:
    """Rule kinds accepted by the rules store."""

    FIELD_VALIDATION = "field_validation"
    CROSS_FIELD = "cross_field"
    CUSTOM_SQL = "custom_sql"
    RANGE_CHECK = "range_check"
    UNIQUE = "unique"
    REQUIRED = "required"

    ALL = (FIELD_VALIDATION, CROSS_FIELD, CUSTOM_SQL, RANGE_CHECK, UNIQUE, REQUIRED)


DEFAULT_RULE_PRIORITY = 100


class BusinessRule(Base, TimestampMixin):
    """
    One configurable rule.

    rule_config carries type-specific keys (field_name, fields, condition,
    min_value, max_value, pattern, allowed_values, ...) plus an optional
    ``severity`` of "error" (default) or "warning".
    """

    __tablename__ = "dataset_business_rules"

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

    rule_name: Mapped[str] = mapped_column(String(255), nullable=False)

    rule_type: Mapped[str] = mapped_column(String(50), nullable=False)

    rule_config: Mapped[dict[str, Any]] = mapped_column(nullable=False)

    error_message: Mapped[str] = mapped_column(Text, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    priority: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=DEFAULT_RULE_PRIORITY,
        comment="Lower numbers are evaluated first",
    )

    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    dataset: Mapped["Dataset"] = relationship(
        "Dataset",
        back_populates="business_rules",
    )

    # ── Indexes ────────────────────────────────────────────────────────────────

    __table_args__ = (
        Index("idx_dataset_business_rules_dataset_id", "dataset_id"),
        Index("idx_dataset_business_rules_is_active", "is_active"),
    )

    def __repr__(self) -> str:
        return (
            f"<BusinessRule id={self.id} rule_name={self.rule_name!r} "
            f"rule_type={self.rule_type!r} priority={self.priority}>"
        )
