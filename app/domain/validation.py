"""
app/domain/validation.py

Result types produced by the submission validation pass.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


class IssueSeverity:
    ERROR = "error"
    WARNING = "warning"


class IssueCode:
    """Machine-readable issue kinds recorded on staging rows."""

    REQUIRED_FIELD = "required_field"
    INVALID_DATA_TYPE = "invalid_data_type"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    MIN_VALUE = "min_value"
    MAX_VALUE = "max_value"
    PATTERN = "pattern"
    INVALID_OPTION = "invalid_option"
    DUPLICATE_VALUE = "duplicate_value"
    UNEXPECTED_FIELD = "unexpected_field"

    RULE_REQUIRED = "required_violation"
    RULE_FIELD_VALIDATION = "field_validation_violation"
    RULE_RANGE = "range_violation"
    RULE_UNIQUE = "unique_violation"
    RULE_CROSS_FIELD = "cross_field_violation"


@dataclass(frozen=True)
class RowIssue:
    """
    One validation finding for one staged row.
    """

    row_index: int
    field: str
    code: str
    message: str
    severity: str = IssueSeverity.ERROR
    value: str | None = None
    expected: str | None = None
    rule_id: str | None = None
    rule_name: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity == IssueSeverity.ERROR

    @property
    def from_rule(self) -> bool:
        return self.rule_name is not None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class FieldStats:
    total_values: int = 0
    unique_values: int = 0
    null_values: int = 0
    invalid_values: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class RowOutcome:
    """Validation status and issues of one staged row."""

    row_index: int
    status: str
    issues: list[RowIssue] = field(default_factory=list)


@dataclass
class ValidationSummary:
    """
    Aggregate report of one validation pass over a whole submission.
    """

    total_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0
    warning_rows: int = 0
    schema_errors: list[RowIssue] = field(default_factory=list)
    business_rule_errors: list[RowIssue] = field(default_factory=list)
    field_stats: dict[str, FieldStats] = field(default_factory=dict)
    unexpected_fields: list[str] = field(default_factory=list)
    skipped_rules: list[dict[str, str]] = field(default_factory=list)
    schema_applied: bool = True

    @property
    def is_valid(self) -> bool:
        return self.invalid_rows == 0

    def to_results(self, *, max_errors: int, validated_at: datetime) -> dict[str, Any]:
        """
        Serialize for ``data_submissions.validation_results``.

        Each error list is capped at ``max_errors`` entries.
        """

        truncated = (
            len(self.schema_errors) > max_errors
            or len(self.business_rule_errors) > max_errors
        )
        return {
            "is_valid": self.is_valid,
            "total_rows": self.total_rows,
            "valid_rows": self.valid_rows,
            "invalid_rows": self.invalid_rows,
            "warning_rows": self.warning_rows,
            "schema_errors": [issue.to_dict() for issue in self.schema_errors[:max_errors]],
            "business_rule_errors": [
                issue.to_dict() for issue in self.business_rule_errors[:max_errors]
            ],
            "truncated": truncated,
            "field_stats": {name: stats.to_dict() for name, stats in self.field_stats.items()},
            "unexpected_fields": list(self.unexpected_fields),
            "skipped_rules": list(self.skipped_rules),
            "schema_applied": self.schema_applied,
            "validated_at": validated_at.isoformat(),
        }
