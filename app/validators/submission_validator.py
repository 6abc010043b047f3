"""
app/validators/submission_validator.py

Validation pass over every staged row of one submission.

Combines schema checks, uniqueness against the live dataset and earlier rows,
and business rules into one status per row plus an aggregate summary.
Validation failures never abort the pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from app.domain.row_document import is_blank, uniqueness_key
from app.domain.validation import (
    FieldStats,
    IssueCode,
    RowIssue,
    RowOutcome,
    ValidationSummary,
)
from app.validators.business_rules import BusinessRuleEvaluator
from app.validators.row_validator import SchemaRowValidator
from db.models.business_rule import BusinessRule, RuleType
from db.models.data_submission import ValidationStatus
from db.models.dataset_schema import SchemaField


@dataclass(frozen=True)
class StagedRowInput:
    row_index: int
    data: Mapping[str, Any]


def unique_field_names(
    fields: Sequence[SchemaField],
    rules: Sequence[BusinessRule],
) -> set[str]:
    """
    Field names whose values must be compared with the live dataset.
    """

    names = {item.name for item in fields if item.is_unique}
    for rule in rules:
        if rule.rule_type == RuleType.UNIQUE and rule.is_active is not False:
            field_name = (rule.rule_config or {}).get("field_name")
            if field_name:
                names.add(str(field_name))
    return names


def build_existing_keys(
    rows: Iterable[Mapping[str, Any]],
    field_names: Iterable[str],
    field_types: Mapping[str, str],
) -> dict[str, set[str]]:
    """
    Collect uniqueness keys per field from already-stored row documents.
    """

    names = list(field_names)
    keys: dict[str, set[str]] = {name: set() for name in names}
    for row in rows:
        for name in names:
            key = uniqueness_key(row.get(name), field_types.get(name))
            if key is not None:
                keys[name].add(key)
    return keys


class SubmissionValidator:
    """
    Stateless entrypoint; each ``validate`` call starts fresh trackers.
    """

    def __init__(
        self,
        *,
        fields: Sequence[SchemaField],
        rules: Sequence[BusinessRule],
        existing_keys: Mapping[str, set[str]] | None = None,
    ) -> None:
        self._fields = list(fields)
        self._rules = list(rules)
        self._existing_keys = dict(existing_keys or {})
        self._field_types = {item.name: item.data_type for item in self._fields}

    @property
    def schema_applied(self) -> bool:
        return bool(self._fields)

    def validate(self, rows: Sequence[StagedRowInput]) -> tuple[list[RowOutcome], ValidationSummary]:
        schema_validator = SchemaRowValidator(self._fields)
        rule_evaluator = BusinessRuleEvaluator(
            self._rules,
            existing_keys=self._existing_keys,
            field_types=self._field_types,
        )
        summary = ValidationSummary(
            schema_applied=self.schema_applied,
            field_stats={item.name: FieldStats() for item in schema_validator.fields},
            skipped_rules=rule_evaluator.skipped_rules,
        )
        seen_unique: dict[str, set[str]] = {
            item.name: set() for item in self._fields if item.is_unique
        }
        distinct_values: dict[str, set[str]] = {name: set() for name in summary.field_stats}
        unexpected: dict[str, None] = {}
        outcomes: list[RowOutcome] = []

        for row in sorted(rows, key=lambda item: item.row_index):
            issues: list[RowIssue] = []
            if self.schema_applied:
                issues.extend(schema_validator.validate_row(row_index=row.row_index, data=row.data))
                issues.extend(
                    self._check_unique_fields(row=row, seen_unique=seen_unique, issues=issues)
                )
                for name in schema_validator.unexpected_fields(row.data):
                    unexpected.setdefault(name, None)
                self._update_field_stats(
                    row=row,
                    issues=issues,
                    stats=summary.field_stats,
                    distinct_values=distinct_values,
                )

            rule_issues = rule_evaluator.evaluate_row(row_index=row.row_index, data=row.data)
            issues.extend(rule_issues)

            status = self._row_status(issues)
            outcomes.append(RowOutcome(row_index=row.row_index, status=status, issues=issues))

            summary.total_rows += 1
            if status == ValidationStatus.INVALID:
                summary.invalid_rows += 1
            elif status == ValidationStatus.WARNING:
                summary.warning_rows += 1
            else:
                summary.valid_rows += 1

            for issue in issues:
                if issue.from_rule:
                    summary.business_rule_errors.append(issue)
                else:
                    summary.schema_errors.append(issue)

        for name, values in distinct_values.items():
            summary.field_stats[name].unique_values = len(values)
        summary.unexpected_fields = list(unexpected)
        return outcomes, summary

    def _check_unique_fields(
        self,
        *,
        row: StagedRowInput,
        seen_unique: dict[str, set[str]],
        issues: Sequence[RowIssue],
    ) -> list[RowIssue]:
        failed_fields = {issue.field for issue in issues if issue.is_error}
        found: list[RowIssue] = []
        for schema_field in self._fields:
            if not schema_field.is_unique or schema_field.name in failed_fields:
                continue
            value = row.data.get(schema_field.name)
            key = uniqueness_key(value, schema_field.data_type)
            if key is None:
                continue
            seen = seen_unique[schema_field.name]
            if key in seen or key in self._existing_keys.get(schema_field.name, set()):
                found.append(
                    RowIssue(
                        row_index=row.row_index,
                        field=schema_field.name,
                        code=IssueCode.DUPLICATE_VALUE,
                        message=f"Field '{schema_field.name}' must be unique.",
                        value=str(value),
                    )
                )
                continue
            seen.add(key)
        return found

    def _update_field_stats(
        self,
        *,
        row: StagedRowInput,
        issues: Sequence[RowIssue],
        stats: dict[str, FieldStats],
        distinct_values: dict[str, set[str]],
    ) -> None:
        invalid_fields = {issue.field for issue in issues if issue.is_error}
        for name, field_stats in stats.items():
            field_stats.total_values += 1
            value = row.data.get(name)
            if is_blank(value):
                field_stats.null_values += 1
            else:
                distinct_values[name].add(str(value))
            if name in invalid_fields:
                field_stats.invalid_values += 1

    @staticmethod
    def _row_status(issues: Sequence[RowIssue]) -> str:
        if any(issue.is_error for issue in issues):
            return ValidationStatus.INVALID
        if issues:
            return ValidationStatus.WARNING
        return ValidationStatus.VALID
