"""
app/validators/row_validator.py

Schema-level checks for one staged row: required presence, data type and the
per-field ``validation`` config. Uniqueness needs the whole submission and is
handled by SubmissionValidator.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Sequence

from app.domain.row_document import is_blank, matches_data_type, parse_number, stringify
from app.domain.validation import IssueCode, IssueSeverity, RowIssue
from db.models.dataset_schema import FieldDataType, SchemaField

EXPECTED_FORMATS: dict[str, str] = {
    FieldDataType.NUMBER: "number",
    FieldDataType.BOOLEAN: "true/false",
    FieldDataType.DATE: "YYYY-MM-DD, YYYY-MM-DD HH:MM:SS, MM/DD/YYYY or DD-MM-YYYY",
    FieldDataType.EMAIL: "valid email format",
    FieldDataType.URL: "http(s) URL",
}


def length_bound(value: Any) -> int | None:
    """Configured length limit, or None when absent or not a non-negative integer."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def constraint_config_problems(config: Mapping[str, Any], *, choices_key: str) -> list[str]:
    """
    Describe every malformed constraint in a field or rule config.

    Shared by schema field definitions (choices under ``options``) and
    field_validation rules (choices under ``allowed_values``). An empty list
    means the row checks can evaluate the config as stored.
    """

    problems: list[str] = []
    low, high = config.get("min_length"), config.get("max_length")
    for key, bound in (("min_length", low), ("max_length", high)):
        if bound is not None and length_bound(bound) is None:
            problems.append(f"{key} must be a non-negative integer.")
    if length_bound(low) is not None and length_bound(high) is not None and low > high:
        problems.append("min_length must not exceed max_length.")

    low, high = config.get("min_value"), config.get("max_value")
    for key, bound in (("min_value", low), ("max_value", high)):
        if bound is not None and parse_number(bound) is None:
            problems.append(f"{key} must be numeric.")
    low_number, high_number = parse_number(low), parse_number(high)
    if low_number is not None and high_number is not None and low_number > high_number:
        problems.append("min_value must not exceed max_value.")

    choices = config.get(choices_key)
    if choices is not None and not isinstance(choices, list):
        problems.append(f"{choices_key} must be a list.")

    pattern = config.get("pattern")
    if pattern is not None:
        try:
            re.compile(pattern)
        except (re.error, TypeError) as exc:
            problems.append(f"pattern is not a valid regular expression ({exc}).")
    return problems


class SchemaRowValidator:
    """
    Validates row documents against an ordered list of schema fields.
    """

    def __init__(self, fields: Sequence[SchemaField]) -> None:
        self._fields = sorted(fields, key=lambda item: item.position)
        self._field_names = {item.name for item in self._fields}

    @property
    def fields(self) -> list[SchemaField]:
        return list(self._fields)

    def unexpected_fields(self, data: Mapping[str, Any]) -> list[str]:
        """
        Return row columns the schema does not define, in row order.
        """

        return [name for name in data if name not in self._field_names]

    def validate_row(self, *, row_index: int, data: Mapping[str, Any]) -> list[RowIssue]:
        issues: list[RowIssue] = []
        for schema_field in self._fields:
            issues.extend(
                self.check_field(
                    schema_field=schema_field,
                    value=data.get(schema_field.name),
                    row_index=row_index,
                )
            )
        for name in self.unexpected_fields(data):
            issues.append(
                RowIssue(
                    row_index=row_index,
                    field=name,
                    code=IssueCode.UNEXPECTED_FIELD,
                    message=f"Column '{name}' is not defined in the dataset schema.",
                    severity=IssueSeverity.WARNING,
                    value=self._stringify_value(data.get(name)),
                )
            )
        return issues

    def check_field(
        self,
        *,
        schema_field: SchemaField,
        value: Any,
        row_index: int,
    ) -> list[RowIssue]:
        """
        Run required, type and config checks for one field value.

        A blank value stops further checks; so does a type mismatch.
        """

        if is_blank(value):
            if schema_field.is_required and schema_field.default_value is None:
                return [
                    RowIssue(
                        row_index=row_index,
                        field=schema_field.name,
                        code=IssueCode.REQUIRED_FIELD,
                        message=f"Field '{schema_field.name}' is required.",
                        value=self._stringify_value(value),
                    )
                ]
            return []

        if not matches_data_type(value, schema_field.data_type):
            return [
                RowIssue(
                    row_index=row_index,
                    field=schema_field.name,
                    code=IssueCode.INVALID_DATA_TYPE,
                    message=(
                        f"Field '{schema_field.name}' must be a valid {schema_field.data_type}."
                    ),
                    value=self._stringify_value(value),
                    expected=EXPECTED_FORMATS.get(schema_field.data_type),
                )
            ]

        return self._check_validation_config(
            schema_field=schema_field,
            value=value,
            row_index=row_index,
        )

    def _check_validation_config(
        self,
        *,
        schema_field: SchemaField,
        value: Any,
        row_index: int,
    ) -> list[RowIssue]:
        config = schema_field.validation or {}
        if not config:
            return []

        issues: list[RowIssue] = []
        text = stringify(value)
        name = schema_field.name

        def _issue(code: str, message: str, expected: str) -> None:
            issues.append(
                RowIssue(
                    row_index=row_index,
                    field=name,
                    code=code,
                    message=message,
                    value=text,
                    expected=expected,
                )
            )

        if schema_field.data_type == FieldDataType.STRING:
            min_length = length_bound(config.get("min_length"))
            max_length = length_bound(config.get("max_length"))
            if min_length is not None and len(text) < min_length:
                _issue(
                    IssueCode.MIN_LENGTH,
                    f"Field '{name}' must be at least {min_length} characters.",
                    f"min {min_length} chars",
                )
            if max_length is not None and len(text) > max_length:
                _issue(
                    IssueCode.MAX_LENGTH,
                    f"Field '{name}' must be at most {max_length} characters.",
                    f"max {max_length} chars",
                )

        if schema_field.data_type == FieldDataType.NUMBER:
            number = parse_number(value)
            min_value = parse_number(config.get("min_value"))
            max_value = parse_number(config.get("max_value"))
            if number is not None and min_value is not None and number < min_value:
                _issue(
                    IssueCode.MIN_VALUE,
                    f"Field '{name}' must be at least {config['min_value']}.",
                    f"min {config['min_value']}",
                )
            if number is not None and max_value is not None and number > max_value:
                _issue(
                    IssueCode.MAX_VALUE,
                    f"Field '{name}' must be at most {config['max_value']}.",
                    f"max {config['max_value']}",
                )

        pattern = config.get("pattern")
        if pattern:
            try:
                matched = re.match(pattern, text) is not None
            except re.error:
                matched = False
            if not matched:
                _issue(
                    IssueCode.PATTERN,
                    f"Field '{name}' does not match required pattern.",
                    pattern,
                )

        options = config.get("options")
        if isinstance(options, list) and options and text not in {str(item) for item in options}:
            allowed = ", ".join(str(option) for option in options)
            _issue(
                IssueCode.INVALID_OPTION,
                f"Field '{name}' must be one of: {allowed}.",
                allowed,
            )

        return issues

    @staticmethod
    def _stringify_value(value: Any) -> str | None:
        if value is None:
            return None
        return stringify(value)
