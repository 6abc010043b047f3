"""
app/validators/business_rules.py

Business rule evaluation for staged rows.

Rules run per row in ascending priority (ties broken by rule name). Each rule
targets a field key; once a rule fails for a key, lower-priority rules on the
same key are not evaluated for that row.
"""

from __future__ import annotations

import logging
import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from app.domain.row_document import (
    is_blank,
    matches_data_type,
    parse_number,
    stringify,
    uniqueness_key,
)
from app.domain.validation import IssueCode, IssueSeverity, RowIssue
from app.validators.row_validator import constraint_config_problems, length_bound
from db.models.business_rule import DEFAULT_RULE_PRIORITY, BusinessRule, RuleType
from db.models.dataset_schema import FieldDataType

logger = logging.getLogger(__name__)

EVALUATED_RULE_TYPES = frozenset(
    {
        RuleType.REQUIRED,
        RuleType.FIELD_VALIDATION,
        RuleType.RANGE_CHECK,
        RuleType.UNIQUE,
        RuleType.CROSS_FIELD,
    }
)
FIELD_RULE_TYPES = EVALUATED_RULE_TYPES - {RuleType.CROSS_FIELD}
SEVERITIES = frozenset({IssueSeverity.ERROR, IssueSeverity.WARNING})

COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
}
CONDITION_PATTERN = re.compile(r"^\s*(?P<left>.+?)\s*(?P<op>>=|<=|==|!=|>|<)\s*(?P<right>.+?)\s*$")


class RuleConfigError(ValueError):
    """Raised when a business rule definition cannot be evaluated."""


@dataclass(frozen=True)
class CrossFieldCondition:
    left: str
    op: str
    right: str

    def evaluate(self, data: Mapping[str, Any]) -> bool:
        left_value = data.get(self.left)
        if self.right in data:
            right_value = data.get(self.right)
        else:
            right_value = self.right.strip("'\"")

        # Missing operands cannot be compared; the row passes.
        if is_blank(left_value) or is_blank(right_value):
            return True

        compare = COMPARATORS[self.op]
        left_number = parse_number(left_value)
        right_number = parse_number(right_value)
        if left_number is not None and right_number is not None:
            return compare(left_number, right_number)
        return compare(stringify(left_value), stringify(right_value))


def parse_condition(condition: Any) -> CrossFieldCondition | None:
    if not isinstance(condition, str):
        return None
    match = CONDITION_PATTERN.match(condition)
    if match is None:
        return None
    return CrossFieldCondition(
        left=match.group("left"),
        op=match.group("op"),
        right=match.group("right"),
    )


def rule_severity(rule: BusinessRule) -> str:
    severity = str((rule.rule_config or {}).get("severity", IssueSeverity.ERROR)).lower()
    return severity if severity in SEVERITIES else IssueSeverity.ERROR


def rule_target_key(rule: BusinessRule) -> str:
    """
    Field key a rule is attached to; cross-field rules use their joined fields.
    """

    config = rule.rule_config or {}
    if rule.rule_type == RuleType.CROSS_FIELD:
        fields = config.get("fields") or []
        if fields:
            return ", ".join(str(item) for item in fields)
        return str(config.get("condition", rule.rule_name))
    return str(config.get("field_name", ""))


def _evaluation_order(rule: BusinessRule) -> tuple[int, str]:
    priority = rule.priority if rule.priority is not None else DEFAULT_RULE_PRIORITY
    return priority, rule.rule_name


def validate_rule_config(rule_type: str, config: Mapping[str, Any]) -> None:
    """
    Check that a rule definition is well-formed before it is stored.
    """

    if rule_type not in RuleType.ALL:
        allowed = ", ".join(RuleType.ALL)
        raise RuleConfigError(f"Unsupported rule_type '{rule_type}'. Allowed: {allowed}.")

    if not isinstance(config, Mapping):
        raise RuleConfigError("rule_config must be an object.")

    severity = config.get("severity")
    if severity is not None and str(severity).lower() not in SEVERITIES:
        raise RuleConfigError("severity must be 'error' or 'warning'.")

    if rule_type in FIELD_RULE_TYPES:
        field_name = config.get("field_name")
        if not isinstance(field_name, str) or not field_name.strip():
            raise RuleConfigError(f"{rule_type} rules require a field_name.")

    if rule_type == RuleType.RANGE_CHECK:
        bounds = [config.get("min_value"), config.get("max_value")]
        if all(bound is None for bound in bounds):
            raise RuleConfigError("range_check rules require min_value or max_value.")

    if rule_type == RuleType.FIELD_VALIDATION:
        data_type = config.get("data_type")
        if data_type is not None and data_type not in FieldDataType.ALL:
            raise RuleConfigError(f"Unsupported data_type '{data_type}'.")

    if rule_type in (RuleType.FIELD_VALIDATION, RuleType.RANGE_CHECK):
        problems = constraint_config_problems(config, choices_key="allowed_values")
        if problems:
            raise RuleConfigError(f"Invalid {rule_type} config: {' '.join(problems)}")

    if rule_type == RuleType.CROSS_FIELD and parse_condition(config.get("condition")) is None:
        raise RuleConfigError(
            "cross_field rules require a condition like 'end_date > start_date'."
        )


class BusinessRuleEvaluator:
    """
    Evaluates the active rules of one dataset against staged rows.

    The evaluator is stateful across rows: ``unique`` rules remember every
    value seen so far, so rows must be fed in staging order.
    """

    def __init__(
        self,
        rules: Sequence[BusinessRule],
        *,
        existing_keys: Mapping[str, set[str]] | None = None,
        field_types: Mapping[str, str] | None = None,
    ) -> None:
        self._existing_keys = existing_keys or {}
        self._field_types = field_types or {}
        self._skipped: list[dict[str, str]] = []
        self._conditions: dict[int, CrossFieldCondition] = {}
        self._seen: dict[int, set[str]] = {}

        evaluated: list[BusinessRule] = []
        for rule in rules:
            if rule.is_active is False:
                continue
            if rule.rule_type not in EVALUATED_RULE_TYPES:
                self._skip(rule, "rule type is not evaluated")
                continue
            if rule.rule_type == RuleType.CROSS_FIELD:
                condition = parse_condition((rule.rule_config or {}).get("condition"))
                if condition is None:
                    self._skip(rule, "condition could not be parsed")
                    continue
                self._conditions[id(rule)] = condition
            if rule.rule_type == RuleType.UNIQUE:
                self._seen[id(rule)] = set()
            evaluated.append(rule)

        self._rules = sorted(evaluated, key=_evaluation_order)

    @property
    def rules(self) -> list[BusinessRule]:
        return list(self._rules)

    @property
    def skipped_rules(self) -> list[dict[str, str]]:
        return list(self._skipped)

    def evaluate_row(self, *, row_index: int, data: Mapping[str, Any]) -> list[RowIssue]:
        issues: list[RowIssue] = []
        failed_keys: set[str] = set()

        for rule in self._rules:
            key = rule_target_key(rule)
            if key in failed_keys:
                continue
            if self._passes(rule, data):
                continue
            failed_keys.add(key)
            config = rule.rule_config or {}
            issues.append(
                RowIssue(
                    row_index=row_index,
                    field=key,
                    code=self._issue_code(rule.rule_type),
                    message=rule.error_message,
                    severity=rule_severity(rule),
                    value=self._value_for(rule, data, config),
                    rule_id=str(rule.id) if rule.id is not None else None,
                    rule_name=rule.rule_name,
                )
            )
        return issues

    def _passes(self, rule: BusinessRule, data: Mapping[str, Any]) -> bool:
        config = rule.rule_config or {}
        rule_type = rule.rule_type

        if rule_type == RuleType.CROSS_FIELD:
            return self._conditions[id(rule)].evaluate(data)

        value = data.get(str(config.get("field_name", "")))

        if rule_type == RuleType.REQUIRED:
            return not is_blank(value)

        if is_blank(value):
            return True

        if rule_type == RuleType.RANGE_CHECK:
            return self._within_range(value, config)
        if rule_type == RuleType.FIELD_VALIDATION:
            return self._field_validation_passes(value, config)
        if rule_type == RuleType.UNIQUE:
            return self._unique_passes(rule, value, config)
        return True

    @staticmethod
    def _within_range(value: Any, config: Mapping[str, Any]) -> bool:
        number = parse_number(value)
        if number is None:
            return True
        min_value = parse_number(config.get("min_value"))
        max_value = parse_number(config.get("max_value"))
        if min_value is not None and number < min_value:
            return False
        if max_value is not None and number > max_value:
            return False
        return True

    @staticmethod
    def _field_validation_passes(value: Any, config: Mapping[str, Any]) -> bool:
        text = stringify(value)
        data_type = config.get("data_type")
        if data_type and not matches_data_type(value, data_type):
            return False
        pattern = config.get("pattern")
        if pattern:
            try:
                if re.match(pattern, text) is None:
                    return False
            except re.error:
                return False
        allowed_values = config.get("allowed_values")
        if isinstance(allowed_values, list) and allowed_values:
            if text not in {str(item) for item in allowed_values}:
                return False
        min_length = length_bound(config.get("min_length"))
        if min_length is not None and len(text) < min_length:
            return False
        max_length = length_bound(config.get("max_length"))
        if max_length is not None and len(text) > max_length:
            return False
        return True

    def _unique_passes(self, rule: BusinessRule, value: Any, config: Mapping[str, Any]) -> bool:
        field_name = str(config.get("field_name", ""))
        key = uniqueness_key(value, self._field_types.get(field_name))
        if key is None:
            return True
        seen = self._seen[id(rule)]
        if key in seen or key in self._existing_keys.get(field_name, set()):
            return False
        seen.add(key)
        return True

    @staticmethod
    def _value_for(rule: BusinessRule, data: Mapping[str, Any], config: Mapping[str, Any]) -> str | None:
        if rule.rule_type == RuleType.CROSS_FIELD:
            return "condition failed"
        value = data.get(str(config.get("field_name", "")))
        return None if value is None else stringify(value)

    @staticmethod
    def _issue_code(rule_type: str) -> str:
        return {
            RuleType.REQUIRED: IssueCode.RULE_REQUIRED,
            RuleType.FIELD_VALIDATION: IssueCode.RULE_FIELD_VALIDATION,
            RuleType.RANGE_CHECK: IssueCode.RULE_RANGE,
            RuleType.UNIQUE: IssueCode.RULE_UNIQUE,
            RuleType.CROSS_FIELD: IssueCode.RULE_CROSS_FIELD,
        }[rule_type]

    def _skip(self, rule: BusinessRule, reason: str) -> None:
        logger.info(
            "Business rule skipped rule_id=%s rule_name=%s rule_type=%s reason=%s",
            rule.id,
            rule.rule_name,
            rule.rule_type,
            reason,
        )
        self._skipped.append(
            {
                "rule_id": str(rule.id),
                "rule_name": rule.rule_name,
                "rule_type": rule.rule_type,
                "reason": reason,
            }
        )
