"""
tests/test_submission_validator.py

Pytest unit tests for the whole-submission validation pass.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import pytest

from app.domain.validation import IssueCode
from app.validators.submission_validator import (
    StagedRowInput,
    SubmissionValidator,
    build_existing_keys,
    unique_field_names,
)
from db.models.business_rule import BusinessRule, RuleType
from db.models.data_submission import ValidationStatus
from db.models.dataset_schema import FieldDataType, SchemaField


def _field(name: str, data_type: str, position: int, **kwargs: Any) -> SchemaField:
    return SchemaField(
        name=name,
        display_name=name,
        data_type=data_type,
        is_required=kwargs.get("is_required", False),
        is_unique=kwargs.get("is_unique", False),
        default_value=kwargs.get("default_value"),
        position=position,
        validation=kwargs.get("validation", {}),
    )


def _rows(*documents: dict[str, Any]) -> list[StagedRowInput]:
    return [StagedRowInput(row_index=index, data=data) for index, data in enumerate(documents)]


@pytest.fixture()
def fields() -> list[SchemaField]:
    return [
        _field("order_id", FieldDataType.NUMBER, 0, is_required=True, is_unique=True),
        _field("customer", FieldDataType.STRING, 1, is_required=True),
        _field("amount", FieldDataType.NUMBER, 2, validation={"min_value": 0}),
    ]


@pytest.fixture()
def amount_cap() -> BusinessRule:
    return BusinessRule(
        id=uuid.uuid4(),
        rule_name="amount_cap",
        rule_type=RuleType.RANGE_CHECK,
        rule_config={"field_name": "amount", "max_value": 500, "severity": "warning"},
        error_message="Amount above 500 needs a second look.",
        priority=10,
        is_active=True,
    )


# ---------------------------------------------------------------------------
# Row statuses and summary counts
# ---------------------------------------------------------------------------


class TestValidationPass:
    def test_statuses_and_counts(self, fields: list[SchemaField], amount_cap: BusinessRule) -> None:
        validator = SubmissionValidator(fields=fields, rules=[amount_cap])

        outcomes, summary = validator.validate(
            _rows(
                {"order_id": "1", "customer": "Ada", "amount": "20"},
                {"order_id": "2", "customer": "", "amount": "30"},
                {"order_id": "3", "customer": "Lin", "amount": "900"},
            )
        )

        assert [outcome.status for outcome in outcomes] == [
            ValidationStatus.VALID,
            ValidationStatus.INVALID,
            ValidationStatus.WARNING,
        ]
        assert (summary.total_rows, summary.valid_rows, summary.invalid_rows, summary.warning_rows) == (3, 1, 1, 1)
        assert not summary.is_valid
        assert [issue.code for issue in summary.schema_errors] == [IssueCode.REQUIRED_FIELD]
        assert [issue.rule_name for issue in summary.business_rule_errors] == ["amount_cap"]

    def test_duplicates_within_submission_and_against_dataset(self, fields: list[SchemaField]) -> None:
        validator = SubmissionValidator(fields=fields, rules=[], existing_keys={"order_id": {repr(1.0)}})

        outcomes, summary = validator.validate(
            _rows(
                {"order_id": "1", "customer": "Ada"},
                {"order_id": "2", "customer": "Bo"},
                {"order_id": "2.0", "customer": "Cy"},
            )
        )

        assert [outcome.status for outcome in outcomes] == [
            ValidationStatus.INVALID,
            ValidationStatus.VALID,
            ValidationStatus.INVALID,
        ]
        assert {issue.code for issue in summary.schema_errors} == {IssueCode.DUPLICATE_VALUE}

    def test_field_stats(self, fields: list[SchemaField]) -> None:
        _, summary = SubmissionValidator(fields=fields, rules=[]).validate(
            _rows(
                {"order_id": "1", "customer": "Ada", "amount": "-5"},
                {"order_id": "2", "customer": "Ada"},
            )
        )

        assert summary.field_stats["customer"].to_dict() == {
            "total_values": 2,
            "unique_values": 1,
            "null_values": 0,
            "invalid_values": 0,
        }
        assert summary.field_stats["amount"].null_values == 1
        assert summary.field_stats["amount"].invalid_values == 1

    def test_unexpected_fields_are_reported_once(self, fields: list[SchemaField]) -> None:
        outcomes, summary = SubmissionValidator(fields=fields, rules=[]).validate(
            _rows(
                {"order_id": "1", "customer": "Ada", "color": "red"},
                {"order_id": "2", "customer": "Bo", "color": "blue"},
            )
        )
        assert summary.unexpected_fields == ["color"]
        assert all(outcome.status == ValidationStatus.WARNING for outcome in outcomes)

    def test_without_schema_only_rules_run(self, amount_cap: BusinessRule) -> None:
        outcomes, summary = SubmissionValidator(fields=[], rules=[amount_cap]).validate(
            _rows({"anything": "goes"}, {"amount": "501"})
        )
        assert not summary.schema_applied
        assert summary.field_stats == {}
        assert [outcome.status for outcome in outcomes] == [ValidationStatus.VALID, ValidationStatus.WARNING]

    def test_each_call_starts_fresh(self, fields: list[SchemaField]) -> None:
        validator = SubmissionValidator(fields=fields, rules=[])
        rows = _rows({"order_id": "1", "customer": "Ada"})
        first, _ = validator.validate(rows)
        second, _ = validator.validate(rows)
        assert first[0].status == second[0].status == ValidationStatus.VALID


# ---------------------------------------------------------------------------
# Results document
# ---------------------------------------------------------------------------


class TestResultsDocument:
    def test_error_lists_are_capped(self, fields: list[SchemaField]) -> None:
        _, summary = SubmissionValidator(fields=fields, rules=[]).validate(
            _rows(*({"order_id": str(index), "customer": ""} for index in range(5)))
        )

        results = summary.to_results(max_errors=2, validated_at=datetime(2026, 1, 1, tzinfo=timezone.utc))

        assert results["invalid_rows"] == 5
        assert len(results["schema_errors"]) == 2
        assert results["truncated"] is True
        assert results["validated_at"] == "2026-01-01T00:00:00+00:00"
        assert results["schema_errors"][0] == {
            "row_index": 0,
            "field": "customer",
            "code": IssueCode.REQUIRED_FIELD,
            "message": "Field 'customer' is required.",
            "severity": "error",
            "value": "",
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_unique_field_names_merges_schema_and_rules(self, fields: list[SchemaField]) -> None:
        rules = [
            BusinessRule(rule_name="sku", rule_type=RuleType.UNIQUE, rule_config={"field_name": "sku"}, is_active=True),
            BusinessRule(rule_name="old", rule_type=RuleType.UNIQUE, rule_config={"field_name": "legacy"}, is_active=False),
        ]
        assert unique_field_names(fields, rules) == {"order_id", "sku"}

    def test_build_existing_keys(self) -> None:
        keys = build_existing_keys(
            [{"id": 1, "sku": "A"}, {"id": "2", "sku": None}],
            ["id", "sku"],
            {"id": FieldDataType.NUMBER},
        )
        assert keys == {"id": {repr(1.0), repr(2.0)}, "sku": {"A"}}
