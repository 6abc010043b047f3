"""
tests/test_schema_inference.py

Pytest unit tests for SchemaInferenceService. Pure Python, no database.
"""

from __future__ import annotations

import pytest

from app.services.schema_inference import SchemaInferenceService, sanitize_field_name
from db.models.dataset_schema import FieldDataType


@pytest.fixture()
def svc() -> SchemaInferenceService:
    return SchemaInferenceService()


# ---------------------------------------------------------------------------
# Column typing
# ---------------------------------------------------------------------------


class TestColumnTyping:
    @pytest.mark.parametrize(
        "values, expected",
        [
            (["1", "2.5", "-3"], FieldDataType.NUMBER),
            (["true", "False", "TRUE"], FieldDataType.BOOLEAN),
            (["2024-01-01", "02/15/2024", "2024-03-01 08:00:00"], FieldDataType.DATE),
            (["a@x.io", "b@y.org"], FieldDataType.EMAIL),
            (["https://a.io", "http://b.org/path"], FieldDataType.URL),
            (["red", "green"], FieldDataType.STRING),
        ],
    )
    def test_detects_type(self, svc: SchemaInferenceService, values: list[str], expected: str) -> None:
        assert svc.analyze_column("col", values).data_type == expected

    def test_digits_zero_and_one_prefer_number(self, svc: SchemaInferenceService) -> None:
        assert svc.analyze_column("flag", ["0", "1", "1"]).data_type == FieldDataType.NUMBER

    def test_below_threshold_falls_back_to_string(self, svc: SchemaInferenceService) -> None:
        inferred = svc.analyze_column("mixed", ["1", "2", "3", "x", "y"])
        assert inferred.data_type == FieldDataType.STRING
        assert inferred.confidence == 0.7

    def test_eighty_percent_is_enough(self, svc: SchemaInferenceService) -> None:
        inferred = svc.analyze_column("mostly", ["1", "2", "3", "4", "n/a"])
        assert inferred.data_type == FieldDataType.NUMBER
        assert inferred.confidence == 0.8

    def test_empty_column(self, svc: SchemaInferenceService) -> None:
        inferred = svc.analyze_column("blank", [None, "", "  "])
        assert inferred.data_type == FieldDataType.STRING
        assert inferred.confidence == 0.1
        assert inferred.is_required is False
        assert inferred.sample_values == []


# ---------------------------------------------------------------------------
# Required flag, constraints and samples
# ---------------------------------------------------------------------------


class TestColumnDetails:
    def test_required_needs_more_than_ninety_percent(self, svc: SchemaInferenceService) -> None:
        ten = [str(index) for index in range(10)]
        assert svc.analyze_column("full", ten).is_required is True
        assert svc.analyze_column("gappy", ten[:9] + [None]).is_required is False

    def test_number_constraints(self, svc: SchemaInferenceService) -> None:
        inferred = svc.analyze_column("qty", ["3", "10", "7"])
        assert inferred.constraints == {"min": 3.0, "max": 10.0, "integer": True}

    def test_string_constraints(self, svc: SchemaInferenceService) -> None:
        inferred = svc.analyze_column("name", ["Al", "Beatrice"])
        assert inferred.constraints == {"min_length": 2, "max_length": 8}

    def test_date_format_is_most_common(self, svc: SchemaInferenceService) -> None:
        inferred = svc.analyze_column("day", ["2024-01-01", "2024-01-02", "01/03/2024"])
        assert inferred.constraints == {"format": "%Y-%m-%d"}

    def test_samples_are_first_five_non_empty(self, svc: SchemaInferenceService) -> None:
        inferred = svc.analyze_column("n", [None, "1", "2", "3", "4", "5", "6"])
        assert inferred.sample_values == ["1", "2", "3", "4", "5"]

    def test_suggested_name_is_sanitized_but_name_is_raw(self, svc: SchemaInferenceService) -> None:
        inferred = svc.analyze_column("Unit Price ($)", ["1"])
        assert inferred.name == "Unit Price ($)"
        assert inferred.suggested_name == "unit_price"


# ---------------------------------------------------------------------------
# Whole schema
# ---------------------------------------------------------------------------


class TestInferSchema:
    def test_infer_schema(self, svc: SchemaInferenceService) -> None:
        rows = [
            {"id": "1", "email": "a@x.io", "price": "9.99"},
            {"id": "2", "email": "b@x.io", "price": "19.5"},
        ]

        schema = svc.infer(headers=["id", "email", "price"], rows=rows, dataset_name="Q1 Orders")

        assert schema.name == "q1_orders_schema"
        assert schema.row_count == 2
        assert [item.data_type for item in schema.fields] == [
            FieldDataType.NUMBER,
            FieldDataType.EMAIL,
            FieldDataType.NUMBER,
        ]
        assert schema.confidence == 1.0

    def test_field_definitions_carry_numeric_bounds(self, svc: SchemaInferenceService) -> None:
        schema = svc.infer(
            headers=["price", "label"],
            rows=[{"price": "2", "label": "a"}, {"price": "8", "label": "b"}],
            dataset_name="prices",
        )

        definitions = schema.to_field_definitions()

        assert [item.position for item in definitions] == [0, 1]
        assert definitions[0].validation == {"min_value": 2.0, "max_value": 8.0}
        assert definitions[1].validation == {}
        assert all(item.is_required for item in definitions)

    def test_no_columns(self, svc: SchemaInferenceService) -> None:
        schema = svc.infer(headers=[], rows=[], dataset_name="empty")
        assert schema.fields == []
        assert schema.confidence == 0.0


def test_sanitize_field_name() -> None:
    assert sanitize_field_name("  Order  ID ") == "order_id"
    assert sanitize_field_name("%%%") == "field"
