"""
app/services/schema_inference.py

Proposes a dataset schema from stored row documents.

Each column is scored against the supported data types; a type wins when at
least 80% of the non-empty values match it, otherwise the column falls back
to string. A column is marked required when more than 90% of its values are
non-empty.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Sequence

from app.domain.row_document import (
    DATE_FORMATS,
    is_blank,
    matches_data_type,
    parse_number,
    stringify,
)
from db.models.dataset_schema import FieldDataType
from db.repositories.types import FieldDefinition

logger = logging.getLogger(__name__)

TYPE_THRESHOLD = 0.8
REQUIRED_THRESHOLD = 0.9
STRING_FALLBACK_CONFIDENCE = 0.7
LOW_CONFIDENCE = 0.1
SAMPLE_SIZE = 5

# Candidate order also breaks ties between equally scored types.
CANDIDATE_TYPES: tuple[str, ...] = (
    FieldDataType.NUMBER,
    FieldDataType.BOOLEAN,
    FieldDataType.DATE,
    FieldDataType.EMAIL,
    FieldDataType.URL,
)


def sanitize_field_name(name: str) -> str:
    sanitized = re.sub(r"[^a-z0-9_]", "_", name.lower())
    sanitized = re.sub(r"_+", "_", sanitized).strip("_")
    return sanitized or "field"


def _date_format(value: str) -> str | None:
    for fmt in DATE_FORMATS:
        try:
            datetime.strptime(value, fmt)
        except ValueError:
            continue
        return fmt
    return None


@dataclass(frozen=True)
class InferredField:
    name: str
    display_name: str
    suggested_name: str
    data_type: str
    is_required: bool
    confidence: float
    constraints: dict[str, Any] = field(default_factory=dict)
    sample_values: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class InferredSchema:
    name: str
    description: str
    fields: list[InferredField]
    row_count: int
    confidence: float

    def to_field_definitions(self) -> list[FieldDefinition]:
        """
        Convert to schema field definitions; inferred bounds become validation config.
        """

        definitions: list[FieldDefinition] = []
        for position, inferred in enumerate(self.fields):
            validation: dict[str, Any] = {}
            if inferred.data_type == FieldDataType.NUMBER:
                validation = {
                    key: inferred.constraints[source]
                    for key, source in (("min_value", "min"), ("max_value", "max"))
                    if source in inferred.constraints
                }
            definitions.append(
                FieldDefinition(
                    name=inferred.name,
                    display_name=inferred.display_name,
                    data_type=inferred.data_type,
                    position=position,
                    is_required=inferred.is_required,
                    validation=validation,
                )
            )
        return definitions


class SchemaInferenceService:
    """
    Column-by-column type inference over row documents.
    """

    def infer(
        self,
        *,
        headers: Sequence[str],
        rows: Iterable[Mapping[str, Any]],
        dataset_name: str,
    ) -> InferredSchema:
        row_list = list(rows)
        fields = [
            self.analyze_column(header, [row.get(header) for row in row_list])
            for header in headers
        ]
        overall = sum(item.confidence for item in fields) / len(fields) if fields else 0.0

        logger.info(
            "Schema inferred dataset=%s columns=%d rows=%d confidence=%.2f",
            dataset_name,
            len(fields),
            len(row_list),
            overall,
        )
        return InferredSchema(
            name=f"{sanitize_field_name(dataset_name)}_schema",
            description=f"Auto-inferred schema for dataset '{dataset_name}'",
            fields=fields,
            row_count=len(row_list),
            confidence=round(overall, 4),
        )

    def analyze_column(self, header: str, values: Sequence[Any]) -> InferredField:
        non_empty = [stringify(value) for value in values if not is_blank(value)]
        is_required = bool(values) and len(non_empty) / len(values) > REQUIRED_THRESHOLD
        samples = non_empty[:SAMPLE_SIZE]

        if not non_empty:
            return InferredField(
                name=header,
                display_name=header,
                suggested_name=sanitize_field_name(header),
                data_type=FieldDataType.STRING,
                is_required=is_required,
                confidence=LOW_CONFIDENCE,
                sample_values=samples,
            )

        data_type, confidence = self._best_type(non_empty)
        return InferredField(
            name=header,
            display_name=header,
            suggested_name=sanitize_field_name(header),
            data_type=data_type,
            is_required=is_required,
            confidence=round(confidence, 4),
            constraints=self._constraints(data_type, non_empty),
            sample_values=samples,
        )

    @staticmethod
    def _best_type(values: Sequence[str]) -> tuple[str, float]:
        best_type = FieldDataType.STRING
        best_score = 0
        for candidate in CANDIDATE_TYPES:
            score = sum(1 for value in values if matches_data_type(value, candidate))
            if score > best_score:
                best_type, best_score = candidate, score

        if best_score == 0:
            return FieldDataType.STRING, LOW_CONFIDENCE
        confidence = best_score / len(values)
        if confidence < TYPE_THRESHOLD:
            return FieldDataType.STRING, STRING_FALLBACK_CONFIDENCE
        return best_type, confidence

    @staticmethod
    def _constraints(data_type: str, values: Sequence[str]) -> dict[str, Any]:
        if data_type == FieldDataType.NUMBER:
            numbers = [number for number in map(parse_number, values) if number is not None]
            if not numbers:
                return {}
            return {
                "min": min(numbers),
                "max": max(numbers),
                "integer": all(number.is_integer() for number in numbers),
            }

        if data_type == FieldDataType.STRING:
            lengths = [len(value) for value in values]
            return {"min_length": min(lengths), "max_length": max(lengths)}

        if data_type == FieldDataType.DATE:
            formats: dict[str, int] = {}
            for value in values:
                fmt = _date_format(value)
                if fmt is not None:
                    formats[fmt] = formats.get(fmt, 0) + 1
            if formats:
                return {"format": max(formats, key=formats.__getitem__)}

        return {}
