"""
Schemas for dataset schema definition, update, swap and inference endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from db.repositories.types import FieldDefinition


class SchemaFieldRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    display_name: str | None = None
    data_type: str
    is_required: bool = False
    is_unique: bool = False
    default_value: str | None = None
    position: int | None = None
    validation: dict[str, Any] = Field(default_factory=dict)


def to_field_definitions(fields: list[SchemaFieldRequest]) -> list[FieldDefinition]:
    """
    Fields without an explicit position take their list position.
    """

    return [
        FieldDefinition(
            name=item.name.strip(),
            display_name=item.display_name,
            data_type=item.data_type,
            position=item.position if item.position is not None else index,
            is_required=item.is_required,
            is_unique=item.is_unique,
            default_value=item.default_value,
            validation=dict(item.validation),
        )
        for index, item in enumerate(fields)
    ]


class SchemaCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    fields: list[SchemaFieldRequest] = Field(default_factory=list)


class SchemaUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    fields: list[SchemaFieldRequest] | None = None


class FieldSwapRequest(BaseModel):
    first_field_id: UUID
    second_field_id: UUID


class SchemaFieldResponse(BaseModel):
    id: UUID
    name: str
    display_name: str | None = None
    data_type: str
    is_required: bool
    is_unique: bool
    default_value: str | None = None
    position: int
    validation: dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class DatasetSchemaResponse(BaseModel):
    id: UUID
    dataset_id: UUID
    name: str
    description: str | None = None
    fields: list[SchemaFieldResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class InferredFieldResponse(BaseModel):
    name: str
    display_name: str
    suggested_name: str
    data_type: str
    is_required: bool
    confidence: float
    constraints: dict[str, Any] = Field(default_factory=dict)
    sample_values: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class InferredSchemaResponse(BaseModel):
    name: str
    description: str
    row_count: int
    confidence: float
    fields: list[InferredFieldResponse] = Field(default_factory=list)
    created_schema: DatasetSchemaResponse | None = None
