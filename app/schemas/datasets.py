"""
Response and request schemas for dataset and dataset row endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.dataset_schemas import DatasetSchemaResponse


class DatasetResponse(BaseModel):
    id: UUID
    project_id: UUID
    name: str
    description: str | None = None
    file_name: str
    file_size: int
    mime_type: str
    row_count: int
    column_count: int
    status: str
    uploaded_by: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DatasetRowResponse(BaseModel):
    id: UUID
    row_index: int
    data: dict[str, Any]
    version: int
    created_by: UUID
    updated_by: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DatasetRowPageResponse(BaseModel):
    dataset_id: UUID
    rows: list[DatasetRowResponse] = Field(default_factory=list)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)
    filters: dict[str, str] = Field(default_factory=dict)
    dataset_schema: DatasetSchemaResponse | None = None


class DatasetRowUpdateRequest(BaseModel):
    data: dict[str, Any]


class DatasetRowQueryRequest(BaseModel):
    filters: dict[str, str] = Field(default_factory=dict)
    page: int = 1
    page_size: int = 50
