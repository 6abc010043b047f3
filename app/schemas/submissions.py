"""
Schemas for submission intake, review and staging row endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class SubmissionResponse(BaseModel):
    id: UUID
    dataset_id: UUID
    submitted_by: UUID
    file_name: str
    file_size: int
    row_count: int
    status: str
    validation_results: dict[str, Any] | None = None
    admin_notes: str | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    submitted_at: datetime
    applied_at: datetime | None = None

    model_config = {"from_attributes": True}


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionResponse] = Field(default_factory=list)


class StagingRowResponse(BaseModel):
    id: UUID
    row_index: int
    data: dict[str, Any]
    validation_status: str
    validation_errors: list[dict[str, Any]] | None = None

    model_config = {"from_attributes": True}


class StagingRowUpdateRequest(BaseModel):
    data: dict[str, Any]


class SubmissionDetailResponse(BaseModel):
    submission: SubmissionResponse
    staging_rows: list[StagingRowResponse] = Field(default_factory=list)
    total_staged: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)


class ReviewRequest(BaseModel):
    decision: str = Field(..., description="'approve' or 'reject'")
    admin_notes: str | None = None


class ReviewResponse(BaseModel):
    submission: SubmissionResponse
    apply_error: str | None = None
