"""
Schemas for business rule endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from db.models.business_rule import DEFAULT_RULE_PRIORITY


class BusinessRuleCreateRequest(BaseModel):
    rule_name: str = Field(..., min_length=1, max_length=255)
    rule_type: str
    rule_config: dict[str, Any] = Field(default_factory=dict)
    error_message: str = Field(..., min_length=1)
    priority: int = DEFAULT_RULE_PRIORITY
    is_active: bool = True


class BusinessRuleUpdateRequest(BaseModel):
    rule_name: str | None = None
    rule_type: str | None = None
    rule_config: dict[str, Any] | None = None
    error_message: str | None = None
    priority: int | None = None
    is_active: bool | None = None


class BusinessRuleResponse(BaseModel):
    id: UUID
    dataset_id: UUID
    rule_name: str
    rule_type: str
    rule_config: dict[str, Any]
    error_message: str
    is_active: bool
    priority: int
    created_by: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
