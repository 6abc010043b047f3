"""
Request and response schemas for project endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from db.models.project import MemberRole, MemberStatus


class ProjectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class ProjectUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=1000)


class ProjectResponse(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    owner_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectMemberCreateRequest(BaseModel):
    user_id: UUID
    role: str = MemberRole.COLLABORATOR
    status: str = MemberStatus.PENDING


class InvitationResponseRequest(BaseModel):
    accept: bool


class ProjectMemberResponse(BaseModel):
    id: UUID
    project_id: UUID
    user_id: UUID
    role: str
    status: str
    invited_by: UUID | None = None
    invited_at: datetime | None = None
    joined_at: datetime | None = None
    permissions: dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}
