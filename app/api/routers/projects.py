"""
app/api/routers/projects.py

Project and membership endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.api.dependencies import get_current_actor, get_project_service
from app.api.errors import translate_errors
from app.domain.actor import Actor
from app.schemas.projects import (
    InvitationResponseRequest,
    ProjectCreateRequest,
    ProjectMemberCreateRequest,
    ProjectMemberResponse,
    ProjectResponse,
    ProjectUpdateRequest,
)
from app.services.project_service import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(
    body: ProjectCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    with translate_errors():
        project = service.create_project(actor, name=body.name, description=body.description)
    return ProjectResponse.model_validate(project)


@router.get("", response_model=list[ProjectResponse])
def list_projects(
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> list[ProjectResponse]:
    """
    Projects the caller owns or has accepted membership in.
    """

    return [ProjectResponse.model_validate(item) for item in service.list_projects(actor)]


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    with translate_errors():
        project = service.get_project(actor, project_id)
    return ProjectResponse.model_validate(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: UUID,
    body: ProjectUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    with translate_errors():
        project = service.update_project(actor, project_id, name=body.name, description=body.description)
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> Response:
    with translate_errors():
        service.delete_project(actor, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/members", response_model=list[ProjectMemberResponse])
def list_members(
    project_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> list[ProjectMemberResponse]:
    with translate_errors():
        members = service.list_members(actor, project_id)
    return [ProjectMemberResponse.model_validate(item) for item in members]


@router.post(
    "/{project_id}/members",
    response_model=ProjectMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_member(
    project_id: UUID,
    body: ProjectMemberCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectMemberResponse:
    with translate_errors():
        member = service.add_member(
            actor,
            project_id,
            user_id=body.user_id,
            role=body.role,
            status=body.status,
        )
    return ProjectMemberResponse.model_validate(member)


@router.post("/{project_id}/invitation", response_model=ProjectMemberResponse)
def respond_to_invitation(
    project_id: UUID,
    body: InvitationResponseRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProjectService = Depends(get_project_service),
) -> ProjectMemberResponse:
    with translate_errors():
        member = service.respond_to_invitation(actor, project_id, accept=body.accept)
    return ProjectMemberResponse.model_validate(member)
