"""
app/api/routers/business_rules.py

Business rule endpoints. Writes require the admin role.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from app.api.dependencies import get_business_rule_service, get_current_actor
from app.api.errors import translate_errors
from app.domain.actor import Actor
from app.schemas.business_rules import (
    BusinessRuleCreateRequest,
    BusinessRuleResponse,
    BusinessRuleUpdateRequest,
)
from app.services.business_rule_service import BusinessRuleService

router = APIRouter(prefix="/datasets/{dataset_id}/rules", tags=["business-rules"])


@router.post("", response_model=BusinessRuleResponse, status_code=status.HTTP_201_CREATED)
def create_rule(
    dataset_id: UUID,
    body: BusinessRuleCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: BusinessRuleService = Depends(get_business_rule_service),
) -> BusinessRuleResponse:
    with translate_errors():
        rule = service.create_rule(
            actor,
            dataset_id,
            rule_name=body.rule_name,
            rule_type=body.rule_type,
            rule_config=body.rule_config,
            error_message=body.error_message,
            priority=body.priority,
            is_active=body.is_active,
        )
    return BusinessRuleResponse.model_validate(rule)


@router.get("", response_model=list[BusinessRuleResponse])
def list_rules(
    dataset_id: UUID,
    active_only: bool = Query(default=True),
    actor: Actor = Depends(get_current_actor),
    service: BusinessRuleService = Depends(get_business_rule_service),
) -> list[BusinessRuleResponse]:
    with translate_errors():
        rules = service.list_rules(actor, dataset_id, active_only=active_only)
    return [BusinessRuleResponse.model_validate(item) for item in rules]


@router.patch("/{rule_id}", response_model=BusinessRuleResponse)
def update_rule(
    dataset_id: UUID,
    rule_id: UUID,
    body: BusinessRuleUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: BusinessRuleService = Depends(get_business_rule_service),
) -> BusinessRuleResponse:
    with translate_errors():
        rule = service.update_rule(
            actor,
            dataset_id,
            rule_id,
            changes=body.model_dump(exclude_unset=True),
        )
    return BusinessRuleResponse.model_validate(rule)


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(
    dataset_id: UUID,
    rule_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: BusinessRuleService = Depends(get_business_rule_service),
) -> Response:
    with translate_errors():
        service.delete_rule(actor, dataset_id, rule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
