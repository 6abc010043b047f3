"""
app/api/routers/schemas.py

Dataset schema endpoints: define, update, reorder and infer.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from app.api.dependencies import get_current_actor, get_schema_service
from app.api.errors import translate_errors
from app.domain.actor import Actor
from app.schemas.dataset_schemas import (
    DatasetSchemaResponse,
    FieldSwapRequest,
    InferredFieldResponse,
    InferredSchemaResponse,
    SchemaCreateRequest,
    SchemaUpdateRequest,
    to_field_definitions,
)
from app.services.schema_service import SchemaService

router = APIRouter(prefix="/datasets/{dataset_id}/schema", tags=["schemas"])


@router.post("", response_model=DatasetSchemaResponse, status_code=status.HTTP_201_CREATED)
def create_schema(
    dataset_id: UUID,
    body: SchemaCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchemaService = Depends(get_schema_service),
) -> DatasetSchemaResponse:
    with translate_errors():
        schema = service.create_schema(
            actor,
            dataset_id,
            name=body.name,
            description=body.description,
            fields=to_field_definitions(body.fields),
        )
    return DatasetSchemaResponse.model_validate(schema)


@router.get("", response_model=DatasetSchemaResponse)
def get_schema(
    dataset_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: SchemaService = Depends(get_schema_service),
) -> DatasetSchemaResponse:
    with translate_errors():
        schema = service.get_schema(actor, dataset_id)
    return DatasetSchemaResponse.model_validate(schema)


@router.put("", response_model=DatasetSchemaResponse)
def update_schema(
    dataset_id: UUID,
    body: SchemaUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchemaService = Depends(get_schema_service),
) -> DatasetSchemaResponse:
    """
    Update name/description; a `fields` list replaces all existing fields.
    """

    with translate_errors():
        schema = service.update_schema(
            actor,
            dataset_id,
            name=body.name,
            description=body.description,
            fields=to_field_definitions(body.fields) if body.fields is not None else None,
        )
    return DatasetSchemaResponse.model_validate(schema)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def delete_schema(
    dataset_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: SchemaService = Depends(get_schema_service),
) -> Response:
    with translate_errors():
        service.delete_schema(actor, dataset_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/fields/swap", response_model=DatasetSchemaResponse)
def swap_fields(
    dataset_id: UUID,
    body: FieldSwapRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchemaService = Depends(get_schema_service),
) -> DatasetSchemaResponse:
    with translate_errors():
        schema = service.swap_field_positions(
            actor,
            dataset_id,
            first_field_id=body.first_field_id,
            second_field_id=body.second_field_id,
        )
    return DatasetSchemaResponse.model_validate(schema)


@router.post("/infer", response_model=InferredSchemaResponse)
def infer_schema(
    dataset_id: UUID,
    apply: bool = Query(default=False, description="Create the inferred schema on the dataset"),
    actor: Actor = Depends(get_current_actor),
    service: SchemaService = Depends(get_schema_service),
) -> InferredSchemaResponse:
    with translate_errors():
        inferred, created = service.infer_schema(actor, dataset_id, apply=apply)
    return InferredSchemaResponse(
        name=inferred.name,
        description=inferred.description,
        row_count=inferred.row_count,
        confidence=inferred.confidence,
        fields=[InferredFieldResponse.model_validate(item) for item in inferred.fields],
        created_schema=DatasetSchemaResponse.model_validate(created) if created is not None else None,
    )
