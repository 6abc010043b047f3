"""
app/api/routers/datasets.py

Dataset upload, lookup and row access endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Form, Query, Response, UploadFile, status

from app.api.dependencies import get_current_actor, get_dataset_service, get_tabular_upload
from app.api.errors import translate_errors
from app.domain.actor import Actor
from app.schemas.dataset_schemas import DatasetSchemaResponse
from app.schemas.datasets import (
    DatasetResponse,
    DatasetRowPageResponse,
    DatasetRowQueryRequest,
    DatasetRowResponse,
    DatasetRowUpdateRequest,
)
from app.services.dataset_service import DEFAULT_PAGE_SIZE, DatasetService, RowPage
from db.repositories.types import UploadFileInput

router = APIRouter(tags=["datasets"])


def _page_response(dataset_id: UUID, page: RowPage) -> DatasetRowPageResponse:
    return DatasetRowPageResponse(
        dataset_id=dataset_id,
        rows=[DatasetRowResponse.model_validate(row) for row in page.rows],
        page=page.page,
        page_size=page.page_size,
        total=page.total,
        total_pages=page.total_pages,
        filters=page.filters,
        dataset_schema=(
            DatasetSchemaResponse.model_validate(page.schema) if page.schema is not None else None
        ),
    )


@router.post(
    "/projects/{project_id}/datasets",
    response_model=DatasetResponse,
    status_code=status.HTTP_201_CREATED,
)
def upload_dataset(
    project_id: UUID,
    file: UploadFile = Depends(get_tabular_upload),
    name: str = Form(...),
    description: str | None = Form(default=None),
    actor: Actor = Depends(get_current_actor),
    service: DatasetService = Depends(get_dataset_service),
) -> DatasetResponse:
    """
    Upload a CSV or Excel file as a new dataset.

    A file that cannot be parsed still yields a dataset, in status `error`.
    """

    try:
        content = file.file.read()
        payload = UploadFileInput(
            project_id=project_id,
            uploaded_by=actor.user_id,
            dataset_name=name,
            file_name=file.filename or "",
            content=content,
            content_type=file.content_type,
            description=description,
        )
        with translate_errors():
            dataset = service.upload_dataset(actor, payload)
    finally:
        file.file.close()

    return DatasetResponse.model_validate(dataset)


@router.get("/projects/{project_id}/datasets", response_model=list[DatasetResponse])
def list_datasets(
    project_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: DatasetService = Depends(get_dataset_service),
) -> list[DatasetResponse]:
    with translate_errors():
        datasets = service.list_datasets(actor, project_id)
    return [DatasetResponse.model_validate(item) for item in datasets]


@router.get("/datasets/{dataset_id}", response_model=DatasetResponse)
def get_dataset(
    dataset_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: DatasetService = Depends(get_dataset_service),
) -> DatasetResponse:
    with translate_errors():
        dataset = service.get_dataset(actor, dataset_id)
    return DatasetResponse.model_validate(dataset)


@router.delete("/datasets/{dataset_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_dataset(
    dataset_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: DatasetService = Depends(get_dataset_service),
) -> Response:
    with translate_errors():
        service.delete_dataset(actor, dataset_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/datasets/{dataset_id}/rows", response_model=DatasetRowPageResponse)
def preview_rows(
    dataset_id: UUID,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: DatasetService = Depends(get_dataset_service),
) -> DatasetRowPageResponse:
    with translate_errors():
        row_page = service.preview_rows(actor, dataset_id, page=page, page_size=page_size)
    return _page_response(dataset_id, row_page)


@router.post("/datasets/{dataset_id}/rows/query", response_model=DatasetRowPageResponse)
def query_rows(
    dataset_id: UUID,
    body: DatasetRowQueryRequest,
    actor: Actor = Depends(get_current_actor),
    service: DatasetService = Depends(get_dataset_service),
) -> DatasetRowPageResponse:
    """
    Rows whose fields equal every given filter value.
    """

    with translate_errors():
        row_page = service.preview_rows(
            actor,
            dataset_id,
            page=body.page,
            page_size=body.page_size,
            filters=body.filters,
        )
    return _page_response(dataset_id, row_page)


@router.put("/datasets/{dataset_id}/rows/{row_index}", response_model=DatasetRowResponse)
def update_row(
    dataset_id: UUID,
    row_index: int,
    body: DatasetRowUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: DatasetService = Depends(get_dataset_service),
) -> DatasetRowResponse:
    with translate_errors():
        row = service.update_row(actor, dataset_id, row_index, body.data)
    return DatasetRowResponse.model_validate(row)


@router.delete("/datasets/{dataset_id}/rows/{row_index}", status_code=status.HTTP_204_NO_CONTENT)
def delete_row(
    dataset_id: UUID,
    row_index: int,
    actor: Actor = Depends(get_current_actor),
    service: DatasetService = Depends(get_dataset_service),
) -> Response:
    with translate_errors():
        service.delete_row(actor, dataset_id, row_index)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
