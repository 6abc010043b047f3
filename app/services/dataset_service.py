"""
app/services/dataset_service.py

Dataset lifecycle and row access.

Upload flow:
    1. UploadRepository stores the file and commits the dataset in `processing`.
    2. TabularParser reads the file.
    3. Rows are inserted at row_index 0..n-1 and the dataset becomes `ready`
       in one transaction, or `error` when the file cannot be parsed.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.actor import Actor
from app.domain.errors import NotFoundError, PermissionDeniedError
from app.domain.row_document import coerce_row, normalize_cell
from app.services.access import AccessPolicy
from app.services.tabular_parser import TabularParseError, TabularParser
from db.base import utcnow
from db.models.dataset import Dataset, DatasetStatus
from db.models.dataset_row import DatasetRow
from db.models.dataset_schema import DatasetSchema
from db.repositories.dataset_repository import DatasetRepository
from db.repositories.errors import DatasetPersistenceError
from db.repositories.schema_repository import SchemaRepository
from db.repositories.types import UploadFileInput
from db.repositories.upload_repository import UploadRepository

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class RowPage:
    rows: list[DatasetRow]
    page: int
    page_size: int
    total: int
    schema: DatasetSchema | None = None
    filters: dict[str, str] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


def clamp_page(page: int, page_size: int) -> tuple[int, int]:
    return max(1, page), min(MAX_PAGE_SIZE, max(1, page_size))


class DatasetService:
    def __init__(
        self,
        session: Session,
        *,
        upload_repository: UploadRepository,
        parser: TabularParser | None = None,
        insert_batch_size: int = 1000,
    ) -> None:
        self._session = session
        self._uploads = upload_repository
        self._parser = parser or TabularParser()
        self._datasets = DatasetRepository(session)
        self._schemas = SchemaRepository(session)
        self._access = AccessPolicy(session)
        self._insert_batch_size = max(1, insert_batch_size)

    # ------------------------------------------------------------------
    # Datasets
    # ------------------------------------------------------------------

    def upload_dataset(self, actor: Actor, payload: UploadFileInput) -> Dataset:
        self._access.require_project(payload.project_id, actor)
        dataset = self._uploads.store_upload(payload)

        try:
            table = self._parser.parse(file_name=payload.file_name, content=payload.content)
        except TabularParseError as exc:
            logger.warning("Dataset parse failed dataset_id=%s error=%s", dataset.id, exc)
            self._mark_error(dataset)
            return dataset

        try:
            self._datasets.bulk_insert_rows(
                dataset_id=dataset.id,
                rows=table.rows,
                start_index=0,
                actor_id=actor.user_id,
                batch_size=self._insert_batch_size,
            )
            dataset.row_count = table.row_count
            dataset.column_count = table.column_count
            dataset.status = DatasetStatus.READY
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            self._mark_error(dataset)
            raise DatasetPersistenceError("Failed to store dataset rows.") from exc

        logger.info(
            "Dataset ready dataset_id=%s rows=%d columns=%d skipped_empty=%d",
            dataset.id,
            table.row_count,
            table.column_count,
            table.skipped_empty_rows,
        )
        return dataset

    def list_datasets(self, actor: Actor, project_id: uuid.UUID) -> list[Dataset]:
        self._access.require_project(project_id, actor)
        return self._datasets.list_datasets_for_project(project_id)

    def get_dataset(self, actor: Actor, dataset_id: uuid.UUID) -> Dataset:
        return self._access.require_dataset(dataset_id, actor)

    def delete_dataset(self, actor: Actor, dataset_id: uuid.UUID) -> None:
        dataset = self._access.require_dataset(dataset_id, actor)
        if not actor.is_admin and actor.user_id not in {dataset.uploaded_by, dataset.project.owner_id}:
            raise PermissionDeniedError("Only the uploader or project owner can delete a dataset.")

        file_path = dataset.file_path
        try:
            self._datasets.delete_dataset(dataset)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        self._uploads.delete_stored_file_quietly(file_path)
        logger.info("Dataset deleted dataset_id=%s by=%s", dataset_id, actor.user_id)

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def preview_rows(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        *,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        filters: Mapping[str, str] | None = None,
    ) -> RowPage:
        """
        One page of rows in row_index order, optionally filtered by field equality.
        """

        dataset = self._access.require_dataset(dataset_id, actor)
        page, page_size = clamp_page(page, page_size)
        active_filters = {key: value for key, value in (filters or {}).items() if key}

        if active_filters:
            total = self._datasets.count_filtered_rows(dataset.id, active_filters)
        else:
            total = self._datasets.count_rows(dataset.id)
        rows = self._datasets.list_rows(
            dataset.id,
            offset=(page - 1) * page_size,
            limit=page_size,
            filters=active_filters,
        )
        return RowPage(
            rows=rows,
            page=page,
            page_size=page_size,
            total=total,
            schema=self._schemas.get_for_dataset(dataset.id),
            filters=active_filters,
        )

    def update_row(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        row_index: int,
        data: Mapping[str, Any],
    ) -> DatasetRow:
        """
        Replace one row document; values follow the schema types when one exists.
        """

        dataset = self._access.require_dataset(dataset_id, actor)
        row = self._datasets.get_row(dataset.id, row_index)
        if row is None:
            raise NotFoundError(f"Row {row_index} not found in dataset {dataset_id}")

        fields = self._schemas.list_fields(dataset.id)
        if fields:
            document = coerce_row(data, {item.name: item.data_type for item in fields})
        else:
            document = {key: normalize_cell(value) for key, value in data.items()}

        try:
            row.data = document
            row.version += 1
            row.updated_by = actor.user_id
            row.updated_at = utcnow()
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        return row

    def delete_row(self, actor: Actor, dataset_id: uuid.UUID, row_index: int) -> None:
        dataset = self._access.require_dataset(dataset_id, actor)
        locked = self._datasets.get_dataset(dataset.id, for_update=True)
        row = self._datasets.get_row(dataset.id, row_index)
        if locked is None or row is None:
            self._session.rollback()
            raise NotFoundError(f"Row {row_index} not found in dataset {dataset_id}")
        try:
            self._datasets.delete_row(row)
            locked.row_count = max(0, locked.row_count - 1)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise

    def _mark_error(self, dataset: Dataset) -> None:
        try:
            dataset.status = DatasetStatus.ERROR
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            logger.exception("Could not mark dataset as error dataset_id=%s", dataset.id)
