"""
Dataset repository responsible for dataset metadata and row document storage.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from sqlalchemy import Select, delete, func, insert, select
from sqlalchemy.orm import Session

from db.models.dataset import Dataset, DatasetStatus
from db.models.dataset_row import DatasetRow
from db.repositories.types import StoredFileMetadata


class DatasetRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Datasets
    # ------------------------------------------------------------------

    def create_dataset_reference(
        self,
        *,
        project_id: uuid.UUID,
        uploaded_by: uuid.UUID,
        dataset_name: str,
        stored_file: StoredFileMetadata,
        description: str | None = None,
        status: str = DatasetStatus.PROCESSING,
    ) -> Dataset:
        dataset = Dataset(
            project_id=project_id,
            uploaded_by=uploaded_by,
            name=dataset_name,
            description=description or "",
            status=status,
            file_name=stored_file.file_name,
            file_path=stored_file.storage_path,
            file_size=stored_file.file_size_bytes,
            mime_type=stored_file.mime_type or "application/octet-stream",
            row_count=0,
            column_count=0,
        )
        self._session.add(dataset)
        return dataset

    def get_dataset(self, dataset_id: uuid.UUID, *, for_update: bool = False) -> Dataset | None:
        """
        Load one dataset; ``for_update`` takes a row lock for the transaction.
        """

        if not for_update:
            return self._session.get(Dataset, dataset_id)
        stmt = (
            select(Dataset)
            .where(Dataset.id == dataset_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.scalars(stmt).first()

    def list_datasets_for_project(self, project_id: uuid.UUID, *, limit: int = 100) -> list[Dataset]:
        stmt = (
            select(Dataset)
            .where(Dataset.project_id == project_id)
            .order_by(Dataset.created_at.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def delete_dataset(self, dataset: Dataset) -> None:
        self._session.delete(dataset)
        self._session.flush()

    # ------------------------------------------------------------------
    # Row documents
    # ------------------------------------------------------------------

    def next_row_index(self, dataset_id: uuid.UUID) -> int:
        """
        Return max(row_index) + 1, or 0 for an empty dataset.
        """

        stmt = select(func.max(DatasetRow.row_index)).where(DatasetRow.dataset_id == dataset_id)
        current = self._session.scalar(stmt)
        return 0 if current is None else int(current) + 1

    def count_rows(self, dataset_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(DatasetRow).where(DatasetRow.dataset_id == dataset_id)
        return int(self._session.scalar(stmt) or 0)

    def bulk_insert_rows(
        self,
        *,
        dataset_id: uuid.UUID,
        rows: Sequence[Mapping[str, Any]],
        start_index: int,
        actor_id: uuid.UUID,
        batch_size: int = 1000,
    ) -> int:
        """
        Insert row documents at consecutive row_index values from ``start_index``.

        Chunked Core INSERT instead of ORM per-row add/flush.
        """

        inserted = 0
        for chunk_start in range(0, len(rows), batch_size):
            chunk = rows[chunk_start : chunk_start + batch_size]
            values = [
                {
                    "id": uuid.uuid4(),
                    "dataset_id": dataset_id,
                    "row_index": start_index + chunk_start + offset,
                    "data": dict(row),
                    "version": 1,
                    "created_by": actor_id,
                    "updated_by": actor_id,
                }
                for offset, row in enumerate(chunk)
            ]
            self._session.execute(insert(DatasetRow), values)
            inserted += len(values)
        return inserted

    def _rows_query(
        self,
        dataset_id: uuid.UUID,
        filters: Mapping[str, str] | None = None,
    ) -> Select[tuple[DatasetRow]]:
        stmt = select(DatasetRow).where(DatasetRow.dataset_id == dataset_id)
        for field_name, value in (filters or {}).items():
            stmt = stmt.where(DatasetRow.data[field_name].as_string() == value)
        return stmt

    def list_rows(
        self,
        dataset_id: uuid.UUID,
        *,
        offset: int = 0,
        limit: int = 50,
        filters: Mapping[str, str] | None = None,
    ) -> list[DatasetRow]:
        stmt = (
            self._rows_query(dataset_id, filters)
            .order_by(DatasetRow.row_index)
            .offset(max(0, offset))
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def count_filtered_rows(self, dataset_id: uuid.UUID, filters: Mapping[str, str]) -> int:
        subquery = self._rows_query(dataset_id, filters).subquery()
        return int(self._session.scalar(select(func.count()).select_from(subquery)) or 0)

    def get_row(self, dataset_id: uuid.UUID, row_index: int) -> DatasetRow | None:
        stmt = select(DatasetRow).where(
            DatasetRow.dataset_id == dataset_id,
            DatasetRow.row_index == row_index,
        )
        return self._session.scalars(stmt).first()

    def delete_row(self, row: DatasetRow) -> None:
        self._session.delete(row)
        self._session.flush()

    def delete_all_rows(self, dataset_id: uuid.UUID) -> None:
        self._session.execute(delete(DatasetRow).where(DatasetRow.dataset_id == dataset_id))

    def iter_row_data(self, dataset_id: uuid.UUID, *, batch_size: int = 1000) -> Iterator[dict[str, Any]]:
        """
        Stream every stored row document of a dataset in row order.
        """

        stmt = (
            select(DatasetRow.data)
            .where(DatasetRow.dataset_id == dataset_id)
            .order_by(DatasetRow.row_index)
            .execution_options(yield_per=batch_size)
        )
        for data in self._session.scalars(stmt):
            yield data
