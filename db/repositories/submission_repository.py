"""
Submission repository: data submissions and their staging rows.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import Select, func, insert, select
from sqlalchemy.orm import Session

from db.models.data_submission import (
    DataSubmission,
    StagingRow,
    SubmissionStatus,
    ValidationStatus,
)
from db.repositories.types import StoredFileMetadata


class SubmissionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_submission(
        self,
        *,
        dataset_id: uuid.UUID,
        submitted_by: uuid.UUID,
        stored_file: StoredFileMetadata,
        row_count: int,
    ) -> DataSubmission:
        submission = DataSubmission(
            dataset_id=dataset_id,
            submitted_by=submitted_by,
            file_name=stored_file.file_name,
            file_path=stored_file.storage_path,
            file_size=stored_file.file_size_bytes,
            row_count=row_count,
            status=SubmissionStatus.PENDING,
            submitted_at=stored_file.stored_at,
        )
        self._session.add(submission)
        self._session.flush()
        return submission

    def add_staging_rows(
        self,
        *,
        submission_id: uuid.UUID,
        rows: Sequence[Mapping[str, Any]],
        batch_size: int = 1000,
    ) -> int:
        """
        Stage rows with row_index assigned by input order from 0.
        """

        inserted = 0
        for chunk_start in range(0, len(rows), batch_size):
            chunk = rows[chunk_start : chunk_start + batch_size]
            values = [
                {
                    "id": uuid.uuid4(),
                    "submission_id": submission_id,
                    "row_index": chunk_start + offset,
                    "data": dict(row),
                    "validation_status": ValidationStatus.VALID,
                    "validation_errors": None,
                }
                for offset, row in enumerate(chunk)
            ]
            self._session.execute(insert(StagingRow), values)
            inserted += len(values)
        return inserted

    def get_submission(
        self,
        submission_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> DataSubmission | None:
        if not for_update:
            return self._session.get(DataSubmission, submission_id)
        stmt = (
            select(DataSubmission)
            .where(DataSubmission.id == submission_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.scalars(stmt).first()

    def list_for_dataset(
        self,
        dataset_id: uuid.UUID,
        *,
        status: str | None = None,
        limit: int = 100,
    ) -> list[DataSubmission]:
        stmt: Select[tuple[DataSubmission]] = select(DataSubmission).where(
            DataSubmission.dataset_id == dataset_id
        )
        if status:
            stmt = stmt.where(DataSubmission.status == status)
        stmt = stmt.order_by(DataSubmission.submitted_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def list_by_status(
        self,
        statuses: Sequence[str],
        *,
        limit: int = 100,
        oldest_first: bool = True,
    ) -> list[DataSubmission]:
        order = DataSubmission.submitted_at if oldest_first else DataSubmission.submitted_at.desc()
        stmt = (
            select(DataSubmission)
            .where(DataSubmission.status.in_(list(statuses)))
            .order_by(order)
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def list_in_flight(self, dataset_id: uuid.UUID, submitted_by: uuid.UUID) -> list[DataSubmission]:
        stmt = select(DataSubmission).where(
            DataSubmission.dataset_id == dataset_id,
            DataSubmission.submitted_by == submitted_by,
            DataSubmission.status.in_(SubmissionStatus.IN_FLIGHT),
        )
        return list(self._session.scalars(stmt).all())

    def list_staging_rows(
        self,
        submission_id: uuid.UUID,
        *,
        offset: int = 0,
        limit: int | None = None,
        validation_status: str | None = None,
    ) -> list[StagingRow]:
        stmt = select(StagingRow).where(StagingRow.submission_id == submission_id)
        if validation_status:
            stmt = stmt.where(StagingRow.validation_status == validation_status)
        stmt = stmt.order_by(StagingRow.row_index).offset(max(0, offset))
        if limit is not None:
            stmt = stmt.limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def count_staging_rows(self, submission_id: uuid.UUID, *, validation_status: str | None = None) -> int:
        stmt = select(func.count()).select_from(StagingRow).where(
            StagingRow.submission_id == submission_id
        )
        if validation_status:
            stmt = stmt.where(StagingRow.validation_status == validation_status)
        return int(self._session.scalar(stmt) or 0)

    def get_staging_row(self, submission_id: uuid.UUID, row_index: int) -> StagingRow | None:
        stmt = select(StagingRow).where(
            StagingRow.submission_id == submission_id,
            StagingRow.row_index == row_index,
        )
        return self._session.scalars(stmt).first()

    def delete_submission(self, submission: DataSubmission) -> None:
        self._session.delete(submission)
        self._session.flush()
