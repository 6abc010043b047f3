"""
Stores dataset and submission files and records dataset file references.

Parsing and row loading belong to the dataset and submission services.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.dataset import Dataset, DatasetStatus
from db.repositories.dataset_repository import DatasetRepository
from db.repositories.errors import DatasetPersistenceError, FileStorageError
from db.repositories.storage import (
    DATASET_NAMESPACE,
    SUBMISSION_NAMESPACE,
    FileStorageBackend,
)
from db.repositories.types import StoredFileMetadata, UploadFileInput
from db.repositories.validators import validate_dataset_name, validate_tabular_file

logger = logging.getLogger(__name__)


class UploadRepository:
    """
    Validates uploaded tabular files before handing them to the storage backend.
    """

    def __init__(
        self,
        session: Session,
        *,
        storage_backend: FileStorageBackend,
        max_upload_bytes: int,
    ) -> None:
        self._session = session
        self._storage_backend = storage_backend
        self._max_upload_bytes = max_upload_bytes

    def store_upload(self, payload: UploadFileInput) -> Dataset:
        """
        Store one uploaded CSV/Excel file and persist a dataset DB reference.

        Transaction safety:
        - DB insert commits in its own transaction.
        - On DB failure, the stored file is deleted as compensating action.
        """

        dataset_name = validate_dataset_name(payload.dataset_name)
        validate_tabular_file(
            file_name=payload.file_name,
            content=payload.content,
            content_type=payload.content_type,
            max_bytes=self._max_upload_bytes,
        )

        stored = self._storage_backend.save(
            namespace=DATASET_NAMESPACE,
            owner_id=payload.project_id,
            file_name=payload.file_name,
            content=payload.content,
            content_type=payload.content_type,
        )

        try:
            dataset = DatasetRepository(self._session).create_dataset_reference(
                project_id=payload.project_id,
                uploaded_by=payload.uploaded_by,
                dataset_name=dataset_name,
                description=payload.description,
                stored_file=stored,
                status=DatasetStatus.PROCESSING,
            )
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            self.delete_stored_file_quietly(stored.storage_path)
            raise DatasetPersistenceError("Failed to persist dataset metadata.") from exc

        logger.info(
            "Dataset file stored dataset_id=%s project_id=%s path=%s bytes=%d",
            dataset.id,
            payload.project_id,
            stored.storage_path,
            stored.file_size_bytes,
        )
        return dataset

    def store_submission_file(
        self,
        *,
        dataset_id: uuid.UUID,
        file_name: str,
        content: bytes,
        content_type: str | None,
        max_bytes: int,
    ) -> StoredFileMetadata:
        """
        Validate and store an append-request file; the caller persists the reference.
        """

        validate_tabular_file(
            file_name=file_name,
            content=content,
            content_type=content_type,
            max_bytes=max_bytes,
        )
        return self._storage_backend.save(
            namespace=SUBMISSION_NAMESPACE,
            owner_id=dataset_id,
            file_name=file_name,
            content=content,
            content_type=content_type,
        )

    def delete_stored_file_quietly(self, storage_path: str) -> None:
        try:
            self._storage_backend.delete(storage_path=storage_path)
        except FileStorageError:
            logger.warning("Could not delete stored file path=%s", storage_path, exc_info=True)
