"""
app/api/dependencies.py

Shared FastAPI dependencies: caller identity, upload validation and
per-request service construction.
"""

from __future__ import annotations

import uuid

from fastapi import Depends, File, Header, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.config import get_submission_settings, get_upload_settings
from app.domain.actor import KNOWN_ROLES, ROLE_USER, Actor
from app.services.business_rule_service import BusinessRuleService
from app.services.dataset_service import DatasetService
from app.services.project_service import ProjectService
from app.services.schema_service import SchemaService
from app.services.submission_service import SubmissionService
from db.repositories.project_repository import ProjectRepository
from db.repositories.storage import FileStorageBackend, LocalFileStorage
from db.repositories.upload_repository import UploadRepository
from db.session import get_db

TABULAR_EXTENSIONS = (".csv", ".xlsx", ".xls")
TABULAR_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/octet-stream",
}


def get_current_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Actor:
    """
    Resolve the caller forwarded by the auth gateway.

    The user id must reference an existing user; unknown roles fall back to
    a regular user.
    """

    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header.",
        )
    try:
        user_id = uuid.UUID(x_user_id.strip())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id must be a UUID.",
        ) from exc

    if ProjectRepository(db).get_user(user_id) is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user.",
        )

    role = (x_user_role or ROLE_USER).strip().lower()
    return Actor(user_id=user_id, role=role if role in KNOWN_ROLES else ROLE_USER)


def get_tabular_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is CSV or Excel by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    if not filename.endswith(TABULAR_EXTENSIONS) and content_type not in TABULAR_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV and Excel files are allowed.",
        )

    return file


def get_storage_backend() -> FileStorageBackend:
    return LocalFileStorage(get_upload_settings().storage_dir)


def get_upload_repository(
    db: Session = Depends(get_db),
    storage_backend: FileStorageBackend = Depends(get_storage_backend),
) -> UploadRepository:
    return UploadRepository(
        db,
        storage_backend=storage_backend,
        max_upload_bytes=get_upload_settings().max_upload_bytes,
    )


def get_project_service(db: Session = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


def get_dataset_service(
    db: Session = Depends(get_db),
    upload_repository: UploadRepository = Depends(get_upload_repository),
) -> DatasetService:
    return DatasetService(db, upload_repository=upload_repository)


def get_schema_service(db: Session = Depends(get_db)) -> SchemaService:
    return SchemaService(db)


def get_business_rule_service(db: Session = Depends(get_db)) -> BusinessRuleService:
    return BusinessRuleService(db)


def get_submission_service(
    db: Session = Depends(get_db),
    upload_repository: UploadRepository = Depends(get_upload_repository),
) -> SubmissionService:
    submission_settings = get_submission_settings()
    return SubmissionService(
        db,
        upload_repository=upload_repository,
        max_validation_errors=submission_settings.max_validation_errors,
        max_submission_bytes=get_upload_settings().max_submission_bytes,
        auto_validate=submission_settings.auto_validate,
    )
