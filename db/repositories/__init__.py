"""
Repository layer exports.
"""

from db.repositories.business_rule_repository import BusinessRuleRepository
from db.repositories.dataset_repository import DatasetRepository
from db.repositories.errors import (
    DatasetPersistenceError,
    FileStorageError,
    UploadRepositoryError,
    UploadTooLargeError,
    UploadValidationError,
)
from db.repositories.project_repository import ProjectRepository
from db.repositories.schema_repository import SchemaRepository
from db.repositories.storage import FileStorageBackend, LocalFileStorage
from db.repositories.submission_repository import SubmissionRepository
from db.repositories.types import FieldDefinition, StoredFileMetadata, UploadFileInput
from db.repositories.upload_repository import UploadRepository

__all__ = [
    "BusinessRuleRepository",
    "DatasetRepository",
    "ProjectRepository",
    "SchemaRepository",
    "SubmissionRepository",
    "UploadRepository",
    "UploadFileInput",
    "StoredFileMetadata",
    "FieldDefinition",
    "FileStorageBackend",
    "LocalFileStorage",
    "UploadRepositoryError",
    "UploadValidationError",
    "UploadTooLargeError",
    "FileStorageError",
    "DatasetPersistenceError",
]
