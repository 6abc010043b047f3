"""
Errors raised while accepting, storing or recording uploaded files.
"""

from __future__ import annotations


class UploadRepositoryError(Exception):
    pass


class UploadValidationError(UploadRepositoryError):
    """The uploaded file or its metadata was refused before storage."""


class UploadTooLargeError(UploadValidationError):
    def __init__(self, size_bytes: int, limit_bytes: int) -> None:
        super().__init__(f"Upload is {size_bytes} bytes; the limit is {limit_bytes} bytes.")
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class FileStorageError(UploadRepositoryError):
    """The storage backend could not write or remove a file."""


class DatasetPersistenceError(UploadRepositoryError):
    """Dataset metadata or rows could not be written to the database."""
