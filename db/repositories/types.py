"""
Plain value objects passed between services, repositories and the storage backend.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class UploadFileInput:
    """A dataset file as received from the API, before it is stored."""

    project_id: uuid.UUID
    uploaded_by: uuid.UUID
    dataset_name: str
    file_name: str
    content: bytes
    content_type: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class StoredFileMetadata:
    """Where and how a file ended up in storage; copied onto Dataset and DataSubmission rows."""

    file_name: str
    storage_path: str
    mime_type: str | None
    file_size_bytes: int
    checksum: str
    stored_at: datetime


@dataclass(frozen=True)
class FieldDefinition:
    """
    One schema field as accepted by SchemaRepository.

    ``validation`` holds the constraint keys understood by the row validator
    (min_value, max_value, min_length, max_length, pattern, options).
    """

    name: str
    data_type: str
    position: int
    display_name: str | None = None
    is_required: bool = False
    is_unique: bool = False
    default_value: str | None = None
    validation: dict[str, Any] = field(default_factory=dict)
