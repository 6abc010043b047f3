"""
Checks applied to uploaded dataset and submission files before they are stored.
"""

from __future__ import annotations

from pathlib import PurePath

from db.repositories.errors import UploadTooLargeError, UploadValidationError

MAX_DATASET_NAME_LENGTH = 255

# Extension -> content types browsers and clients commonly send for it.
TABULAR_TYPES: dict[str, frozenset[str]] = {
    ".csv": frozenset({"text/csv", "application/csv", "text/plain"}),
    ".xlsx": frozenset({"application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"}),
    ".xls": frozenset({"application/vnd.ms-excel"}),
}
GENERIC_CONTENT_TYPES = frozenset({"application/octet-stream"})


def validate_tabular_file(
    *,
    file_name: str,
    content: bytes,
    content_type: str | None,
    max_bytes: int,
) -> None:
    name = (file_name or "").strip()
    if not name:
        raise UploadValidationError("A file name is required.")

    extension = PurePath(name).suffix.lower()
    if extension not in TABULAR_TYPES:
        raise UploadValidationError(
            f"'{name}' is not a CSV or Excel file (expected one of {', '.join(sorted(TABULAR_TYPES))})."
        )

    if content_type:
        media_type = content_type.partition(";")[0].strip().lower()
        # Excel files are often labelled as CSV by clients and vice versa.
        known = set(GENERIC_CONTENT_TYPES).union(*TABULAR_TYPES.values())
        if media_type not in known:
            raise UploadValidationError(f"Content type '{content_type}' is not accepted for '{name}'.")

    if not content:
        raise UploadValidationError(f"'{name}' is empty.")
    if len(content) > max_bytes:
        raise UploadTooLargeError(len(content), max_bytes)


def validate_dataset_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise UploadValidationError("A dataset name is required.")
    if len(cleaned) > MAX_DATASET_NAME_LENGTH:
        raise UploadValidationError(f"Dataset names are limited to {MAX_DATASET_NAME_LENGTH} characters.")
    return cleaned
