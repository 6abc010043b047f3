"""
File storage for uploaded dataset and submission files.

Stored paths are relative to the backend root and have the form
``<namespace>/<owner_id>/<yyyy>/<mm>/<hex>_<file name>``; the random hex
prefix keeps repeated uploads of one file name apart.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone
from mimetypes import guess_type
from pathlib import Path, PurePosixPath
from typing import Protocol

from db.repositories.errors import FileStorageError
from db.repositories.types import StoredFileMetadata

DATASET_NAMESPACE = "datasets"
SUBMISSION_NAMESPACE = "submissions"
NAMESPACES = frozenset({DATASET_NAMESPACE, SUBMISSION_NAMESPACE})


class FileStorageBackend(Protocol):
    def save(
        self,
        *,
        namespace: str,
        owner_id: uuid.UUID,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
    ) -> StoredFileMetadata:
        ...

    def delete(self, *, storage_path: str) -> None:
        ...


def build_storage_path(
    *,
    namespace: str,
    owner_id: uuid.UUID,
    file_name: str,
    stored_at: datetime,
) -> PurePosixPath:
    if namespace not in NAMESPACES:
        raise FileStorageError(f"Unknown storage namespace '{namespace}'.")
    base_name = PurePosixPath(file_name.replace("\\", "/")).name.strip()
    if not base_name or base_name in {".", ".."}:
        raise FileStorageError("Invalid file name.")
    return PurePosixPath(
        namespace,
        str(owner_id),
        f"{stored_at:%Y}",
        f"{stored_at:%m}",
        f"{uuid.uuid4().hex}_{base_name}",
    )


class LocalFileStorage:
    """
    Stores files on the local filesystem below ``root_dir``.
    """

    def __init__(self, root_dir: str | Path = "data/uploads") -> None:
        self._root_dir = Path(root_dir)

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    def _resolve(self, storage_path: str) -> Path:
        root = self._root_dir.resolve()
        target = (root / storage_path).resolve()
        if root not in target.parents:
            raise FileStorageError(f"Storage path escapes the storage root: {storage_path}")
        return target

    def save(
        self,
        *,
        namespace: str,
        owner_id: uuid.UUID,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
    ) -> StoredFileMetadata:
        stored_at = datetime.now(timezone.utc)
        relative_path = build_storage_path(
            namespace=namespace,
            owner_id=owner_id,
            file_name=file_name,
            stored_at=stored_at,
        )
        target = self._resolve(relative_path.as_posix())
        partial = target.with_name(f".{target.name}.partial")

        # Write to a sibling file first so a crash never leaves a truncated upload.
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            partial.write_bytes(content)
            partial.replace(target)
        except OSError as exc:
            raise FileStorageError(f"Could not write {relative_path} to storage.") from exc
        finally:
            partial.unlink(missing_ok=True)

        return StoredFileMetadata(
            file_name=relative_path.name.split("_", 1)[1],
            storage_path=relative_path.as_posix(),
            mime_type=content_type or guess_type(relative_path.name)[0],
            file_size_bytes=len(content),
            checksum=hashlib.sha256(content).hexdigest(),
            stored_at=stored_at,
        )

    def delete(self, *, storage_path: str) -> None:
        target = self._resolve(storage_path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise FileStorageError(f"Could not delete {storage_path} from storage.") from exc
