"""
app/api/errors.py

Translation of domain and upload exceptions into HTTP errors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, status

from app.domain.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    TransactionFailedError,
)
from app.services.schema_service import SchemaDefinitionError
from app.services.tabular_parser import TabularParseError
from app.validators.business_rules import RuleConfigError
from db.repositories.errors import (
    DatasetPersistenceError,
    FileStorageError,
    UploadTooLargeError,
    UploadValidationError,
)

logger = logging.getLogger(__name__)


def to_http_exception(exc: Exception) -> HTTPException | None:
    """
    Map a known exception to an HTTPException; unknown exceptions map to None.
    """

    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "current": exc.current, "target": exc.target},
        )
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, TransactionFailedError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    if isinstance(exc, UploadTooLargeError):
        return HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc))
    if isinstance(exc, (UploadValidationError, TabularParseError, RuleConfigError, SchemaDefinitionError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, FileStorageError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to store the uploaded file.",
        )
    if isinstance(exc, DatasetPersistenceError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to persist the dataset.",
        )
    if isinstance(exc, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return None


@contextmanager
def translate_errors() -> Iterator[None]:
    """
    Re-raise known exceptions from the wrapped block as HTTPException.
    """

    try:
        yield
    except HTTPException:
        raise
    except Exception as exc:
        http_exc = to_http_exception(exc)
        if http_exc is None:
            raise
        if http_exc.status_code >= 500:
            logger.warning("Request failed status=%d error=%s", http_exc.status_code, exc)
        raise http_exc from exc
