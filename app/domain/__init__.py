"""
app/domain package marker.
"""

from app.domain.actor import Actor
from app.domain.errors import (
    ConflictError,
    GovernanceError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    TransactionFailedError,
)
from app.domain.validation import FieldStats, RowIssue, RowOutcome, ValidationSummary

__all__ = [
    "Actor",
    "ConflictError",
    "FieldStats",
    "GovernanceError",
    "InvalidTransitionError",
    "NotFoundError",
    "PermissionDeniedError",
    "RowIssue",
    "RowOutcome",
    "TransactionFailedError",
    "ValidationSummary",
]
