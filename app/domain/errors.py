"""
app/domain/errors.py

Domain exceptions raised by the governance services.

Routers translate these into HTTP status codes; services never raise
HTTPException directly.
"""

from __future__ import annotations


class GovernanceError(Exception):
    """Base exception for dataset governance failures."""


class NotFoundError(GovernanceError):
    """Raised when a referenced entity does not exist."""


class ConflictError(GovernanceError):
    """Raised when an operation conflicts with the current stored state."""


class InvalidTransitionError(ConflictError):
    """Raised when a submission status change is not allowed by the workflow."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot move submission from '{current}' to '{target}'.")


class PermissionDeniedError(GovernanceError):
    """Raised when the acting user may not perform the operation."""


class TransactionFailedError(GovernanceError):
    """Raised when an atomic write was rolled back; the operation may be retried."""
