"""
app/domain/submission_status.py

Submission review state machine.

    pending -> under_review -> approved -> applied
                           +-> rejected
"""

from __future__ import annotations

from app.domain.errors import InvalidTransitionError
from db.models.data_submission import SubmissionStatus

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    SubmissionStatus.PENDING: frozenset({SubmissionStatus.UNDER_REVIEW}),
    SubmissionStatus.UNDER_REVIEW: frozenset(
        {SubmissionStatus.APPROVED, SubmissionStatus.REJECTED}
    ),
    SubmissionStatus.APPROVED: frozenset({SubmissionStatus.APPLIED}),
    SubmissionStatus.REJECTED: frozenset(),
    SubmissionStatus.APPLIED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str) -> None:
    """
    Raise InvalidTransitionError unless ``current -> target`` is a workflow edge.
    """

    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES
