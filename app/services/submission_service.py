"""
app/services/submission_service.py

Submission review workflow: intake, validation pass, review decision, apply.

    pending -> under_review -> approved -> applied
                           +-> rejected

Each step runs in its own transaction. Apply is all-or-nothing: the dataset
and submission rows are locked, accepted staging rows are appended after the
current last row_index, row_count and status change together, and any
database failure rolls everything back with the submission left `approved`
for a later retry.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.actor import Actor
from app.domain.errors import (
    ConflictError,
    GovernanceError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    TransactionFailedError,
)
from app.domain.row_document import RowDocument, coerce_row, normalize_cell, rows_equal
from app.domain.submission_status import ensure_transition
from app.domain.validation import RowOutcome, ValidationSummary
from app.services.access import AccessPolicy, require_admin
from app.services.tabular_parser import TabularParser
from app.validators.submission_validator import (
    StagedRowInput,
    SubmissionValidator,
    build_existing_keys,
    unique_field_names,
)
from db.base import utcnow
from db.models.data_submission import (
    DataSubmission,
    StagingRow,
    SubmissionStatus,
    ValidationStatus,
)
from db.models.dataset import Dataset, DatasetStatus
from db.repositories.business_rule_repository import BusinessRuleRepository
from db.repositories.dataset_repository import DatasetRepository
from db.repositories.schema_repository import SchemaRepository
from db.repositories.submission_repository import SubmissionRepository
from db.repositories.types import StoredFileMetadata
from db.repositories.upload_repository import UploadRepository

logger = logging.getLogger(__name__)


class ReviewDecision:
    APPROVE = "approve"
    REJECT = "reject"

    ALL = (APPROVE, REJECT)


@dataclass(frozen=True)
class SubmissionDetail:
    submission: DataSubmission
    staging_rows: list[StagingRow]
    total_staged: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_staged / self.page_size) if self.total_staged else 0


@dataclass(frozen=True)
class RetrySummary:
    attempted: int
    applied: int
    failed: int


class SubmissionService:
    """
    Coordinates the repositories and validators of the review workflow.
    """

    def __init__(
        self,
        session: Session,
        *,
        upload_repository: UploadRepository | None = None,
        parser: TabularParser | None = None,
        max_validation_errors: int = 500,
        max_submission_bytes: int = 10 * 1024 * 1024,
        auto_validate: bool = True,
    ) -> None:
        self._session = session
        self._uploads = upload_repository
        self._parser = parser or TabularParser()
        self._max_validation_errors = max(1, max_validation_errors)
        self._max_submission_bytes = max_submission_bytes
        self._auto_validate = auto_validate
        self._submissions = SubmissionRepository(session)
        self._datasets = DatasetRepository(session)
        self._schemas = SchemaRepository(session)
        self._rules = BusinessRuleRepository(session)
        self._access = AccessPolicy(session)

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def submit_upload(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        *,
        file_name: str,
        content: bytes,
        content_type: str | None,
    ) -> DataSubmission:
        """
        Store and parse an append file, stage its rows and optionally validate.

        The stored file is removed again when intake does not commit.
        """

        if self._uploads is None:
            raise RuntimeError("SubmissionService was built without an upload repository.")

        self._access.require_dataset(dataset_id, actor)
        stored = self._uploads.store_submission_file(
            dataset_id=dataset_id,
            file_name=file_name,
            content=content,
            content_type=content_type,
            max_bytes=self._max_submission_bytes,
        )
        try:
            table = self._parser.parse(file_name=stored.file_name, content=content)
            submission = self.submit(actor, dataset_id, rows=table.rows, stored_file=stored)
        except Exception:
            self._uploads.delete_stored_file_quietly(stored.storage_path)
            raise

        if self._auto_validate:
            submission = self.validate(submission.id)
        return submission

    def submit(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        *,
        rows: Sequence[Mapping[str, Any]],
        stored_file: StoredFileMetadata,
    ) -> DataSubmission:
        """
        Create a `pending` submission with one staging row per input row.
        """

        dataset = self._access.require_dataset(dataset_id, actor)
        if dataset.status != DatasetStatus.READY:
            raise ConflictError(f"Dataset is not ready for submissions (status={dataset.status}).")

        documents: list[RowDocument] = [
            {key: normalize_cell(value) for key, value in row.items()} for row in rows
        ]
        self._ensure_not_duplicate(dataset.id, actor.user_id, documents)

        try:
            submission = self._submissions.create_submission(
                dataset_id=dataset.id,
                submitted_by=actor.user_id,
                stored_file=stored_file,
                row_count=len(documents),
            )
            self._submissions.add_staging_rows(submission_id=submission.id, rows=documents)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise

        logger.info(
            "Submission created submission_id=%s dataset_id=%s submitted_by=%s rows=%d",
            submission.id,
            dataset.id,
            actor.user_id,
            len(documents),
        )
        return submission

    def _ensure_not_duplicate(
        self,
        dataset_id: uuid.UUID,
        submitted_by: uuid.UUID,
        documents: Sequence[RowDocument],
    ) -> None:
        for existing in self._submissions.list_in_flight(dataset_id, submitted_by):
            if existing.row_count != len(documents):
                continue
            staged = [row.data for row in self._submissions.list_staging_rows(existing.id)]
            if rows_equal(staged, documents):
                raise ConflictError(
                    f"An identical submission is already in progress ({existing.id})."
                )

    # ------------------------------------------------------------------
    # Validation pass
    # ------------------------------------------------------------------

    def validate(self, submission_id: uuid.UUID, *, actor: Actor | None = None) -> DataSubmission:
        """
        Validate every staged row and move the submission to `under_review`.

        With an ``actor`` the caller must have access to the dataset.
        """

        submission = self._require_submission(submission_id)
        if actor is not None:
            self._access.require_dataset(submission.dataset_id, actor)
        ensure_transition(submission.status, SubmissionStatus.UNDER_REVIEW)

        try:
            summary = self._run_validation(submission)
            submission.status = SubmissionStatus.UNDER_REVIEW
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise

        logger.info(
            "Submission validated submission_id=%s total=%d valid=%d warning=%d invalid=%d",
            submission.id,
            summary.total_rows,
            summary.valid_rows,
            summary.warning_rows,
            summary.invalid_rows,
        )
        return submission

    def _run_validation(self, submission: DataSubmission) -> ValidationSummary:
        fields = self._schemas.list_fields(submission.dataset_id)
        rules = self._rules.list_rules(submission.dataset_id, active_only=True)
        field_types = {item.name: item.data_type for item in fields}

        unique_names = unique_field_names(fields, rules)
        existing_keys: dict[str, set[str]] = {}
        if unique_names:
            existing_keys = build_existing_keys(
                self._datasets.iter_row_data(submission.dataset_id),
                unique_names,
                field_types,
            )

        staging_rows = self._submissions.list_staging_rows(submission.id)
        validator = SubmissionValidator(fields=fields, rules=rules, existing_keys=existing_keys)
        outcomes, summary = validator.validate(
            [StagedRowInput(row_index=row.row_index, data=row.data) for row in staging_rows]
        )

        outcome_by_index: dict[int, RowOutcome] = {outcome.row_index: outcome for outcome in outcomes}
        for row in staging_rows:
            outcome = outcome_by_index[row.row_index]
            row.validation_status = outcome.status
            row.validation_errors = [issue.to_dict() for issue in outcome.issues] or None

        submission.validation_results = summary.to_results(
            max_errors=self._max_validation_errors,
            validated_at=utcnow(),
        )
        return summary

    # ------------------------------------------------------------------
    # Review decision
    # ------------------------------------------------------------------

    def review(
        self,
        actor: Actor,
        submission_id: uuid.UUID,
        *,
        decision: str,
        admin_notes: str | None = None,
    ) -> DataSubmission:
        """
        Approve or reject a submission that is `under_review`.
        """

        require_admin(actor)
        if decision not in ReviewDecision.ALL:
            raise ValueError(f"Unsupported review decision '{decision}'.")

        submission = self._require_submission(submission_id)
        target = (
            SubmissionStatus.APPROVED
            if decision == ReviewDecision.APPROVE
            else SubmissionStatus.REJECTED
        )
        ensure_transition(submission.status, target)

        try:
            submission.status = target
            submission.reviewed_by = actor.user_id
            submission.reviewed_at = utcnow()
            submission.admin_notes = admin_notes
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise

        logger.info(
            "Submission reviewed submission_id=%s decision=%s reviewer=%s",
            submission.id,
            target,
            actor.user_id,
        )
        return submission

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def apply(self, submission_id: uuid.UUID, *, actor_id: uuid.UUID) -> DataSubmission:
        """
        Append the accepted staging rows of an `approved` submission.

        Raises TransactionFailedError when the database rejects any write; no
        row, count or status change survives in that case.
        """

        submission = self._require_submission(submission_id)
        dataset_id = submission.dataset_id

        try:
            dataset = self._datasets.get_dataset(dataset_id, for_update=True)
            locked = self._submissions.get_submission(submission_id, for_update=True)
            if dataset is None or locked is None:
                raise NotFoundError(f"Submission not found: {submission_id}")
            ensure_transition(locked.status, SubmissionStatus.APPLIED)

            appended = self._append_rows(dataset, locked, actor_id=actor_id)
            dataset.row_count = (dataset.row_count or 0) + appended
            locked.status = SubmissionStatus.APPLIED
            locked.applied_at = utcnow()
            self._session.commit()
        except GovernanceError:
            self._session.rollback()
            raise
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.warning(
                "Submission apply failed submission_id=%s dataset_id=%s error=%s",
                submission_id,
                dataset_id,
                exc,
            )
            raise TransactionFailedError(
                f"Applying submission {submission_id} failed; it remains approved."
            ) from exc

        logger.info(
            "Submission applied submission_id=%s dataset_id=%s rows_appended=%d",
            submission_id,
            dataset_id,
            appended,
        )
        return locked

    def _append_rows(self, dataset: Dataset, submission: DataSubmission, *, actor_id: uuid.UUID) -> int:
        fields = self._schemas.list_fields(dataset.id)
        field_types = {item.name: item.data_type for item in fields}
        defaults = {item.name: item.default_value for item in fields}

        accepted = [
            coerce_row(row.data, field_types, defaults)
            for row in self._submissions.list_staging_rows(submission.id)
            if row.validation_status != ValidationStatus.INVALID
        ]
        if not accepted:
            return 0
        return self._datasets.bulk_insert_rows(
            dataset_id=dataset.id,
            rows=accepted,
            start_index=self._datasets.next_row_index(dataset.id),
            actor_id=actor_id,
        )

    def apply_after_approval(
        self,
        submission_id: uuid.UUID,
        *,
        actor_id: uuid.UUID,
    ) -> tuple[DataSubmission, str | None]:
        """
        Apply a submission the caller has just approved.

        Returns the submission and, when the apply was deferred to the retry
        job, the reason. A submission another worker applied in between is
        returned as is.
        """

        try:
            return self.apply(submission_id, actor_id=actor_id), None
        except TransactionFailedError as exc:
            logger.warning("Apply after approval deferred submission_id=%s: %s", submission_id, exc)
            return self._require_submission(submission_id), str(exc)
        except InvalidTransitionError as exc:
            if exc.current != SubmissionStatus.APPLIED:
                raise
            logger.info("Submission already applied by another worker submission_id=%s", submission_id)
            return self._require_submission(submission_id), None

    def apply_as(self, actor: Actor, submission_id: uuid.UUID) -> DataSubmission:
        require_admin(actor)
        return self.apply(submission_id, actor_id=actor.user_id)

    def retry_approved(self, *, batch_size: int = 20) -> RetrySummary:
        """
        Re-run apply for submissions left `approved` by an earlier failure.
        """

        pending = self._submissions.list_by_status([SubmissionStatus.APPROVED], limit=batch_size)
        applied = failed = 0
        for submission in pending:
            actor_id = submission.reviewed_by or submission.submitted_by
            try:
                self.apply(submission.id, actor_id=actor_id)
                applied += 1
            except GovernanceError as exc:
                failed += 1
                logger.warning("Apply retry failed submission_id=%s error=%s", submission.id, exc)
        return RetrySummary(attempted=len(pending), applied=applied, failed=failed)

    # ------------------------------------------------------------------
    # Staging edits and withdrawal
    # ------------------------------------------------------------------

    def edit_staging_row(
        self,
        actor: Actor,
        submission_id: uuid.UUID,
        row_index: int,
        data: Mapping[str, Any],
    ) -> StagingRow:
        """
        Replace one staged row and re-validate the submission around it.
        """

        submission = self._require_editable(actor, submission_id)
        row = self._submissions.get_staging_row(submission.id, row_index)
        if row is None:
            raise NotFoundError(f"Staging row {row_index} not found in submission {submission_id}")

        try:
            row.data = {key: normalize_cell(value) for key, value in data.items()}
            self._session.flush()
            self._run_validation(submission)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise

        logger.info(
            "Staging row edited submission_id=%s row_index=%d status=%s",
            submission.id,
            row_index,
            row.validation_status,
        )
        return row

    def withdraw(self, actor: Actor, submission_id: uuid.UUID) -> None:
        submission = self._require_editable(actor, submission_id)
        file_path = submission.file_path
        try:
            self._submissions.delete_submission(submission)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        if self._uploads is not None:
            self._uploads.delete_stored_file_quietly(file_path)
        logger.info("Submission withdrawn submission_id=%s by=%s", submission_id, actor.user_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_for_dataset(
        self,
        actor: Actor,
        dataset_id: uuid.UUID,
        *,
        status: str | None = None,
    ) -> list[DataSubmission]:
        self._access.require_dataset(dataset_id, actor)
        return self._submissions.list_for_dataset(dataset_id, status=status)

    def review_queue(self, actor: Actor, *, limit: int = 100) -> list[DataSubmission]:
        require_admin(actor)
        return self._submissions.list_by_status(SubmissionStatus.REVIEW_QUEUE, limit=limit)

    def get_detail(
        self,
        actor: Actor,
        submission_id: uuid.UUID,
        *,
        page: int = 1,
        page_size: int = 50,
        validation_status: str | None = None,
    ) -> SubmissionDetail:
        submission = self._require_submission(submission_id)
        self._access.require_dataset(submission.dataset_id, actor)
        page = max(1, page)
        page_size = min(100, max(1, page_size))
        rows = self._submissions.list_staging_rows(
            submission.id,
            offset=(page - 1) * page_size,
            limit=page_size,
            validation_status=validation_status,
        )
        return SubmissionDetail(
            submission=submission,
            staging_rows=rows,
            total_staged=self._submissions.count_staging_rows(
                submission.id,
                validation_status=validation_status,
            ),
            page=page,
            page_size=page_size,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_submission(self, submission_id: uuid.UUID) -> DataSubmission:
        submission = self._submissions.get_submission(submission_id)
        if submission is None:
            raise NotFoundError(f"Submission not found: {submission_id}")
        return submission

    def _require_editable(self, actor: Actor, submission_id: uuid.UUID) -> DataSubmission:
        submission = self._require_submission(submission_id)
        self._access.require_dataset(submission.dataset_id, actor)
        if not actor.is_admin and submission.submitted_by != actor.user_id:
            raise PermissionDeniedError("Only the submitter or an admin can change this submission.")
        if submission.status not in SubmissionStatus.EDITABLE:
            raise ConflictError(f"Submission can no longer be changed (status={submission.status}).")
        return submission
