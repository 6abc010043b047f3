"""
tests/test_submission_workflow.py

SubmissionService against an in-memory SQLite database.

Coverage
--------
- Intake: staging order, duplicate and readiness conflicts, access
- Validation pass results stored on rows and submission
- Review decisions and admin-only checks
- Apply: row_index continuation, skipped invalid rows, coercion, atomicity
- Retry of approved submissions
- Staging edits and withdrawal
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.domain.actor import ROLE_ADMIN, Actor
from app.domain.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    TransactionFailedError,
)
from app.services.submission_service import ReviewDecision, SubmissionService
from app.services.tabular_parser import TabularParseError
from db.models.business_rule import RuleType
from db.models.data_submission import DataSubmission, SubmissionStatus, ValidationStatus
from db.models.dataset import Dataset, DatasetStatus
from db.models.dataset_row import DatasetRow
from db.models.dataset_schema import FieldDataType
from db.repositories.dataset_repository import DatasetRepository
from db.repositories.storage import LocalFileStorage
from db.repositories.types import StoredFileMetadata
from db.repositories.upload_repository import UploadRepository
from factories import add_member, make_dataset, make_project, make_rule, make_schema, make_user


def _stored(name: str = "append.csv") -> StoredFileMetadata:
    return StoredFileMetadata(
        file_name=name,
        storage_path=f"submissions/test/{name}",
        mime_type="text/csv",
        file_size_bytes=64,
        checksum="0" * 64,
        stored_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )


def _stored_rows(session: Session, dataset: Dataset) -> list[DatasetRow]:
    stmt = select(DatasetRow).where(DatasetRow.dataset_id == dataset.id).order_by(DatasetRow.row_index)
    return list(session.scalars(stmt).all())


@pytest.fixture()
def world(db_session: Session) -> dict[str, Any]:
    owner = make_user(db_session, name="Owner")
    member = make_user(db_session, name="Member")
    admin = make_user(db_session, name="Admin")
    project = make_project(db_session, owner)
    add_member(db_session, project, member)
    dataset = make_dataset(
        db_session,
        project,
        owner,
        rows=[{"sku": f"S{index}", "qty": index} for index in range(10)],
    )
    make_schema(
        db_session,
        dataset,
        [
            {"name": "sku", "data_type": FieldDataType.STRING, "is_required": True, "is_unique": True},
            {"name": "qty", "data_type": FieldDataType.NUMBER, "is_required": True},
            {"name": "channel", "data_type": FieldDataType.STRING, "default_value": "web"},
        ],
    )
    return {
        "owner_user": owner,
        "owner": Actor(user_id=owner.id),
        "member": Actor(user_id=member.id),
        "admin": Actor(user_id=admin.id, role=ROLE_ADMIN),
        "project": project,
        "dataset": dataset,
    }


@pytest.fixture()
def service(db_session: Session) -> SubmissionService:
    return SubmissionService(db_session)


APPEND_ROWS = [
    {"sku": "N1", "qty": "4"},
    {"sku": "N2", "qty": "many"},
    {"sku": "N3", "qty": "6", "channel": ""},
]


def _approved(service: SubmissionService, world: dict[str, Any], rows: list[dict[str, Any]] = APPEND_ROWS) -> DataSubmission:
    submission = service.submit(world["member"], world["dataset"].id, rows=rows, stored_file=_stored())
    service.validate(submission.id)
    return service.review(world["admin"], submission.id, decision=ReviewDecision.APPROVE)


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------


class TestIntake:
    def test_rows_are_staged_in_input_order(self, service: SubmissionService, world: dict[str, Any]) -> None:
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

        detail = service.get_detail(world["member"], submission.id)

        assert submission.status == SubmissionStatus.PENDING
        assert submission.row_count == 3
        assert submission.file_path == "submissions/test/append.csv"
        assert [row.row_index for row in detail.staging_rows] == [0, 1, 2]
        assert [row.data["sku"] for row in detail.staging_rows] == ["N1", "N2", "N3"]
        assert detail.staging_rows[2].data["channel"] is None

    def test_staged_rows_start_valid(self, service: SubmissionService, world: dict[str, Any]) -> None:
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

        detail = service.get_detail(world["member"], submission.id)

        assert {row.validation_status for row in detail.staging_rows} == {ValidationStatus.VALID}
        assert all(row.validation_errors is None for row in detail.staging_rows)

    def test_identical_in_flight_submission_conflicts(self, service: SubmissionService, world: dict[str, Any]) -> None:
        service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

        with pytest.raises(ConflictError):
            service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

    def test_resubmission_allowed_after_rejection(self, service: SubmissionService, world: dict[str, Any]) -> None:
        first = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())
        service.validate(first.id)
        service.review(world["admin"], first.id, decision=ReviewDecision.REJECT, admin_notes="fix qty")

        second = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

        assert second.id != first.id

    def test_dataset_must_be_ready(self, db_session: Session, service: SubmissionService, world: dict[str, Any]) -> None:
        processing = make_dataset(
            db_session,
            world["project"],
            world["owner_user"],
            status=DatasetStatus.PROCESSING,
            name="pending_upload",
        )

        with pytest.raises(ConflictError):
            service.submit(world["owner"], processing.id, rows=APPEND_ROWS, stored_file=_stored())

    def test_outsider_cannot_submit(self, db_session: Session, service: SubmissionService, world: dict[str, Any]) -> None:
        outsider = Actor(user_id=make_user(db_session, name="Outsider").id)

        with pytest.raises(PermissionDeniedError):
            service.submit(outsider, world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

    def test_unknown_dataset(self, service: SubmissionService, world: dict[str, Any]) -> None:
        with pytest.raises(NotFoundError):
            service.submit(world["admin"], world["project"].id, rows=APPEND_ROWS, stored_file=_stored())


class TestUploadIntake:
    def test_upload_is_stored_parsed_and_validated(
        self,
        db_session: Session,
        world: dict[str, Any],
        tmp_path: Path,
    ) -> None:
        storage = LocalFileStorage(tmp_path)
        service = SubmissionService(
            db_session,
            upload_repository=UploadRepository(db_session, storage_backend=storage, max_upload_bytes=1024),
        )

        submission = service.submit_upload(
            world["member"],
            world["dataset"].id,
            file_name="append.csv",
            content=b"sku,qty\nU1,1\nU2,2\n",
            content_type="text/csv",
        )

        assert submission.status == SubmissionStatus.UNDER_REVIEW
        assert submission.row_count == 2
        assert (tmp_path / submission.file_path).read_bytes() == b"sku,qty\nU1,1\nU2,2\n"

    def test_parse_failure_removes_stored_file(
        self,
        db_session: Session,
        world: dict[str, Any],
        tmp_path: Path,
    ) -> None:
        storage = LocalFileStorage(tmp_path)
        service = SubmissionService(
            db_session,
            upload_repository=UploadRepository(db_session, storage_backend=storage, max_upload_bytes=1024),
        )

        with pytest.raises(TabularParseError):
            service.submit_upload(
                world["member"],
                world["dataset"].id,
                file_name="append.csv",
                content=b"sku,qty\nU1,1,extra\n",
                content_type="text/csv",
            )

        assert [path for path in tmp_path.rglob("*") if path.is_file()] == []
        assert db_session.scalars(select(DataSubmission)).all() == []


# ---------------------------------------------------------------------------
# Validation pass
# ---------------------------------------------------------------------------


class TestValidation:
    def test_validation_marks_rows_and_moves_to_review(self, service: SubmissionService, world: dict[str, Any]) -> None:
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

        validated = service.validate(submission.id)
        detail = service.get_detail(world["member"], submission.id)

        assert validated.status == SubmissionStatus.UNDER_REVIEW
        assert [row.validation_status for row in detail.staging_rows] == [
            ValidationStatus.VALID,
            ValidationStatus.INVALID,
            ValidationStatus.VALID,
        ]
        assert detail.staging_rows[0].validation_errors is None
        assert detail.staging_rows[1].validation_errors[0]["code"] == "invalid_data_type"
        results = validated.validation_results
        assert (results["total_rows"], results["valid_rows"], results["invalid_rows"]) == (3, 2, 1)
        assert results["is_valid"] is False

    def test_uniqueness_checked_against_live_rows(self, service: SubmissionService, world: dict[str, Any]) -> None:
        submission = service.submit(
            world["member"],
            world["dataset"].id,
            rows=[{"sku": "S3", "qty": "1"}],
            stored_file=_stored(),
        )

        service.validate(submission.id)
        detail = service.get_detail(world["member"], submission.id)

        assert detail.staging_rows[0].validation_status == ValidationStatus.INVALID
        assert detail.staging_rows[0].validation_errors[0]["code"] == "duplicate_value"

    def test_business_rules_run_in_validation(
        self,
        db_session: Session,
        service: SubmissionService,
        world: dict[str, Any],
    ) -> None:
        make_rule(
            db_session,
            world["dataset"],
            world["owner_user"],
            rule_name="qty_cap",
            rule_type=RuleType.RANGE_CHECK,
            rule_config={"field_name": "qty", "max_value": 5, "severity": "warning"},
        )
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

        validated = service.validate(submission.id)
        detail = service.get_detail(world["member"], submission.id, validation_status=ValidationStatus.WARNING)

        assert [row.row_index for row in detail.staging_rows] == [2]
        assert detail.total_staged == 1
        assert validated.validation_results["business_rule_errors"][0]["rule_name"] == "qty_cap"

    def test_malformed_stored_rule_does_not_abort_validation(
        self,
        db_session: Session,
        service: SubmissionService,
        world: dict[str, Any],
    ) -> None:
        make_rule(
            db_session,
            world["dataset"],
            world["owner_user"],
            rule_name="sku_length",
            rule_type=RuleType.FIELD_VALIDATION,
            rule_config={"field_name": "sku", "min_length": "three"},
        )
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

        validated = service.validate(submission.id)

        assert validated.status == SubmissionStatus.UNDER_REVIEW
        assert validated.validation_results["business_rule_errors"] == []

    def test_validate_twice_is_rejected(self, service: SubmissionService, world: dict[str, Any]) -> None:
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())
        service.validate(submission.id)

        with pytest.raises(InvalidTransitionError):
            service.validate(submission.id)


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


class TestReview:
    def test_review_requires_admin(self, service: SubmissionService, world: dict[str, Any]) -> None:
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())
        service.validate(submission.id)

        with pytest.raises(PermissionDeniedError):
            service.review(world["owner"], submission.id, decision=ReviewDecision.APPROVE)

    def test_review_before_validation_is_invalid(self, service: SubmissionService, world: dict[str, Any]) -> None:
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

        with pytest.raises(InvalidTransitionError):
            service.review(world["admin"], submission.id, decision=ReviewDecision.APPROVE)

    def test_unknown_decision(self, service: SubmissionService, world: dict[str, Any]) -> None:
        with pytest.raises(ValueError):
            service.review(world["admin"], world["dataset"].id, decision="maybe")

    def test_reject_records_reviewer(self, service: SubmissionService, world: dict[str, Any]) -> None:
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())
        service.validate(submission.id)

        rejected = service.review(world["admin"], submission.id, decision=ReviewDecision.REJECT, admin_notes="no")

        assert rejected.status == SubmissionStatus.REJECTED
        assert rejected.reviewed_by == world["admin"].user_id
        assert rejected.reviewed_at is not None
        assert rejected.admin_notes == "no"
        with pytest.raises(InvalidTransitionError):
            service.apply(rejected.id, actor_id=world["admin"].user_id)

    def test_review_queue(self, service: SubmissionService, world: dict[str, Any]) -> None:
        pending = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())
        _approved(service, world, rows=[{"sku": "Q1", "qty": "1"}])

        queue = service.review_queue(world["admin"])

        assert [item.id for item in queue] == [pending.id]
        with pytest.raises(PermissionDeniedError):
            service.review_queue(world["member"])


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------


class TestApply:
    def test_appends_accepted_rows_after_existing(
        self,
        db_session: Session,
        service: SubmissionService,
        world: dict[str, Any],
    ) -> None:
        approved = _approved(service, world)

        applied = service.apply(approved.id, actor_id=world["admin"].user_id)

        dataset = db_session.get(Dataset, world["dataset"].id)
        rows = _stored_rows(db_session, dataset)
        assert applied.status == SubmissionStatus.APPLIED
        assert applied.applied_at is not None
        assert dataset.row_count == 12
        assert [row.row_index for row in rows] == list(range(12))
        assert rows[10].data == {"sku": "N1", "qty": 4, "channel": "web"}
        assert rows[11].data == {"sku": "N3", "qty": 6, "channel": "web"}
        assert rows[11].created_by == world["admin"].user_id

    def test_apply_is_atomic(
        self,
        db_session: Session,
        service: SubmissionService,
        world: dict[str, Any],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        approved = _approved(service, world)
        original_insert = DatasetRepository.bulk_insert_rows

        def insert_then_fail(self: DatasetRepository, **kwargs: Any) -> int:
            original_insert(self, **kwargs)
            raise OperationalError("INSERT INTO dataset_data", {}, Exception("disk full"))

        monkeypatch.setattr(DatasetRepository, "bulk_insert_rows", insert_then_fail)

        with pytest.raises(TransactionFailedError):
            service.apply(approved.id, actor_id=world["admin"].user_id)

        dataset = db_session.get(Dataset, world["dataset"].id)
        assert dataset.row_count == 10
        assert len(_stored_rows(db_session, dataset)) == 10
        assert db_session.get(DataSubmission, approved.id).status == SubmissionStatus.APPROVED
        assert db_session.get(DataSubmission, approved.id).applied_at is None

    def test_apply_twice_is_rejected(self, service: SubmissionService, world: dict[str, Any]) -> None:
        approved = _approved(service, world)
        service.apply(approved.id, actor_id=world["admin"].user_id)

        with pytest.raises(InvalidTransitionError):
            service.apply(approved.id, actor_id=world["admin"].user_id)

    def test_apply_after_approval_tolerates_concurrent_apply(
        self,
        db_session: Session,
        service: SubmissionService,
        world: dict[str, Any],
    ) -> None:
        approved = _approved(service, world)
        service.apply(approved.id, actor_id=world["admin"].user_id)

        submission, error = service.apply_after_approval(approved.id, actor_id=world["admin"].user_id)

        assert error is None
        assert submission.status == SubmissionStatus.APPLIED
        assert db_session.get(Dataset, world["dataset"].id).row_count == 12

    def test_apply_after_approval_defers_on_storage_failure(
        self,
        db_session: Session,
        service: SubmissionService,
        world: dict[str, Any],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        approved = _approved(service, world)

        def always_fail(self: DatasetRepository, **kwargs: Any) -> int:
            raise OperationalError("INSERT INTO dataset_data", {}, Exception("locked"))

        monkeypatch.setattr(DatasetRepository, "bulk_insert_rows", always_fail)

        submission, error = service.apply_after_approval(approved.id, actor_id=world["admin"].user_id)

        assert error
        assert submission.status == SubmissionStatus.APPROVED
        assert db_session.get(Dataset, world["dataset"].id).row_count == 10

    def test_all_invalid_rows_applies_nothing(
        self,
        db_session: Session,
        service: SubmissionService,
        world: dict[str, Any],
    ) -> None:
        approved = _approved(service, world, rows=[{"sku": "", "qty": "x"}])

        applied = service.apply(approved.id, actor_id=world["admin"].user_id)

        assert applied.status == SubmissionStatus.APPLIED
        assert db_session.get(Dataset, world["dataset"].id).row_count == 10

    def test_apply_as_requires_admin(self, service: SubmissionService, world: dict[str, Any]) -> None:
        approved = _approved(service, world)

        with pytest.raises(PermissionDeniedError):
            service.apply_as(world["member"], approved.id)
        assert service.apply_as(world["admin"], approved.id).status == SubmissionStatus.APPLIED

    def test_retry_applies_left_over_approvals(
        self,
        db_session: Session,
        service: SubmissionService,
        world: dict[str, Any],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        approved = _approved(service, world)

        def always_fail(self: DatasetRepository, **kwargs: Any) -> int:
            raise OperationalError("INSERT INTO dataset_data", {}, Exception("locked"))

        with monkeypatch.context() as patch:
            patch.setattr(DatasetRepository, "bulk_insert_rows", always_fail)
            failed = service.retry_approved()
        assert (failed.attempted, failed.applied, failed.failed) == (1, 0, 1)

        summary = service.retry_approved()

        assert (summary.attempted, summary.applied, summary.failed) == (1, 1, 0)
        assert db_session.get(DataSubmission, approved.id).status == SubmissionStatus.APPLIED
        assert service.retry_approved().attempted == 0


# ---------------------------------------------------------------------------
# Staging edits and withdrawal
# ---------------------------------------------------------------------------


class TestStagingEdits:
    def test_edit_revalidates(self, service: SubmissionService, world: dict[str, Any]) -> None:
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())
        service.validate(submission.id)

        row = service.edit_staging_row(world["member"], submission.id, 1, {"sku": "N2", "qty": "5"})

        assert row.validation_status == ValidationStatus.VALID
        assert row.data == {"sku": "N2", "qty": "5"}
        refreshed = service.get_detail(world["member"], submission.id).submission
        assert refreshed.validation_results["invalid_rows"] == 0

    def test_edit_by_other_user_is_denied(self, service: SubmissionService, world: dict[str, Any]) -> None:
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

        with pytest.raises(PermissionDeniedError):
            service.edit_staging_row(world["owner"], submission.id, 0, {"sku": "X", "qty": "1"})

    def test_edit_missing_row(self, service: SubmissionService, world: dict[str, Any]) -> None:
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

        with pytest.raises(NotFoundError):
            service.edit_staging_row(world["member"], submission.id, 9, {"sku": "X"})

    def test_edit_after_approval_conflicts(self, service: SubmissionService, world: dict[str, Any]) -> None:
        approved = _approved(service, world)

        with pytest.raises(ConflictError):
            service.edit_staging_row(world["member"], approved.id, 0, {"sku": "X", "qty": "1"})

    def test_withdraw_removes_submission_and_rows(
        self,
        db_session: Session,
        service: SubmissionService,
        world: dict[str, Any],
    ) -> None:
        submission = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())

        service.withdraw(world["member"], submission.id)

        assert db_session.get(DataSubmission, submission.id) is None
        with pytest.raises(NotFoundError):
            service.get_detail(world["member"], submission.id)

    def test_list_for_dataset_filters_by_status(self, service: SubmissionService, world: dict[str, Any]) -> None:
        pending = service.submit(world["member"], world["dataset"].id, rows=APPEND_ROWS, stored_file=_stored())
        approved = _approved(service, world, rows=[{"sku": "L1", "qty": "1"}])

        listed = service.list_for_dataset(world["owner"], world["dataset"].id, status=SubmissionStatus.APPROVED)

        assert [item.id for item in listed] == [approved.id]
        assert {item.id for item in service.list_for_dataset(world["owner"], world["dataset"].id)} == {
            pending.id,
            approved.id,
        }
