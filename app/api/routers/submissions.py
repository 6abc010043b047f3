"""
app/api/routers/submissions.py

Append-request endpoints: intake, validation, review, apply and staging edits.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, UploadFile, status

from app.api.dependencies import get_current_actor, get_submission_service, get_tabular_upload
from app.api.errors import translate_errors
from app.domain.actor import Actor
from app.schemas.submissions import (
    ReviewRequest,
    ReviewResponse,
    StagingRowResponse,
    StagingRowUpdateRequest,
    SubmissionDetailResponse,
    SubmissionListResponse,
    SubmissionResponse,
)
from app.services.submission_service import ReviewDecision, SubmissionService
from db.models.data_submission import SubmissionStatus

router = APIRouter(tags=["submissions"])


@router.post(
    "/datasets/{dataset_id}/submissions",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_rows(
    dataset_id: UUID,
    file: UploadFile = Depends(get_tabular_upload),
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmissionResponse:
    """
    Stage the rows of a CSV or Excel file as an append request.
    """

    try:
        content = file.file.read()
        with translate_errors():
            submission = service.submit_upload(
                actor,
                dataset_id,
                file_name=file.filename or "",
                content=content,
                content_type=file.content_type,
            )
    finally:
        file.file.close()

    return SubmissionResponse.model_validate(submission)


@router.get("/datasets/{dataset_id}/submissions", response_model=SubmissionListResponse)
def list_submissions(
    dataset_id: UUID,
    status_filter: str | None = Query(default=None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmissionListResponse:
    with translate_errors():
        submissions = service.list_for_dataset(actor, dataset_id, status=status_filter)
    return SubmissionListResponse(
        submissions=[SubmissionResponse.model_validate(item) for item in submissions]
    )


@router.get("/submissions/queue", response_model=SubmissionListResponse)
def review_queue(
    limit: int = Query(default=100, ge=1, le=500),
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmissionListResponse:
    """
    Admin queue of submissions awaiting validation or a decision, oldest first.
    """

    with translate_errors():
        submissions = service.review_queue(actor, limit=limit)
    return SubmissionListResponse(
        submissions=[SubmissionResponse.model_validate(item) for item in submissions]
    )


@router.get("/submissions/{submission_id}", response_model=SubmissionDetailResponse)
def get_submission(
    submission_id: UUID,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=100),
    validation_status: str | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmissionDetailResponse:
    with translate_errors():
        detail = service.get_detail(
            actor,
            submission_id,
            page=page,
            page_size=page_size,
            validation_status=validation_status,
        )
    return SubmissionDetailResponse(
        submission=SubmissionResponse.model_validate(detail.submission),
        staging_rows=[StagingRowResponse.model_validate(row) for row in detail.staging_rows],
        total_staged=detail.total_staged,
        page=detail.page,
        page_size=detail.page_size,
        total_pages=detail.total_pages,
    )


@router.post("/submissions/{submission_id}/validate", response_model=SubmissionResponse)
def validate_submission(
    submission_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmissionResponse:
    with translate_errors():
        submission = service.validate(submission_id, actor=actor)
    return SubmissionResponse.model_validate(submission)


@router.post("/submissions/{submission_id}/review", response_model=ReviewResponse)
def review_submission(
    submission_id: UUID,
    body: ReviewRequest,
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
) -> ReviewResponse:
    """
    Approve or reject a submission. Approval applies the rows right away;
    when that apply fails the submission stays `approved` for the retry job.
    """

    apply_error: str | None = None
    with translate_errors():
        submission = service.review(
            actor,
            submission_id,
            decision=body.decision,
            admin_notes=body.admin_notes,
        )
        if body.decision == ReviewDecision.APPROVE and submission.status == SubmissionStatus.APPROVED:
            submission, apply_error = service.apply_after_approval(submission.id, actor_id=actor.user_id)

    return ReviewResponse(
        submission=SubmissionResponse.model_validate(submission),
        apply_error=apply_error,
    )


@router.post("/submissions/{submission_id}/apply", response_model=SubmissionResponse)
def apply_submission(
    submission_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmissionResponse:
    with translate_errors():
        submission = service.apply_as(actor, submission_id)
    return SubmissionResponse.model_validate(submission)


@router.put(
    "/submissions/{submission_id}/rows/{row_index}",
    response_model=StagingRowResponse,
)
def edit_staging_row(
    submission_id: UUID,
    row_index: int,
    body: StagingRowUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
) -> StagingRowResponse:
    with translate_errors():
        row = service.edit_staging_row(actor, submission_id, row_index, body.data)
    return StagingRowResponse.model_validate(row)


@router.delete("/submissions/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
def withdraw_submission(
    submission_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: SubmissionService = Depends(get_submission_service),
) -> Response:
    with translate_errors():
        service.withdraw(actor, submission_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
