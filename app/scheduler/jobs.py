"""
app/scheduler/jobs.py

APScheduler-based background scheduler for the submission workflow.

Jobs
-----
  apply_retry: every ``APPLY_RETRY_INTERVAL_MINUTES`` minutes, re-run Apply
                for submissions left `approved` because the apply that
                followed their approval failed.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.exc import SQLAlchemyError

from app.config import get_apply_retry_settings, get_submission_settings
from app.services.submission_service import RetrySummary, SubmissionService
from db.session import session_scope

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: apply retry
# ---------------------------------------------------------------------------


def run_apply_retry(batch_size: int | None = None) -> RetrySummary | None:
    """
    Apply approved submissions in one fresh session.

    Each submission is applied in its own transaction; one failure does not
    stop the batch.
    """
    settings = get_apply_retry_settings()
    limit = batch_size or settings.batch_size
    logger.info("Scheduler: apply_retry starting batch_size=%d", limit)

    with session_scope() as db:
        service = SubmissionService(
            db,
            max_validation_errors=get_submission_settings().max_validation_errors,
        )
        try:
            summary = service.retry_approved(batch_size=limit)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Scheduler: apply_retry failed: %s", exc)
            return None

    logger.info(
        "Scheduler: apply_retry complete attempted=%d applied=%d failed=%d",
        summary.attempted,
        summary.applied,
        summary.failed,
    )
    return summary


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points. With ``APPLY_RETRY_ENABLED=false`` the
    scheduler has no jobs.
    """
    scheduler = BackgroundScheduler(timezone="UTC")
    settings = get_apply_retry_settings()

    if settings.enabled:
        scheduler.add_job(
            run_apply_retry,
            trigger="interval",
            minutes=settings.interval_minutes,
            id="apply_retry",
            name="Retry apply of approved submissions",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.interval_minutes * 60,
        )
    else:
        logger.info("Scheduler: apply_retry disabled")

    return scheduler
