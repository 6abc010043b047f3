"""
app/main.py

FastAPI entrypoint for the dataset governance service.

Startup refuses to serve when configuration is broken, the database is
unreachable, or migrations have not been applied.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_api_settings

logger = logging.getLogger(__name__)

_POSITIVE_INT_VARIABLES = (
    "UPLOAD_MAX_BYTES",
    "SUBMISSION_MAX_BYTES",
    "SUBMISSION_MAX_VALIDATION_ERRORS",
    "APPLY_RETRY_INTERVAL_MINUTES",
    "APPLY_RETRY_BATCH_SIZE",
)


def _validate_env() -> None:
    """
    Collect every configuration problem and raise them together, so one
    restart is enough to see all of them.
    """

    from db.config import resolve_database_url

    problems: list[str] = []

    try:
        database_url = resolve_database_url()
    except RuntimeError as exc:
        problems.append(str(exc))
    else:
        if not database_url.startswith("postgresql"):
            problems.append("The configured database URL is not a PostgreSQL URL.")

    for name in _POSITIVE_INT_VARIABLES:
        value = os.getenv(name)
        if value is not None and not (value.strip().isdigit() and int(value) > 0):
            problems.append(f"{name}={value!r} is not a positive integer.")

    if problems:
        raise RuntimeError("Invalid configuration:\n" + "\n".join(f"  - {item}" for item in problems))


def _configure_logging() -> None:
    level = logging.getLevelName(get_api_settings().log_level)
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _verify_database() -> None:
    """
    Run ``SELECT 1`` and make sure every governance table exists.

    Tables are never created here; a missing table means ``alembic upgrade
    head`` has not been run.
    """

    from sqlalchemy import inspect, text
    from sqlalchemy.exc import SQLAlchemyError

    import db.models  # noqa: F401 registers every governance table on Base.metadata
    from db.base import Base
    from db.session import get_engine

    engine = get_engine()
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            present = set(inspect(connection).get_table_names())
    except SQLAlchemyError as exc:
        raise RuntimeError("Database unavailable.") from exc

    missing = sorted(set(Base.metadata.tables) - present)
    if missing:
        logger.critical("Governance tables missing from the database: %s", ", ".join(missing))
        raise RuntimeError(f"Missing tables {', '.join(missing)}; run 'alembic upgrade head' and restart.")
    logger.info("Database reachable, %d governance tables present", len(Base.metadata.tables))


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    _verify_database()

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    logger.info("Scheduler started jobs=%s", [job.id for job in scheduler.get_jobs()])
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped")


def create_app() -> FastAPI:
    _validate_env()
    _configure_logging()

    from app.api.routers import (
        business_rules_router,
        datasets_router,
        projects_router,
        schemas_router,
        submissions_router,
    )

    application = FastAPI(title="Dataset Governance API", version="1.0.0", lifespan=_lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(get_api_settings().cors_allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    for router in (
        projects_router,
        datasets_router,
        schemas_router,
        business_rules_router,
        submissions_router,
    ):
        application.include_router(router)

    @application.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
