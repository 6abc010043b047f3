"""
app/config.py

Settings for the governance API, read from the environment (and the project
``.env`` files) once per process. Call ``cache_clear()`` on a getter to pick
up changed variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

MEBIBYTE = 1024 * 1024
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    load_env_files()


def _raw(name: str) -> str | None:
    _load_env_once()
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _flag(name: str, default: bool) -> bool:
    value = _raw(name)
    return default if value is None else value.lower() in _TRUE_VALUES


def _positive_int(name: str, default: int) -> int:
    """Malformed values fall back to the default; anything below 1 is raised to 1."""
    value = _raw(name)
    try:
        parsed = default if value is None else int(value)
    except ValueError:
        parsed = default
    return max(1, parsed)


def _text(name: str, default: str) -> str:
    return _raw(name) or default


def _csv_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = _raw(name)
    if value is None:
        return default
    return tuple(part.strip() for part in value.split(",") if part.strip()) or default


@dataclass(frozen=True)
class UploadSettings:
    storage_dir: str = "data/uploads"
    max_upload_bytes: int = 50 * MEBIBYTE
    max_submission_bytes: int = 10 * MEBIBYTE


@dataclass(frozen=True)
class SubmissionSettings:
    """
    ``auto_validate`` runs validation right after intake so new submissions
    land in the review queue. ``max_validation_errors`` caps the issues kept
    in a submission's stored validation report.
    """

    auto_validate: bool = True
    max_validation_errors: int = 500


@dataclass(frozen=True)
class ApplyRetrySettings:
    enabled: bool = True
    interval_minutes: int = 5
    batch_size: int = 20


@dataclass(frozen=True)
class APISettings:
    cors_allow_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_upload_settings() -> UploadSettings:
    return UploadSettings(
        storage_dir=_text("UPLOAD_STORAGE_DIR", UploadSettings.storage_dir),
        max_upload_bytes=_positive_int("UPLOAD_MAX_BYTES", UploadSettings.max_upload_bytes),
        max_submission_bytes=_positive_int("SUBMISSION_MAX_BYTES", UploadSettings.max_submission_bytes),
    )


@lru_cache(maxsize=1)
def get_submission_settings() -> SubmissionSettings:
    return SubmissionSettings(
        auto_validate=_flag("SUBMISSION_AUTO_VALIDATE", SubmissionSettings.auto_validate),
        max_validation_errors=_positive_int(
            "SUBMISSION_MAX_VALIDATION_ERRORS", SubmissionSettings.max_validation_errors
        ),
    )


@lru_cache(maxsize=1)
def get_apply_retry_settings() -> ApplyRetrySettings:
    """Settings for the scheduler job that re-applies approved submissions."""
    return ApplyRetrySettings(
        enabled=_flag("APPLY_RETRY_ENABLED", ApplyRetrySettings.enabled),
        interval_minutes=_positive_int("APPLY_RETRY_INTERVAL_MINUTES", ApplyRetrySettings.interval_minutes),
        batch_size=_positive_int("APPLY_RETRY_BATCH_SIZE", ApplyRetrySettings.batch_size),
    )


@lru_cache(maxsize=1)
def get_api_settings() -> APISettings:
    return APISettings(
        cors_allow_origins=_csv_list("CORS_ALLOW_ORIGINS", APISettings.cors_allow_origins),
        log_level=_text("LOG_LEVEL", APISettings.log_level).upper(),
    )
