"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.business_rule import BusinessRule, RuleType
from db.models.data_submission import (
    DataSubmission,
    StagingRow,
    SubmissionStatus,
    ValidationStatus,
)
from db.models.dataset import Dataset, DatasetStatus
from db.models.dataset_row import DatasetRow
from db.models.dataset_schema import DatasetSchema, FieldDataType, SchemaField
from db.models.project import MemberRole, MemberStatus, Project, ProjectMember
from db.models.user import User

__all__ = [
    "User",
    "Project",
    "ProjectMember",
    "MemberRole",
    "MemberStatus",
    "Dataset",
    "DatasetStatus",
    "DatasetSchema",
    "SchemaField",
    "FieldDataType",
    "DatasetRow",
    "DataSubmission",
    "StagingRow",
    "SubmissionStatus",
    "ValidationStatus",
    "BusinessRule",
    "RuleType",
]
