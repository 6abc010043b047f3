"""
app/services package marker.
"""

from app.services.access import AccessPolicy, require_admin
from app.services.business_rule_service import BusinessRuleService
from app.services.dataset_service import DatasetService, RowPage
from app.services.project_service import ProjectService
from app.services.schema_inference import InferredField, InferredSchema, SchemaInferenceService
from app.services.schema_service import SchemaDefinitionError, SchemaService
from app.services.submission_service import (
    RetrySummary,
    ReviewDecision,
    SubmissionDetail,
    SubmissionService,
)
from app.services.tabular_parser import ParsedTable, TabularParseError, TabularParser

__all__ = [
    "AccessPolicy",
    "require_admin",
    "BusinessRuleService",
    "DatasetService",
    "RowPage",
    "ProjectService",
    "InferredField",
    "InferredSchema",
    "SchemaInferenceService",
    "SchemaDefinitionError",
    "SchemaService",
    "RetrySummary",
    "ReviewDecision",
    "SubmissionDetail",
    "SubmissionService",
    "ParsedTable",
    "TabularParseError",
    "TabularParser",
]
