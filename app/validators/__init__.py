"""
app/validators package marker.
"""

from app.validators.business_rules import (
    BusinessRuleEvaluator,
    RuleConfigError,
    validate_rule_config,
)
from app.validators.row_validator import SchemaRowValidator
from app.validators.submission_validator import StagedRowInput, SubmissionValidator

__all__ = [
    "BusinessRuleEvaluator",
    "RuleConfigError",
    "SchemaRowValidator",
    "StagedRowInput",
    "SubmissionValidator",
    "validate_rule_config",
]
