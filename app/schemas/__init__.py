"""
app/schemas package marker.
"""

from app.schemas.business_rules import (
    BusinessRuleCreateRequest,
    BusinessRuleResponse,
    BusinessRuleUpdateRequest,
)
from app.schemas.dataset_schemas import (
    DatasetSchemaResponse,
    FieldSwapRequest,
    InferredSchemaResponse,
    SchemaCreateRequest,
    SchemaFieldRequest,
    SchemaUpdateRequest,
)
from app.schemas.datasets import (
    DatasetResponse,
    DatasetRowPageResponse,
    DatasetRowQueryRequest,
    DatasetRowResponse,
    DatasetRowUpdateRequest,
)
from app.schemas.projects import (
    InvitationResponseRequest,
    ProjectCreateRequest,
    ProjectMemberCreateRequest,
    ProjectMemberResponse,
    ProjectResponse,
    ProjectUpdateRequest,
)
from app.schemas.submissions import (
    ReviewRequest,
    ReviewResponse,
    StagingRowResponse,
    StagingRowUpdateRequest,
    SubmissionDetailResponse,
    SubmissionListResponse,
    SubmissionResponse,
)

__all__ = [
    "BusinessRuleCreateRequest",
    "BusinessRuleResponse",
    "BusinessRuleUpdateRequest",
    "DatasetSchemaResponse",
    "FieldSwapRequest",
    "InferredSchemaResponse",
    "SchemaCreateRequest",
    "SchemaFieldRequest",
    "SchemaUpdateRequest",
    "DatasetResponse",
    "DatasetRowPageResponse",
    "DatasetRowQueryRequest",
    "DatasetRowResponse",
    "DatasetRowUpdateRequest",
    "InvitationResponseRequest",
    "ProjectCreateRequest",
    "ProjectMemberCreateRequest",
    "ProjectMemberResponse",
    "ProjectResponse",
    "ProjectUpdateRequest",
    "ReviewRequest",
    "ReviewResponse",
    "StagingRowResponse",
    "StagingRowUpdateRequest",
    "SubmissionDetailResponse",
    "SubmissionListResponse",
    "SubmissionResponse",
]
