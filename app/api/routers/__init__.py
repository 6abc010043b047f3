"""
app/api/routers package marker.
"""

from app.api.routers.business_rules import router as business_rules_router
from app.api.routers.datasets import router as datasets_router
from app.api.routers.projects import router as projects_router
from app.api.routers.schemas import router as schemas_router
from app.api.routers.submissions import router as submissions_router

__all__ = [
    "business_rules_router",
    "datasets_router",
    "projects_router",
    "schemas_router",
    "submissions_router",
]
