"""
app/api/routers package marker.
"""

from app.api.routers.jobs import router as jobs_router
from app.api.routers.members import router as members_router
from app.api.routers.organizations import router as organizations_router

__all__ = [
    "jobs_router",
    "members_router",
    "organizations_router",
]
