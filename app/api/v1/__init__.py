"""
API v1 Router

All org-scoped endpoints are prefixed with /orgs/{organizationId}.
"""

from fastapi import APIRouter
from .organizations import router_global as orgs_global_router
from .organizations import router_scoped as orgs_scoped_router

router = APIRouter()

# Organization routes (non-org-scoped: list, create)
router.include_router(orgs_global_router)

# Organization routes (org-scoped: get, members, navigation)
router.include_router(orgs_scoped_router, prefix="/orgs/{organizationId}")


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/orgs",
            "/orgs/{organizationId}",
            "/orgs/{organizationId}/members",
            "/orgs/{organizationId}/navigation",
        ],
    }
