"""
REST API router.

Every admin endpoint lives under /api (the prefix is applied in main).
"""

from fastapi import APIRouter

from . import apps, groups, login_events, navs, resources, roles, updates

router = APIRouter()

router.include_router(apps.router, tags=["Apps"])
router.include_router(groups.router, tags=["Groups"])
router.include_router(roles.router, tags=["Roles"])
router.include_router(resources.router, tags=["Resources"])
router.include_router(navs.router, tags=["Navs"])
router.include_router(login_events.router, tags=["Login Events"])
router.include_router(updates.router, tags=["Resource Updates"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: the available endpoints."""
    return {
        "api": "fort",
        "version": "0.1.0",
        "endpoints": [
            "/security-apps",
            "/security-groups",
            "/security-roles",
            "/security-resource-entities",
            "/security-navs",
            "/security-login-events",
            "/_search/{resource}",
            "/security-resource-updates/snapshot",
            "/security-resource-updates/stream",
        ],
    }
