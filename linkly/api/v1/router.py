"""API v1 router - aggregates all v1 endpoints."""

from fastapi import APIRouter

from linkly.api.v1.auth import router as auth_router
from linkly.api.v1.links import router as links_router

router = APIRouter(prefix="/api/v1")

router.include_router(auth_router)
router.include_router(links_router)
