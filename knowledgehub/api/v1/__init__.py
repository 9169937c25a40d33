"""API v1 routes."""

from fastapi import APIRouter, Depends

from knowledgehub.api.rate_limit import rate_limit
from knowledgehub.api.v1 import admin, auth, content, health, notes, workflows

router = APIRouter(dependencies=[Depends(rate_limit)])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
router.include_router(notes.router, prefix="/notes", tags=["notes"])
router.include_router(workflows.router, prefix="/workflows", tags=["workflows"])
router.include_router(content.router, prefix="/content", tags=["content"])

health_router = APIRouter()
health_router.include_router(health.router, prefix="/health", tags=["health"])
