"""API router for v1 endpoints."""

from fastapi import APIRouter

from promptmux.api import settings, stream, workspace

router = APIRouter()

# Workspace tree: projects, sections, topics, history, merged output
router.include_router(workspace.router, prefix="/workspace", tags=["workspace"])

# Provider settings
router.include_router(settings.router, prefix="/settings", tags=["settings"])

# Provider streams as SSE
router.include_router(stream.router, prefix="/stream", tags=["stream"])
