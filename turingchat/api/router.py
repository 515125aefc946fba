"""
Main API router. Mounts all sub-routers.
"""

from fastapi import APIRouter, Depends

from ..core.dependencies import get_registry
from ..services.registry import SessionRegistry

router = APIRouter()


# ── Health ───────────────────────────────────────────────────────────

@router.get("/health")
async def health(registry: SessionRegistry = Depends(get_registry)):
    return {"status": "ok", "service": "turingchat", **registry.stats()}


# ── Chat routes ──────────────────────────────────────────────────────

from .sessions import sessions_router
from .messages import messages_router

router.include_router(sessions_router)
router.include_router(messages_router)
