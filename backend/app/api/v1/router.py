"""API v1 router aggregator.

All v1 endpoint routers are included here and mounted at /api/v1.
"""

from fastapi import APIRouter

from app.api.v1 import conversations

router = APIRouter()

# =============================================================================
# Conversation Routers
# =============================================================================

router.include_router(
    conversations.router, prefix="/conversations", tags=["conversations"]
)
