"""
Miscellaneous route handlers.

Endpoints:
- GET /health — health check
- GET /api/cache/stats — memo cache statistics
- POST /api/cache/clear — drop all memoized results
"""

import logging
from typing import Any

from fastapi import APIRouter

from roundscope.api.shared import HealthResponse, get_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["misc"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse()


@router.get("/api/cache/stats")
async def cache_stats() -> dict[str, Any]:
    """Get memo cache statistics."""
    return get_service().cache.get_stats().to_dict()


@router.post("/api/cache/clear")
async def clear_cache() -> dict[str, str]:
    """Clear all memoized results."""
    get_service().cache.clear()
    logger.info("Memo cache cleared")
    return {"status": "ok", "message": "Cache cleared"}
