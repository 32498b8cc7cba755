"""
Roundscope Web API

FastAPI application serving match statistics and round replays for CS2 demos.

This package exposes:
- app: The FastAPI application (used by uvicorn, server.py, wsgi.py)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from roundscope import __version__
from roundscope.core.config import get_config

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# =============================================================================
# FastAPI App Creation
# =============================================================================

app = FastAPI(
    title="Roundscope API",
    description="CS2 demo scoreboards and smooth 2D round replays",
    version=__version__,
)

# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Position payloads for a full round are large
app.add_middleware(GZipMiddleware, minimum_size=1000)

# =============================================================================
# Global Exception Handler
# =============================================================================


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler to prevent information disclosure."""
    logger.exception(f"Unhandled exception for {request.method} {request.url.path}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred. Please try again later.",
        },
    )


# =============================================================================
# Include Route Modules
# =============================================================================

from roundscope.api.routes_demos import router as demos_router  # noqa: E402
from roundscope.api.routes_misc import router as misc_router  # noqa: E402

app.include_router(demos_router)
app.include_router(misc_router)
