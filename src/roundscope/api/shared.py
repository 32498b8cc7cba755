"""
Shared utilities for the Roundscope API.

Contains the service accessor used by all route modules, query parsing
helpers and response models.
"""

import logging
import threading

from fastapi import HTTPException
from pydantic import BaseModel, Field

from roundscope import __version__
from roundscope.service import DemoService

logger = logging.getLogger(__name__)

MAX_OVERLAY_ROUNDS = 30

# =============================================================================
# Service Instance
# =============================================================================

_service: DemoService | None = None
_service_lock = threading.Lock()


def get_service() -> DemoService:
    """Get the process-wide DemoService, creating it on first use."""
    global _service
    with _service_lock:
        if _service is None:
            _service = DemoService()
            logger.info(f"Serving demos from: {_service.demos_dir}")
        return _service


def set_service(service: DemoService | None) -> None:
    """Replace the process-wide DemoService (None resets it)."""
    global _service
    with _service_lock:
        _service = service


# =============================================================================
# Query Parsing
# =============================================================================


def parse_int_list(value: str | None, label: str, limit: int | None = None) -> list[int] | None:
    """Parse "1,2,3" into ints. Raises HTTPException(400) if malformed."""
    if value is None or not value.strip():
        return None
    try:
        items = [int(part) for part in value.split(",") if part.strip()]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid {label}: expected comma-separated integers") from e
    if limit is not None and len(items) > limit:
        raise HTTPException(status_code=400, detail=f"Too many {label}: at most {limit}")
    return items


def validate_time(time: float) -> float:
    """Validate a playback time in seconds."""
    if time < 0:
        raise HTTPException(status_code=400, detail="Invalid time: must be >= 0")
    return time


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = __version__


class DemoInfo(BaseModel):
    """A recording available for analysis."""

    name: str = Field(..., description="File name of the demo")
    size: int = Field(..., description="File size in bytes")
    modified: str = Field(..., description="Last modification time (ISO 8601)")
