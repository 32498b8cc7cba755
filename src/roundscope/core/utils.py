"""
Utility functions for Roundscope.

This module provides:
- Performance timing decorator
- Safe scalar conversion for decoder output (NaN/None tolerant)
- The "latest event at or before a tick" lookup shared by the replay path
"""

import logging
import time
from collections.abc import Callable, Iterable
from functools import wraps
from typing import Any, TypeVar

import pandas as pd

logger = logging.getLogger(__name__)

# Type variable for generic decorators
F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")


def timed(func: F) -> F:
    """
    Decorator to measure and log function execution time.

    Usage:
        @timed
        def my_function():
            ...
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start_time
        logger.info(f"{func.__name__} completed in {elapsed:.3f}s")
        return result

    return wrapper  # type: ignore


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        # Lists/arrays are never "missing" as a whole
        return False


def safe_int(value: Any, default: int | None = 0) -> int | None:
    """Safely convert a value to int."""
    if _is_missing(value):
        return default
    if isinstance(value, bool):
        return int(value)
    try:
        # int() first so 17-digit Steam IDs in strings keep full precision
        return int(value)
    except (ValueError, TypeError, OverflowError):
        pass
    try:
        return int(float(value))
    except (ValueError, TypeError, OverflowError):
        return default


def safe_float(value: Any, default: float | None = 0.0) -> float | None:
    """Safely convert a value to float."""
    if _is_missing(value):
        return default
    try:
        return float(value)
    except (ValueError, TypeError):
        return default


def safe_str(value: Any, default: str = "") -> str:
    """Safely convert a value to string."""
    if _is_missing(value):
        return default
    return str(value)


def safe_bool(value: Any, default: bool = False) -> bool:
    """Safely convert a value to bool. Accepts "true"/"false" strings."""
    if _is_missing(value):
        return default
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no", ""):
            return False
        return default
    try:
        return bool(value)
    except (ValueError, TypeError):
        return default


def safe_steamid(value: Any) -> int | None:
    """Convert a player identity, treating 0/blank/NaN as unidentified."""
    steamid = safe_int(value, default=None)
    if not steamid or steamid <= 0:
        return None
    return steamid


def latest_at_or_before(
    items: Iterable[T],
    tick: float,
    key: Callable[[T], float] = lambda item: item.tick,  # type: ignore[attr-defined]
    strict: bool = False,
) -> T | None:
    """
    Pick the item with the greatest tick at or before ``tick``.

    Tie-break: among items sharing the winning tick, the one appearing
    later in ``items`` wins. Input order is otherwise irrelevant, so the
    result is the same for sorted and unsorted input.

    Args:
        items: Candidates (events, throws, ...)
        tick: Query tick (may be fractional)
        key: Extracts the tick from an item
        strict: If True, only items with tick strictly less than ``tick`` qualify

    Returns:
        The selected item, or None if nothing qualifies
    """
    best: T | None = None
    best_tick: float | None = None
    for item in items:
        item_tick = key(item)
        if item_tick > tick or (strict and item_tick == tick):
            continue
        if best_tick is None or item_tick >= best_tick:
            best = item
            best_tick = item_tick
    return best
