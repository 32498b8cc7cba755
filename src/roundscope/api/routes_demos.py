"""
Demo route handlers.

Endpoints:
- GET /api/demos — list recordings
- GET /api/demos/{name} — header + scoreboard (statistics query)
- GET /api/demos/{name}/positions — replay data for a tick range (replay query)
- GET /api/demos/{name}/rounds/{round_num}/frame — one interpolated frame
- GET /api/demos/{name}/overlay — ghost positions across rounds

Handlers are plain functions; FastAPI runs them in its threadpool since
decoding blocks.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from roundscope.api.shared import (
    MAX_OVERLAY_ROUNDS,
    DemoInfo,
    get_service,
    parse_int_list,
    validate_time,
)
from roundscope.core.decoder import DemoDecodeError
from roundscope.service import InvalidDemoNameError, InvalidTickRangeError, RoundNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["demos"])


@router.get("/api/demos", response_model=list[DemoInfo])
def list_demos() -> list[dict[str, Any]]:
    """List all demos."""
    try:
        return get_service().list_demos()
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail="Demos directory not found") from e


@router.get("/api/demos/{name}")
def get_demo(name: str) -> dict[str, Any]:
    """Header and match statistics for one demo."""
    try:
        return get_service().get_match_stats(name)
    except InvalidDemoNameError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail="Demo file not found") from e
    except DemoDecodeError as e:
        logger.exception(f"Failed to parse demo {name}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to parse demo", "details": str(e)},
        ) from e


@router.get("/api/demos/{name}/positions")
def get_positions(
    name: str,
    start_tick: str | None = Query(None, alias="startTick"),
    end_tick: str | None = Query(None, alias="endTick"),
    interval: str | None = Query(None),
) -> dict[str, Any]:
    """Snapshots, kills, shots, grenades and bomb events for a tick range."""
    logger.info(f"Positions request for {name}, ticks {start_tick}-{end_tick}, interval {interval}")
    try:
        replay = get_service().get_round_replay(name, start_tick, end_tick, interval)
    except InvalidTickRangeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except InvalidDemoNameError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail="Demo file not found") from e
    except DemoDecodeError as e:
        logger.exception(f"Failed to parse positions for {name}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to parse positions", "details": str(e)},
        ) from e
    return replay.to_dict()


@router.get("/api/demos/{name}/rounds/{round_num}/frame")
def get_round_frame(name: str, round_num: int, time: float = Query(0.0)) -> dict[str, Any]:
    """The interpolated frame ``time`` seconds into a round."""
    validate_time(time)
    try:
        frame = get_service().get_round_frame(name, round_num, time)
    except InvalidDemoNameError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (FileNotFoundError, RoundNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except DemoDecodeError as e:
        logger.exception(f"Failed to build frame for {name} round {round_num}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to build frame", "details": str(e)},
        ) from e
    return {"round": round_num, **frame.to_dict()}


@router.get("/api/demos/{name}/overlay")
def get_overlay(
    name: str,
    rounds: str = Query(..., description="Comma-separated round numbers"),
    time: float = Query(0.0),
    steamids: str | None = Query(None, description="Comma-separated Steam IDs"),
) -> dict[str, Any]:
    """Positions of the selected players in each selected round at the same offset."""
    validate_time(time)
    round_list = parse_int_list(rounds, "rounds", limit=MAX_OVERLAY_ROUNDS) or []
    steam_ids = parse_int_list(steamids, "steamids")
    try:
        ghosts, failures = get_service().get_overlay(name, round_list, time, steam_ids)
    except InvalidDemoNameError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail="Demo file not found") from e
    except DemoDecodeError as e:
        logger.exception(f"Failed to build overlay for {name}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to build overlay", "details": str(e)},
        ) from e
    return {
        "time": time,
        "ghosts": [g.to_dict() for g in ghosts],
        "failed_rounds": {str(k): v for k, v in failures.items()},
    }
