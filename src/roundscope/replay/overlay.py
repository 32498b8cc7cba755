"""
Multi-round overlay ("ghosts").

Loads several rounds one at a time and lays the selected players of every
loaded round over each other at the same offset from round start, so the
same player's routes can be compared across rounds.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from roundscope.core.constants import Side
from roundscope.replay.builder import RoundReplay
from roundscope.replay.interpolation import interpolate_at_tick

logger = logging.getLogger(__name__)


@dataclass
class PrefetchResult:
    """Rounds loaded by ``prefetch_rounds``."""

    replays: dict[int, RoundReplay] = field(default_factory=dict)
    failures: dict[int, str] = field(default_factory=dict)
    cancelled: bool = False

    @property
    def loaded(self) -> int:
        return len(self.replays)


def prefetch_rounds(
    fetch: Callable[[int], RoundReplay],
    rounds: Iterable[int],
    existing: Mapping[int, RoundReplay] | None = None,
    on_progress: Callable[[int, int], None] | None = None,
    cancel: threading.Event | None = None,
) -> PrefetchResult:
    """
    Load rounds sequentially.

    A round that fails is logged and recorded in ``failures``; the rest
    still load, and the failed one can be fetched again later on its own.

    Args:
        fetch: Loads one round by number (typically cached by the caller)
        rounds: Round numbers to load, in order
        existing: Rounds already loaded; these are not fetched again
        on_progress: Called with (done, total) after each round
        cancel: Stops before the next round once set
    """
    round_list = list(rounds)
    total = len(round_list)
    result = PrefetchResult()

    done = 0
    for round_num in round_list:
        if cancel is not None and cancel.is_set():
            result.cancelled = True
            logger.info(f"Prefetch cancelled after {done}/{total} rounds")
            break

        if existing is not None and round_num in existing:
            result.replays[round_num] = existing[round_num]
        else:
            try:
                result.replays[round_num] = fetch(round_num)
            except Exception as e:
                logger.warning(f"Failed to load round {round_num}: {e}")
                result.failures[round_num] = str(e)

        done += 1
        if on_progress is not None:
            on_progress(done, total)

    logger.info(f"Prefetched {result.loaded}/{total} rounds ({len(result.failures)} failed)")
    return result


@dataclass(frozen=True)
class GhostPosition:
    """One player's position in one round at the shared time offset."""

    round_num: int
    steam_id: int
    name: str
    side: Side | None
    x: float
    y: float
    z: float
    yaw: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round_num,
            "steamid": str(self.steam_id),
            "name": self.name,
            "team": self.side.value if self.side else None,
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "z": round(self.z, 2),
            "yaw": round(self.yaw, 2),
        }


def overlay_positions(
    replays: Mapping[int, RoundReplay],
    playback_time: float,
    steam_ids: Iterable[int] | None = None,
) -> list[GhostPosition]:
    """
    Positions of the selected players in every round at ``playback_time``
    seconds after each round's start tick.

    Before a round's first sample the first sample is used; after its last
    sample the last one is held.
    """
    wanted = set(steam_ids) if steam_ids is not None else None
    ghosts: list[GhostPosition] = []
    for round_num in sorted(replays):
        replay = replays[round_num]
        tick = replay.start_tick + max(0.0, playback_time) * replay.tick_rate
        frame = interpolate_at_tick(replay.snapshots, tick)
        if frame is None:
            continue
        for state in frame.players:
            if wanted is not None and state.steam_id not in wanted:
                continue
            ghosts.append(
                GhostPosition(
                    round_num=round_num,
                    steam_id=state.steam_id,
                    name=state.name,
                    side=state.side,
                    x=state.x,
                    y=state.y,
                    z=state.z,
                    yaw=state.yaw,
                )
            )
    return ghosts
