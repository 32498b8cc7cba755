"""
Round replay assembly.

Combines the normalized event stream with decoder snapshots for a tick
range into a RoundReplay: snapshots grouped by tick (with blind time
applied), kills annotated with the victim's position, shots, reconstructed
grenades and bomb events with positions backfilled. ``RoundReplay.frame_at``
then answers "what does the round look like t seconds in".
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from roundscope.core.config import ReplayConfig
from roundscope.core.constants import EventKind
from roundscope.core.events import Event, sort_events
from roundscope.core.utils import timed
from roundscope.replay.bomb import BombEvent, BombStatus, bomb_state_at, collect_bomb_events
from roundscope.replay.frames import Frame, GrenadeFrame, KillMarker, PlayerFrame, Shot
from roundscope.replay.grenades import GrenadeEffect, reconstruct_grenades
from roundscope.replay.interpolation import interpolate_frame
from roundscope.replay.snapshots import SnapshotIndexer, SnapshotSet, blind_windows

logger = logging.getLogger(__name__)


def sample_ticks(start_tick: int, end_tick: int, interval: int = 1) -> list[int]:
    """Ticks to request from the decoder: start..end inclusive, every ``interval``."""
    if interval < 1:
        raise ValueError(f"interval must be >= 1, got {interval}")
    return list(range(start_tick, end_tick + 1, interval))


@dataclass
class RoundReplay:
    """Replay data for one tick range (usually one round)."""

    start_tick: int
    end_tick: int
    interval: int
    snapshots: SnapshotSet
    kills: list[KillMarker] = field(default_factory=list)
    shots: list[Shot] = field(default_factory=list)
    grenades: list[GrenadeEffect] = field(default_factory=list)
    bomb_events: list[BombEvent] = field(default_factory=list)
    config: ReplayConfig = field(default_factory=ReplayConfig)
    round_num: int | None = None

    _indexer: SnapshotIndexer = field(init=False, repr=False, compare=False)
    _shot_ticks: dict[int, np.ndarray] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._indexer = SnapshotIndexer(self.snapshots)
        by_player: dict[int, list[int]] = defaultdict(list)
        for shot in self.shots:
            by_player[shot.steam_id].append(shot.tick)
        self._shot_ticks = {sid: np.array(sorted(ticks), dtype=np.int64) for sid, ticks in by_player.items()}

    @property
    def tick_rate(self) -> int:
        return self.config.tick_rate

    @property
    def first_tick(self) -> int:
        first = self.snapshots.first_tick
        return first if first is not None else self.start_tick

    @property
    def duration(self) -> float:
        """Playable length in seconds (first to last sample)."""
        first, last = self.snapshots.first_tick, self.snapshots.last_tick
        if first is None or last is None:
            return 0.0
        return (last - first) / self.tick_rate

    def tick_at(self, playback_time: float) -> float:
        return self.first_tick + self._clamp_time(playback_time) * self.tick_rate

    def _clamp_time(self, playback_time: float) -> float:
        return min(max(0.0, playback_time), self.duration)

    def _is_firing(self, steam_id: int, tick: float) -> bool:
        ticks = self._shot_ticks.get(steam_id)
        if ticks is None:
            return False
        lo = np.searchsorted(ticks, tick - self.config.shot_window_back, side="left")
        hi = np.searchsorted(ticks, tick + self.config.shot_window_forward, side="right")
        return bool(hi > lo)

    def _tracer(self, steam_id: int, tick: float) -> tuple[float, float | None]:
        ticks = self._shot_ticks.get(steam_id)
        if ticks is None or self.config.tracer_ticks <= 0:
            return 0.0, None
        idx = int(np.searchsorted(ticks, tick, side="right")) - 1
        if idx < 0:
            return 0.0, None
        shot_tick = int(ticks[idx])
        age = tick - shot_tick
        if age > self.config.tracer_ticks:
            return 0.0, None
        at_shot = self._indexer.state_at_or_before(steam_id, shot_tick)
        return max(0.0, 1.0 - age / self.config.tracer_ticks), at_shot.yaw if at_shot else None

    def _grenade_frames(self, tick: float) -> list[GrenadeFrame]:
        frames = []
        for grenade in self.grenades:
            phase = grenade.phase_at(tick, self.tick_rate)
            if phase == "flight":
                x, y, z = grenade.projectile_position(tick)
                progress = grenade.flight_progress(tick)
            elif phase == "active":
                x, y, z = grenade.position
                progress = (tick - grenade.tick) / grenade.duration_ticks(self.tick_rate)
            else:
                continue
            frames.append(
                GrenadeFrame(
                    type=grenade.category.value,
                    phase=phase,
                    x=x,
                    y=y,
                    z=z,
                    thrower_name=grenade.thrower_name,
                    progress=progress,
                )
            )
        return frames

    def frame_at(self, playback_time: float) -> Frame:
        """
        Compose the frame ``playback_time`` seconds after the first sample.

        Stateless: every call recomputes from the replay data, so callers
        may jump to any time in any order.
        """
        time = self._clamp_time(playback_time)
        tick = self.first_tick + time * self.tick_rate
        interpolated = interpolate_frame(self.snapshots, time, self.tick_rate, self.first_tick)
        bomb = bomb_state_at(self.bomb_events, tick, self.tick_rate, self.config.fuse_seconds)

        players = []
        for state in interpolated.players if interpolated else []:
            tracer, tracer_yaw = self._tracer(state.steam_id, tick)
            players.append(
                PlayerFrame(
                    state=state,
                    is_firing=self._is_firing(state.steam_id, tick),
                    tracer=tracer,
                    tracer_yaw=tracer_yaw,
                    has_bomb=bomb.status is BombStatus.CARRIED and bomb.holder_steam_id == state.steam_id,
                )
            )

        return Frame(
            time=time,
            tick=tick,
            players=players,
            grenades=self._grenade_frames(tick),
            bomb=bomb,
            kills=[k for k in self.kills if k.tick <= tick and k.position is not None],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round_num,
            "start_tick": self.start_tick,
            "end_tick": self.end_tick,
            "interval": self.interval,
            "tick_rate": self.tick_rate,
            "duration": round(self.duration, 3),
            "positions": self.snapshots.to_dict(),
            "kills": [k.to_dict() for k in self.kills],
            "shots": [s.to_dict() for s in self.shots],
            "grenades": [g.to_dict() for g in self.grenades],
            "bomb_events": [b.to_dict() for b in self.bomb_events],
        }


def _in_range(event: Event, start_tick: int, end_tick: int) -> bool:
    return start_tick <= event.tick <= end_tick


@timed
def build_round_replay(
    events: Sequence[Event],
    snapshots: pd.DataFrame | SnapshotSet | None,
    start_tick: int,
    end_tick: int,
    interval: int = 1,
    config: ReplayConfig | None = None,
    round_num: int | None = None,
) -> RoundReplay:
    """
    Assemble a RoundReplay for [start_tick, end_tick].

    Args:
        events: Normalized events (the whole match is fine; each list is range-filtered)
        snapshots: Decoder tick rows or an already built SnapshotSet
        start_tick: First tick of the range (inclusive)
        end_tick: Last tick of the range (inclusive)
        interval: Sampling interval the snapshots were requested with
        config: Replay settings (tick rate, fuse, firing window)
        round_num: Optional round label

    Raises:
        ValueError: If the range is inverted or the interval is below 1
    """
    if end_tick < start_tick:
        raise ValueError(f"end_tick ({end_tick}) is before start_tick ({start_tick})")
    if interval < 1:
        raise ValueError(f"interval must be >= 1, got {interval}")

    config = config or ReplayConfig()
    ordered = sort_events(events)

    snapshot_set = snapshots if isinstance(snapshots, SnapshotSet) else SnapshotSet.from_dataframe(snapshots)
    snapshot_set = snapshot_set.with_blind_windows(blind_windows(ordered, config.tick_rate), config.tick_rate)
    indexer = SnapshotIndexer(snapshot_set)

    kills = []
    missing_positions = 0
    for event in ordered:
        if event.kind is not EventKind.DEATH or not _in_range(event, start_tick, end_tick):
            continue
        position = indexer.position_at_or_before(event.user_steamid, event.tick)
        if position is None:
            missing_positions += 1
        kills.append(
            KillMarker(
                tick=event.tick,
                victim_steam_id=event.user_steamid,
                victim_name=event.user_name,
                attacker_steam_id=event.attacker_steamid,
                attacker_name=event.attacker_name,
                weapon=event.weapon,
                headshot=event.headshot,
                position=position,
            )
        )
    if missing_positions:
        logger.debug(f"{missing_positions} kills without a resolvable victim position")

    shots = [
        Shot(tick=e.tick, steam_id=e.user_steamid, weapon=e.weapon)
        for e in ordered
        if e.kind is EventKind.WEAPON_FIRED and e.user_steamid is not None and _in_range(e, start_tick, end_tick)
    ]

    replay = RoundReplay(
        start_tick=start_tick,
        end_tick=end_tick,
        interval=interval,
        snapshots=snapshot_set,
        kills=kills,
        shots=shots,
        grenades=reconstruct_grenades(ordered, indexer, start_tick, end_tick),
        # No lower bound: the carrier usually picks the bomb up during freeze time
        bomb_events=collect_bomb_events(ordered, indexer, end_tick=end_tick),
        config=config,
        round_num=round_num,
    )
    logger.info(
        f"Built replay for ticks {start_tick}-{end_tick}: {len(snapshot_set)} samples, "
        f"{len(kills)} kills, {len(shots)} shots, {len(replay.grenades)} grenades, "
        f"{len(replay.bomb_events)} bomb events"
    )
    return replay
