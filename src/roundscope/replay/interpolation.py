"""
Playback Interpolator

Turns a continuous playback time into one consistent set of player states.

Continuous fields (position, yaw, remaining blind time) are interpolated
between the two bracketing samples; yaw takes the shortest way around the
circle. Discrete fields (health, armor, side, weapon, loadout, flags) are
taken from the lower sample unchanged. A player present only in the lower
sample keeps its lower state; one present only in the upper sample is not
shown yet.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from roundscope.core.constants import CS2_TICK_RATE
from roundscope.replay.snapshots import EntityState, SnapshotSet


def lerp(a: float, b: float, f: float) -> float:
    return a + (b - a) * f


def normalize_angle(angle: float) -> float:
    """Wrap an angle in degrees to (-180, 180]."""
    wrapped = ((angle + 180.0) % 360.0) - 180.0
    return 180.0 if wrapped == -180.0 else wrapped


def shortest_angle_delta(lower: float, upper: float) -> float:
    """Signed change from ``lower`` to ``upper`` in (-180, 180]."""
    return normalize_angle(upper - lower)


def interpolate_yaw(lower: float, upper: float, f: float) -> float:
    return normalize_angle(lower + shortest_angle_delta(lower, upper) * f)


def interpolate_state(lower: EntityState, upper: EntityState, f: float) -> EntityState:
    """Blend two samples of the same player."""
    return replace(
        lower,
        x=lerp(lower.x, upper.x, f),
        y=lerp(lower.y, upper.y, f),
        z=lerp(lower.z, upper.z, f),
        yaw=interpolate_yaw(lower.yaw, upper.yaw, f),
        flash_duration=max(0.0, lerp(lower.flash_duration, upper.flash_duration, f)),
    )


@dataclass
class InterpolatedFrame:
    """Player states at a fractional tick."""

    tick: float
    lower_tick: int
    upper_tick: int
    fraction: float
    players: list[EntityState]


def interpolate_at_tick(snapshots: SnapshotSet, tick: float) -> InterpolatedFrame | None:
    """Interpolate player states at a fractional tick; None without samples."""
    bracket = snapshots.bracket(tick)
    if bracket is None:
        return None
    lower_tick, upper_tick, fraction = bracket

    lower_states = snapshots.get(lower_tick)
    upper_by_id = {s.steam_id: s for s in snapshots.get(upper_tick)}

    players = []
    for lower in lower_states:
        upper = upper_by_id.get(lower.steam_id)
        if upper is None or upper_tick == lower_tick:
            players.append(lower)
        else:
            players.append(interpolate_state(lower, upper, fraction))

    return InterpolatedFrame(
        tick=lower_tick + fraction * (upper_tick - lower_tick),
        lower_tick=lower_tick,
        upper_tick=upper_tick,
        fraction=fraction,
        players=players,
    )


def interpolate_frame(
    snapshots: SnapshotSet,
    playback_time: float,
    tick_rate: int = CS2_TICK_RATE,
    origin_tick: int | None = None,
) -> InterpolatedFrame | None:
    """
    Interpolate player states at ``playback_time`` seconds.

    Time 0 maps to ``origin_tick`` (the first sampled tick by default).
    Times before the first sample clamp to it; times after the last sample
    hold the last sample.
    """
    if origin_tick is None:
        origin_tick = snapshots.first_tick
    if origin_tick is None:
        return None
    tick = origin_tick + max(0.0, playback_time) * tick_rate
    return interpolate_at_tick(snapshots, tick)
