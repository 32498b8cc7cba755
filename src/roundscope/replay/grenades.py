"""
Grenade Lifecycle Matcher

Detonation events carry the thrower's identity and the effect position but
not the throw itself. To draw a flight path each effect is linked to the
throw that most plausibly caused it: same thrower, earlier tick, weapon
name matching the effect category; the latest such throw wins. Unmatched
effects simply have no flight path.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from roundscope.core.constants import (
    CS2_TICK_RATE,
    GRENADE_EFFECT_SECONDS,
    GRENADE_WEAPON_PATTERNS,
    EventKind,
    GrenadeCategory,
)
from roundscope.core.events import Event
from roundscope.core.utils import latest_at_or_before
from roundscope.replay.snapshots import SnapshotIndexer

logger = logging.getLogger(__name__)

Position = tuple[float, float, float]


@dataclass(frozen=True)
class GrenadeThrow:
    """A grenade_thrown event."""

    steam_id: int
    tick: int
    weapon: str
    name: str = ""

    @classmethod
    def from_event(cls, event: Event) -> GrenadeThrow | None:
        if event.kind is not EventKind.GRENADE_THROWN or event.user_steamid is None:
            return None
        return cls(
            steam_id=event.user_steamid,
            tick=event.tick,
            weapon=event.weapon.lower(),
            name=event.user_name,
        )

    def matches(self, category: GrenadeCategory) -> bool:
        return any(pattern in self.weapon for pattern in GRENADE_WEAPON_PATTERNS[category])


@dataclass
class GrenadeEffect:
    """A detonation/ignition with its reconstructed throw, if any."""

    category: GrenadeCategory
    tick: int
    x: float
    y: float
    z: float
    thrower_steam_id: int | None = None
    thrower_name: str = ""
    throw_tick: int | None = None
    throw_pos: Position | None = None

    @property
    def position(self) -> Position:
        return (self.x, self.y, self.z)

    def duration_ticks(self, tick_rate: int = CS2_TICK_RATE) -> float:
        return GRENADE_EFFECT_SECONDS[self.category] * tick_rate

    def phase_at(self, tick: float, tick_rate: int = CS2_TICK_RATE) -> str | None:
        """
        "flight" between throw and detonation (only with a known throw),
        "active" while the effect lasts, None otherwise.
        """
        if self.throw_tick is not None and self.throw_pos is not None and self.throw_tick <= tick < self.tick:
            return "flight"
        if self.tick <= tick < self.tick + self.duration_ticks(tick_rate):
            return "active"
        return None

    def flight_progress(self, tick: float) -> float:
        if self.throw_tick is None or self.tick <= self.throw_tick:
            return 1.0
        progress = (tick - self.throw_tick) / (self.tick - self.throw_tick)
        return min(1.0, max(0.0, progress))

    def projectile_position(self, tick: float) -> Position:
        """Straight-line projectile position during flight."""
        if self.throw_pos is None:
            return self.position
        f = self.flight_progress(tick)
        tx, ty, tz = self.throw_pos
        return (tx + (self.x - tx) * f, ty + (self.y - ty) * f, tz + (self.z - tz) * f)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.category.value,
            "tick": self.tick,
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "thrower_steamid": str(self.thrower_steam_id) if self.thrower_steam_id else None,
            "thrower_name": self.thrower_name,
            "throw_tick": self.throw_tick,
            "throw_pos": (
                {"x": self.throw_pos[0], "y": self.throw_pos[1], "z": self.throw_pos[2]}
                if self.throw_pos
                else None
            ),
        }


def match_throw(
    category: GrenadeCategory,
    effect_tick: int,
    thrower_steam_id: int | None,
    throws: Iterable[GrenadeThrow],
) -> GrenadeThrow | None:
    """
    Find the throw that caused an effect.

    Candidates are throws by the same player, strictly before the effect,
    whose weapon matches the category. The latest candidate wins.
    """
    if thrower_steam_id is None:
        return None
    candidates = [t for t in throws if t.steam_id == thrower_steam_id and t.matches(category)]
    return latest_at_or_before(candidates, effect_tick, strict=True)


def reconstruct_grenades(
    events: Sequence[Event],
    indexer: SnapshotIndexer,
    start_tick: int | None = None,
    end_tick: int | None = None,
) -> list[GrenadeEffect]:
    """
    Build the grenade effect list for a tick range.

    Throws are searched across the whole event stream, so a grenade thrown
    just before ``start_tick`` still gets its throw tick. Its position,
    however, only resolves if the thrower was sampled at or before that tick.
    """
    throws = [t for t in (GrenadeThrow.from_event(e) for e in events) if t is not None]

    effects: list[GrenadeEffect] = []
    unmatched = 0
    for event in events:
        if event.kind is not EventKind.GRENADE_DETONATED or event.grenade is None:
            continue
        if start_tick is not None and event.tick < start_tick:
            continue
        if end_tick is not None and event.tick > end_tick:
            continue
        if event.position is None:
            logger.debug(f"Skipping {event.grenade} effect at tick {event.tick} without position")
            continue

        throw = match_throw(event.grenade, event.tick, event.user_steamid, throws)
        throw_pos = indexer.position_at_or_before(throw.steam_id, throw.tick) if throw else None
        if throw is None:
            unmatched += 1

        x, y, z = event.position
        effects.append(
            GrenadeEffect(
                category=event.grenade,
                tick=event.tick,
                x=x,
                y=y,
                z=z,
                thrower_steam_id=event.user_steamid,
                thrower_name=event.user_name,
                throw_tick=throw.tick if throw else None,
                throw_pos=throw_pos,
            )
        )

    if unmatched:
        logger.debug(f"{unmatched} grenade effects had no matching throw")
    effects.sort(key=lambda g: g.tick)
    return effects
