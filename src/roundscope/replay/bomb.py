"""
Objective (Bomb) State Machine

The bomb state is never stored. At any query tick it is derived from the
latest bomb event at or before that tick:

    pickup   -> CARRIED (holder)
    dropped  -> DROPPED (own position)
    planted  -> PLANTED (own position, fuse countdown)
    exploded -> EXPLODED (position of the most recent plant)
    defused  -> DEFUSED (position of the most recent plant)
    nothing  -> UNCARRIED

Explode/defuse events carry no position of their own, so the plant is
looked up in the event log rather than copied forward.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from roundscope.core.constants import BOMB_EVENT_KINDS, BOMB_FUSE_SECONDS, CS2_TICK_RATE, EventKind
from roundscope.core.events import Event
from roundscope.core.utils import latest_at_or_before
from roundscope.replay.snapshots import SnapshotIndexer

logger = logging.getLogger(__name__)

Position = tuple[float, float, float]


class BombStatus(StrEnum):
    UNCARRIED = "uncarried"
    CARRIED = "carried"
    DROPPED = "dropped"
    PLANTED = "planted"
    EXPLODED = "exploded"
    DEFUSED = "defused"


_STATUS_BY_KIND = {
    EventKind.BOMB_PICKUP: BombStatus.CARRIED,
    EventKind.BOMB_DROPPED: BombStatus.DROPPED,
    EventKind.BOMB_PLANTED: BombStatus.PLANTED,
    EventKind.BOMB_EXPLODED: BombStatus.EXPLODED,
    EventKind.BOMB_DEFUSED: BombStatus.DEFUSED,
}


@dataclass(frozen=True)
class BombEvent:
    """A bomb lifecycle event with its position resolved where it has one."""

    kind: EventKind
    tick: int
    steam_id: int | None = None
    name: str = ""
    position: Position | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "event_name": self.kind.value,
            "tick": self.tick,
            "user_steamid": str(self.steam_id) if self.steam_id else None,
            "user_name": self.name,
        }
        if self.position is not None:
            result["x"], result["y"], result["z"] = self.position
        return result


@dataclass(frozen=True)
class BombState:
    """Derived bomb state at one instant."""

    status: BombStatus = BombStatus.UNCARRIED
    holder_steam_id: int | None = None
    position: Position | None = None
    plant_tick: int | None = None
    fuse_remaining: float | None = None  # seconds, PLANTED only

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "carrier": str(self.holder_steam_id) if self.holder_steam_id else None,
            "x": self.position[0] if self.position else None,
            "y": self.position[1] if self.position else None,
            "z": self.position[2] if self.position else None,
            "plant_tick": self.plant_tick,
            "timer": round(self.fuse_remaining, 2) if self.fuse_remaining is not None else None,
        }


def collect_bomb_events(
    events: Iterable[Event],
    indexer: SnapshotIndexer | None = None,
    start_tick: int | None = None,
    end_tick: int | None = None,
) -> list[BombEvent]:
    """
    Extract bomb events in a tick range, tick-sorted.

    Drop and plant positions come from the event itself when present,
    otherwise from the actor's snapshot at or before the event tick.
    """
    result: list[BombEvent] = []
    for event in events:
        if event.kind not in BOMB_EVENT_KINDS:
            continue
        if start_tick is not None and event.tick < start_tick:
            continue
        if end_tick is not None and event.tick > end_tick:
            continue

        position = None
        if event.kind in (EventKind.BOMB_DROPPED, EventKind.BOMB_PLANTED):
            position = event.position
            if position is None and indexer is not None:
                position = indexer.position_at_or_before(event.user_steamid, event.tick)
            if position is None:
                logger.debug(f"No position for {event.kind} at tick {event.tick}")

        result.append(
            BombEvent(
                kind=event.kind,
                tick=event.tick,
                steam_id=event.user_steamid,
                name=event.user_name,
                position=position,
            )
        )

    result.sort(key=lambda e: e.tick)
    return result


def bomb_state_at(
    bomb_events: Sequence[BombEvent],
    tick: float,
    tick_rate: int = CS2_TICK_RATE,
    fuse_seconds: float = BOMB_FUSE_SECONDS,
) -> BombState:
    """Bomb state at ``tick`` as a pure function of the event log."""
    latest = latest_at_or_before(bomb_events, tick)
    if latest is None:
        return BombState()

    status = _STATUS_BY_KIND[latest.kind]

    if status is BombStatus.CARRIED:
        return BombState(status=status, holder_steam_id=latest.steam_id)

    if status is BombStatus.DROPPED:
        return BombState(status=status, position=latest.position)

    if status is BombStatus.PLANTED:
        elapsed = (tick - latest.tick) / tick_rate
        return BombState(
            status=status,
            position=latest.position,
            plant_tick=latest.tick,
            fuse_remaining=max(0.0, fuse_seconds - elapsed),
        )

    # Exploded / defused: recover the site from the most recent plant
    plants = [e for e in bomb_events if e.kind is EventKind.BOMB_PLANTED]
    plant = latest_at_or_before(plants, latest.tick)
    if plant is None:
        logger.debug(f"{latest.kind} at tick {latest.tick} has no preceding plant")
        return BombState(status=status)
    return BombState(status=status, position=plant.position, plant_tick=plant.tick)
