"""
Event Normalizer

Turns the heterogeneous records returned by the demo decoder into one
tick-sorted list of ``Event`` objects with a canonical kind and consistent
field types. Sides are always ``Side`` members regardless of whether the
recording used "CT"/"T" strings or 2/3 team numbers.

Records with unrecognized kinds or missing identities are kept (as
``EventKind.UNKNOWN`` or with ``None`` identities) so downstream folds can
treat them as no-ops without losing their other fields.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from roundscope.core.constants import (
    DETONATION_CATEGORIES,
    RAW_EVENT_KINDS,
    EventKind,
    GrenadeCategory,
    Side,
)
from roundscope.core.utils import (
    safe_bool,
    safe_float,
    safe_int,
    safe_steamid,
    safe_str,
)

logger = logging.getLogger(__name__)

_CT_NAMES = {"CT", "COUNTERTERRORIST", "COUNTERTERRORISTS", "COUNTER-TERRORIST", "COUNTER_TERRORIST"}
_T_NAMES = {"T", "TERRORIST", "TERRORISTS"}

# Keys consumed into typed fields; everything else lands in Event.extra
_KNOWN_KEYS = {
    "event_name",
    "tick",
    "user_steamid",
    "user_name",
    "attacker_steamid",
    "attacker_name",
    "assister_steamid",
    "assister_name",
    "team",
    "winner",
    "reason",
    "dmg_health",
    "headshot",
    "weapon",
    "x",
    "y",
    "z",
    "X",
    "Y",
    "Z",
    "blind_duration",
}


def normalize_side(value: Any) -> Side | None:
    """
    Normalize a side encoding to ``Side``.

    Accepts ``Side`` members, team numbers (2=T, 3=CT, as int, float or
    digit string) and symbolic names ("CT", "T", "TERRORIST", ...).
    Anything else (spectators, unassigned, garbage) returns None.
    """
    if isinstance(value, Side):
        return value
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip().upper()
        if text in _CT_NAMES:
            return Side.CT
        if text in _T_NAMES:
            return Side.T
        if not text.isdigit():
            return None
    number = safe_int(value, default=None)
    if number == Side.T.value:
        return Side.T
    if number == Side.CT.value:
        return Side.CT
    return None


@dataclass(frozen=True)
class Event:
    """A normalized game event."""

    kind: EventKind
    tick: int
    raw_name: str = ""
    user_steamid: int | None = None
    user_name: str = ""
    attacker_steamid: int | None = None
    attacker_name: str = ""
    assister_steamid: int | None = None
    assister_name: str = ""
    side: Side | None = None  # team_assign
    winner: Side | None = None  # round_end
    reason: str = ""  # round_end
    damage: int = 0  # damage (health points)
    headshot: bool = False
    weapon: str = ""
    grenade: GrenadeCategory | None = None  # grenade_detonated
    x: float | None = None
    y: float | None = None
    z: float | None = None
    blind_duration: float | None = None  # player_blinded, seconds
    extra: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def position(self) -> tuple[float, float, float] | None:
        if self.x is None or self.y is None:
            return None
        return (self.x, self.y, self.z if self.z is not None else 0.0)


def _coordinate(record: Mapping[str, Any], lower: str, upper: str) -> float | None:
    value = record.get(lower)
    if value is None:
        value = record.get(upper)
    return safe_float(value, default=None)


def normalize_event(record: Mapping[str, Any]) -> Event | None:
    """
    Normalize one raw decoder record.

    Returns None only when the record has no usable tick, since such an
    event cannot be placed on the timeline.
    """
    tick = safe_int(record.get("tick"), default=None)
    if tick is None:
        logger.debug(f"Dropping event without tick: {record.get('event_name')!r}")
        return None

    raw_name = safe_str(record.get("event_name"))
    kind = RAW_EVENT_KINDS.get(raw_name, EventKind.UNKNOWN)
    if kind is EventKind.UNKNOWN:
        try:
            kind = EventKind(raw_name)
        except ValueError:
            pass

    blind = record.get("blind_duration")

    return Event(
        kind=kind,
        tick=tick,
        raw_name=raw_name,
        user_steamid=safe_steamid(record.get("user_steamid")),
        user_name=safe_str(record.get("user_name")),
        attacker_steamid=safe_steamid(record.get("attacker_steamid")),
        attacker_name=safe_str(record.get("attacker_name")),
        assister_steamid=safe_steamid(record.get("assister_steamid")),
        assister_name=safe_str(record.get("assister_name")),
        side=normalize_side(record.get("team")) if kind is EventKind.TEAM_ASSIGN else None,
        winner=normalize_side(record.get("winner")) if kind is EventKind.ROUND_END else None,
        reason=safe_str(record.get("reason")),
        damage=safe_int(record.get("dmg_health"), default=0) or 0,
        headshot=safe_bool(record.get("headshot")),
        weapon=safe_str(record.get("weapon")),
        grenade=DETONATION_CATEGORIES.get(raw_name) or _grenade_from_record(record, kind),
        x=_coordinate(record, "x", "X"),
        y=_coordinate(record, "y", "Y"),
        z=_coordinate(record, "z", "Z"),
        blind_duration=safe_float(blind, default=None) if blind is not None else None,
        extra={k: v for k, v in record.items() if k not in _KNOWN_KEYS},
    )


def _grenade_from_record(record: Mapping[str, Any], kind: EventKind) -> GrenadeCategory | None:
    """Already-normalized detonation records carry their category under "grenade"."""
    if kind is not EventKind.GRENADE_DETONATED:
        return None
    try:
        return GrenadeCategory(safe_str(record.get("grenade")))
    except ValueError:
        return None


def normalize_events(records: Iterable[Mapping[str, Any]]) -> list[Event]:
    """
    Normalize and tick-sort a batch of raw decoder records.

    The sort is stable, so events sharing a tick keep their decoder order.

    Raises:
        TypeError: If ``records`` is not an iterable of records
    """
    if records is None or isinstance(records, (str, bytes, Mapping)):
        raise TypeError("records must be an iterable of event mappings")
    try:
        iterator = iter(records)
    except TypeError as e:
        raise TypeError("records must be an iterable of event mappings") from e

    events: list[Event] = []
    skipped = 0
    for record in iterator:
        if isinstance(record, Event):
            events.append(record)
            continue
        if not isinstance(record, Mapping):
            skipped += 1
            continue
        event = normalize_event(record)
        if event is None:
            skipped += 1
            continue
        events.append(event)

    if skipped:
        logger.debug(f"Skipped {skipped} malformed event records")

    events.sort(key=lambda e: e.tick)
    return events


def sort_events(events: Iterable[Event]) -> list[Event]:
    """Return a new tick-sorted list (stable) without touching the input."""
    return sorted(events, key=lambda e: e.tick)
