"""
Snapshot Indexer

Assembles decoder tick rows into a tick -> entities mapping and answers
"latest snapshot of entity E at or before tick T" in O(log n) using
per-entity sorted tick arrays (numpy searchsorted).

Also derives remaining blind time: each player_blind event opens a window
[start, start + duration * tick_rate); inside it the remaining time is
(end - tick) / tick_rate. Overlapping windows report the maximum.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, replace
from typing import Any

import numpy as np
import pandas as pd

from roundscope.core.constants import CS2_TICK_RATE, EventKind, Side
from roundscope.core.events import Event, normalize_side
from roundscope.core.utils import safe_bool, safe_float, safe_int, safe_steamid, safe_str

logger = logging.getLogger(__name__)

# Decoder prop names differ between demoparser2 versions and requests
_COLUMN_ALIASES = {
    "x": ("X", "x"),
    "y": ("Y", "y"),
    "z": ("Z", "z"),
    "yaw": ("yaw", "m_angEyeAngles[1]"),
    "team": ("team_num", "team"),
    "health": ("health",),
    "armor": ("armor_value", "armor"),
    "has_helmet": ("has_helmet",),
    "has_defuser": ("has_defuser",),
    "active_weapon": ("active_weapon_name", "active_weapon"),
    "inventory": ("inventory",),
    "flash_duration": ("flash_duration",),
}


def _find_column(columns: Iterable[str], field_name: str) -> str | None:
    available = set(columns)
    for candidate in _COLUMN_ALIASES[field_name]:
        if candidate in available:
            return candidate
    return None


def _to_inventory(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple, np.ndarray)):
        return tuple(str(item) for item in value if item is not None)
    if isinstance(value, str) and value:
        return (value,)
    return ()


@dataclass(frozen=True)
class EntityState:
    """One player's sampled state at one tick."""

    steam_id: int
    name: str
    tick: int
    x: float
    y: float
    z: float = 0.0
    yaw: float = 0.0
    side: Side | None = None
    health: int = 0
    armor: int = 0
    has_helmet: bool = False
    has_defuser: bool = False
    active_weapon: str = ""
    inventory: tuple[str, ...] = ()
    flash_duration: float = 0.0  # remaining blind seconds

    @property
    def position(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @property
    def is_alive(self) -> bool:
        return self.health > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "steamid": str(self.steam_id),
            "name": self.name,
            "team": self.side.value if self.side else None,
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "z": round(self.z, 2),
            "yaw": round(self.yaw, 2),
            "health": self.health,
            "armor": self.armor,
            "has_helmet": self.has_helmet,
            "has_defuser": self.has_defuser,
            "active_weapon_name": self.active_weapon,
            "inventory": list(self.inventory),
            "flash_duration": round(self.flash_duration, 4),
        }


@dataclass(frozen=True)
class BlindWindow:
    """The interval during which a flashed player stays blind."""

    steam_id: int
    start_tick: int
    end_tick: float

    @classmethod
    def from_event(cls, event: Event, tick_rate: int = CS2_TICK_RATE) -> BlindWindow | None:
        if event.user_steamid is None or not event.blind_duration or event.blind_duration <= 0:
            return None
        return cls(
            steam_id=event.user_steamid,
            start_tick=event.tick,
            end_tick=event.tick + event.blind_duration * tick_rate,
        )

    def remaining(self, tick: float, tick_rate: int = CS2_TICK_RATE) -> float:
        """Remaining blind seconds at ``tick``; 0 outside [start, end)."""
        if self.start_tick <= tick < self.end_tick:
            return (self.end_tick - tick) / tick_rate
        return 0.0


def blind_windows(events: Iterable[Event], tick_rate: int = CS2_TICK_RATE) -> dict[int, list[BlindWindow]]:
    """Blind windows grouped by player."""
    windows: dict[int, list[BlindWindow]] = defaultdict(list)
    for event in events:
        if event.kind is not EventKind.PLAYER_BLINDED:
            continue
        window = BlindWindow.from_event(event, tick_rate)
        if window is not None:
            windows[window.steam_id].append(window)
    return dict(windows)


def remaining_blind(
    windows: Iterable[BlindWindow],
    tick: float,
    tick_rate: int = CS2_TICK_RATE,
) -> float:
    """Maximum remaining blind time across (possibly overlapping) windows."""
    return max((w.remaining(tick, tick_rate) for w in windows), default=0.0)


class SnapshotSet:
    """
    Sparse mapping of sampled tick -> entity states.

    Only requested ticks are populated; ticks are kept sorted so callers can
    bracket an arbitrary fractional tick between two samples.
    """

    def __init__(self, frames: Mapping[int, list[EntityState]] | None = None):
        self._frames: dict[int, list[EntityState]] = {
            tick: list(states) for tick, states in sorted((frames or {}).items())
        }
        self._ticks = np.fromiter(self._frames.keys(), dtype=np.int64, count=len(self._frames))

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame | None) -> SnapshotSet:
        """
        Build from a demoparser2 ``parse_ticks`` DataFrame.

        Rows without a tick, a player identity or an X/Y position are
        dropped; entities are never invented for ticks they were not sampled at.
        """
        if df is None or df.empty or "tick" not in df.columns:
            return cls()

        columns = {name: _find_column(df.columns, name) for name in _COLUMN_ALIASES}
        if columns["x"] is None or columns["y"] is None:
            logger.warning("Snapshot frame has no position columns")
            return cls()

        def get(row: dict[str, Any], field_name: str) -> Any:
            column = columns[field_name]
            return row.get(column) if column else None

        frames: dict[int, list[EntityState]] = defaultdict(list)
        dropped = 0
        for row in df.to_dict("records"):
            tick = safe_int(row.get("tick"), default=None)
            steam_id = safe_steamid(row.get("steamid"))
            x = safe_float(get(row, "x"), default=None)
            y = safe_float(get(row, "y"), default=None)
            if tick is None or steam_id is None or x is None or y is None:
                dropped += 1
                continue
            frames[tick].append(
                EntityState(
                    steam_id=steam_id,
                    name=safe_str(row.get("name"), "Unknown"),
                    tick=tick,
                    x=x,
                    y=y,
                    z=safe_float(get(row, "z"), default=0.0),
                    yaw=safe_float(get(row, "yaw"), default=0.0),
                    side=normalize_side(get(row, "team")),
                    health=safe_int(get(row, "health"), default=0),
                    armor=safe_int(get(row, "armor"), default=0),
                    has_helmet=safe_bool(get(row, "has_helmet")),
                    has_defuser=safe_bool(get(row, "has_defuser")),
                    active_weapon=safe_str(get(row, "active_weapon")),
                    inventory=_to_inventory(get(row, "inventory")),
                    flash_duration=safe_float(get(row, "flash_duration"), default=0.0),
                )
            )

        if dropped:
            logger.debug(f"Dropped {dropped} snapshot rows without tick, identity or position")
        return cls(frames)

    @property
    def ticks(self) -> list[int]:
        return [int(t) for t in self._ticks]

    @property
    def first_tick(self) -> int | None:
        return int(self._ticks[0]) if len(self._ticks) else None

    @property
    def last_tick(self) -> int | None:
        return int(self._ticks[-1]) if len(self._ticks) else None

    def get(self, tick: int) -> list[EntityState]:
        return self._frames.get(tick, [])

    def items(self) -> Iterator[tuple[int, list[EntityState]]]:
        return iter(self._frames.items())

    def __len__(self) -> int:
        return len(self._frames)

    def __contains__(self, tick: object) -> bool:
        return tick in self._frames

    def bracket(self, tick: float) -> tuple[int, int, float] | None:
        """
        Bracket a fractional tick between two sampled ticks.

        Returns (lower, upper, fraction) where lower is the greatest sampled
        tick <= ``tick`` and upper the next sampled tick (lower itself at or
        after the last sample). Before the first sample the first sample is
        used with fraction 0. None when nothing was sampled.
        """
        if not len(self._ticks):
            return None
        idx = int(np.searchsorted(self._ticks, tick, side="right")) - 1
        if idx < 0:
            first = int(self._ticks[0])
            return first, first, 0.0
        lower = int(self._ticks[idx])
        if idx + 1 >= len(self._ticks):
            return lower, lower, 0.0
        upper = int(self._ticks[idx + 1])
        fraction = (tick - lower) / (upper - lower)
        return lower, upper, float(fraction)

    def with_blind_windows(
        self,
        windows: Mapping[int, list[BlindWindow]],
        tick_rate: int = CS2_TICK_RATE,
    ) -> SnapshotSet:
        """Copy with ``flash_duration`` derived from blind windows."""
        if not windows:
            return self
        frames: dict[int, list[EntityState]] = {}
        for tick, states in self._frames.items():
            updated = []
            for state in states:
                player_windows = windows.get(state.steam_id)
                if player_windows:
                    remaining = remaining_blind(player_windows, tick, tick_rate)
                    state = replace(state, flash_duration=remaining)
                updated.append(state)
            frames[tick] = updated
        return SnapshotSet(frames)

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {str(tick): [s.to_dict() for s in states] for tick, states in self._frames.items()}


class SnapshotIndexer:
    """Per-entity at-or-before lookup over a SnapshotSet."""

    def __init__(self, snapshots: SnapshotSet):
        by_entity: dict[int, list[EntityState]] = defaultdict(list)
        for _tick, states in snapshots.items():
            for state in states:
                by_entity[state.steam_id].append(state)

        self._states: dict[int, list[EntityState]] = {}
        self._ticks: dict[int, np.ndarray] = {}
        for steam_id, states in by_entity.items():
            self._states[steam_id] = states
            self._ticks[steam_id] = np.array([s.tick for s in states], dtype=np.int64)

    def state_at_or_before(self, steam_id: int | None, tick: float) -> EntityState | None:
        """Latest sampled state of ``steam_id`` with tick <= ``tick``."""
        if steam_id is None:
            return None
        ticks = self._ticks.get(steam_id)
        if ticks is None:
            return None
        idx = int(np.searchsorted(ticks, tick, side="right")) - 1
        if idx < 0:
            return None
        return self._states[steam_id][idx]

    def position_at_or_before(self, steam_id: int | None, tick: float) -> tuple[float, float, float] | None:
        state = self.state_at_or_before(steam_id, tick)
        return state.position if state else None

    def __contains__(self, steam_id: object) -> bool:
        return steam_id in self._states
