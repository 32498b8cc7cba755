"""
Replay frame data.

A Frame is everything a renderer needs to draw one instant of a round:
interpolated players with presentational flags, visible grenades, the bomb
state and the kill markers so far. The renderer does no game logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from roundscope.core.constants import Side
from roundscope.replay.bomb import BombState
from roundscope.replay.snapshots import EntityState


@dataclass(frozen=True)
class KillMarker:
    """A death with the victim's position, if it could be resolved."""

    tick: int
    victim_steam_id: int | None
    victim_name: str
    attacker_steam_id: int | None
    attacker_name: str
    weapon: str
    headshot: bool
    position: tuple[float, float, float] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "tick": self.tick,
            "victim_steamid": str(self.victim_steam_id) if self.victim_steam_id else None,
            "victim_name": self.victim_name,
            "attacker_steamid": str(self.attacker_steam_id) if self.attacker_steam_id else None,
            "attacker_name": self.attacker_name,
            "weapon": self.weapon,
            "headshot": self.headshot,
        }
        if self.position is not None:
            result["x"], result["y"], result["z"] = self.position
        return result


@dataclass(frozen=True)
class Shot:
    """A weapon_fire event."""

    tick: int
    steam_id: int
    weapon: str

    def to_dict(self) -> dict[str, Any]:
        return {"tick": self.tick, "steamid": str(self.steam_id), "weapon": self.weapon}


@dataclass
class PlayerFrame:
    """Interpolated player plus presentational flags."""

    state: EntityState
    is_firing: bool = False
    tracer: float = 0.0  # 1.0 at the shot, fading to 0 over the tracer window
    tracer_yaw: float | None = None  # yaw at the time of the shot
    has_bomb: bool = False

    @property
    def is_blind(self) -> bool:
        return self.state.flash_duration > 0

    def to_dict(self) -> dict[str, Any]:
        result = self.state.to_dict()
        result.update(
            {
                "is_firing": self.is_firing,
                "is_blind": self.is_blind,
                "is_alive": self.state.is_alive,
                "has_bomb": self.has_bomb,
                "tracer": round(self.tracer, 3),
            }
        )
        if self.tracer_yaw is not None:
            result["tracer_yaw"] = round(self.tracer_yaw, 2)
        return result


@dataclass
class GrenadeFrame:
    """A grenade visible at this instant."""

    type: str
    phase: str  # "flight" or "active"
    x: float
    y: float
    z: float
    thrower_name: str = ""
    progress: float = 0.0  # flight progress, or elapsed share of the effect

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "phase": self.phase,
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "z": round(self.z, 2),
            "thrower_name": self.thrower_name,
            "progress": round(self.progress, 3),
        }


@dataclass
class Frame:
    """One renderable instant of a round."""

    time: float  # seconds since the first sample
    tick: float
    players: list[PlayerFrame] = field(default_factory=list)
    grenades: list[GrenadeFrame] = field(default_factory=list)
    bomb: BombState = field(default_factory=BombState)
    kills: list[KillMarker] = field(default_factory=list)

    def roster(self, side: Side) -> list[PlayerFrame]:
        """Players on ``side`` sorted by name."""
        return sorted(
            (p for p in self.players if p.state.side is side),
            key=lambda p: p.state.name.lower(),
        )

    @property
    def ct_players(self) -> list[PlayerFrame]:
        return self.roster(Side.CT)

    @property
    def t_players(self) -> list[PlayerFrame]:
        return self.roster(Side.T)

    def alive_count(self, side: Side) -> int:
        return sum(1 for p in self.roster(side) if p.state.is_alive)

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": round(self.time, 3),
            "tick": round(self.tick, 2),
            "players": [p.to_dict() for p in self.players],
            "grenades": [g.to_dict() for g in self.grenades],
            "bomb": self.bomb.to_dict(),
            "kills": [k.to_dict() for k in self.kills],
            "ct": [p.state.name for p in self.ct_players],
            "t": [p.state.name for p in self.t_players],
            "ct_alive": self.alive_count(Side.CT),
            "t_alive": self.alive_count(Side.T),
        }
