"""
Scoreboard data models.

Output of the statistics path: per-player counters, the round history and
the two-entry scoreboard keyed by each organization's starting side.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from roundscope.core.constants import ROUND_END_REASONS, Side


@dataclass
class PlayerStats:
    """Accumulated statistics for one player identity."""

    steam_id: int
    name: str = "Unknown"
    side: Side | None = None  # current side
    starting_side: Side | None = None  # first side ever observed; stands in for organization
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    headshots: int = 0
    damage: int = 0
    adr: float = 0.0

    @property
    def kd_ratio(self) -> float:
        return self.kills / self.deaths if self.deaths > 0 else float(self.kills)

    @property
    def headshot_pct(self) -> float:
        return self.headshots / self.kills * 100 if self.kills > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "steamid": str(self.steam_id),
            "name": self.name,
            "team": self.side.value if self.side else None,
            "side": self.side.label if self.side else None,
            "starting_side": self.starting_side.label if self.starting_side else None,
            "kills": self.kills,
            "deaths": self.deaths,
            "assists": self.assists,
            "headshots": self.headshots,
            "damage": self.damage,
            "adr": round(self.adr, 1),
            "hs_percent": round(self.headshot_pct),
            "kd_ratio": round(self.kd_ratio, 2),
        }


@dataclass
class RoundRecord:
    """A round with a decisive winner."""

    round_num: int
    winner: Side  # side that won on the server
    scoring_side: Side  # starting side of the organization credited with the win
    reason: str
    start_tick: int
    end_tick: int

    @property
    def reason_text(self) -> str:
        return ROUND_END_REASONS.get(self.reason, self.reason)

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round_num,
            "winner": self.winner.label,
            "winner_team": self.winner.value,
            "scoring_team": self.scoring_side.label,
            "reason": self.reason,
            "reason_text": self.reason_text,
            "tick": self.end_tick,
            "start_tick": self.start_tick,
            "end_tick": self.end_tick,
        }


@dataclass
class MatchStats:
    """Complete scoreboard for one match."""

    score: dict[Side, int] = field(default_factory=lambda: {Side.CT: 0, Side.T: 0})
    total_rounds: int = 0
    rounds: list[RoundRecord] = field(default_factory=list)
    players: list[PlayerStats] = field(default_factory=list)

    def get_player(self, steam_id: int) -> PlayerStats | None:
        for player in self.players:
            if player.steam_id == steam_id:
                return player
        return None

    def get_round(self, round_num: int) -> RoundRecord | None:
        if 1 <= round_num <= len(self.rounds):
            return self.rounds[round_num - 1]
        return None

    def leaderboard(self) -> list[PlayerStats]:
        """Players ordered by kills, then ADR."""
        return sorted(self.players, key=lambda p: (-p.kills, -p.adr, p.name))

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": {
                "ct": self.score.get(Side.CT, 0),
                "t": self.score.get(Side.T, 0),
            },
            "total_rounds": self.total_rounds,
            "rounds": [r.to_dict() for r in self.rounds],
            "players": [p.to_dict() for p in self.players],
        }
