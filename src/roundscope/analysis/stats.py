"""
Match Stats Aggregator

One linear fold over the tick-sorted event stream produces per-player
counters, the round history and the scoreboard.

Attribution rules:
- Kills exclude self-kills; headshots need a distinct killer and the flag
- Damage counts only between players on different, known sides
- Round wins are credited to an organization via side attribution, not to
  the raw winning side, because sides swap at halftime and in overtime
- Players never seen on a side (spectators, casters) are left out
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from roundscope.analysis.models import MatchStats, PlayerStats, RoundRecord
from roundscope.analysis.sides import scoring_side
from roundscope.core.constants import OVERTIME_HALF_ROUNDS, REGULATION_HALF_ROUNDS, EventKind
from roundscope.core.events import Event, sort_events

logger = logging.getLogger(__name__)


class PlayerRegistry:
    """Lazily creates player records keyed by Steam ID."""

    def __init__(self) -> None:
        self._players: dict[int, PlayerStats] = {}

    def get(self, steam_id: int | None, name: str = "") -> PlayerStats | None:
        """Get or create a player; refreshes the display name when one is given."""
        if not steam_id:
            return None
        player = self._players.get(steam_id)
        if player is None:
            player = PlayerStats(steam_id=steam_id, name=name or "Unknown")
            self._players[steam_id] = player
        elif name:
            player.name = name
        return player

    def __iter__(self) -> Iterator[PlayerStats]:
        return iter(self._players.values())

    def __len__(self) -> int:
        return len(self._players)


def _apply_team_assign(registry: PlayerRegistry, event: Event) -> None:
    player = registry.get(event.user_steamid, event.user_name)
    if player is None or event.side is None:
        return
    player.side = event.side
    if player.starting_side is None:
        player.starting_side = event.side


def _apply_death(registry: PlayerRegistry, event: Event) -> None:
    killer = registry.get(event.attacker_steamid, event.attacker_name)
    victim = registry.get(event.user_steamid, event.user_name)
    assister = registry.get(event.assister_steamid, event.assister_name)

    if victim is not None:
        victim.deaths += 1

    if killer is not None and killer is not victim:
        killer.kills += 1
        if event.headshot:
            killer.headshots += 1

    if assister is not None:
        assister.assists += 1


def _apply_damage(registry: PlayerRegistry, event: Event) -> None:
    attacker = registry.get(event.attacker_steamid, event.attacker_name)
    victim = registry.get(event.user_steamid, event.user_name)
    if attacker is None or victim is None or attacker is victim:
        return
    if attacker.side is None or victim.side is None:
        return
    if attacker.side == victim.side:
        return
    attacker.damage += event.damage


def aggregate_match_stats(
    events: Sequence[Event],
    regulation_half: int = REGULATION_HALF_ROUNDS,
    overtime_half: int = OVERTIME_HALF_ROUNDS,
) -> MatchStats:
    """
    Fold the event stream into a scoreboard.

    The input is not modified; it is re-sorted by tick (stable) before the
    fold, so the result is identical for any arrival order of events with
    distinct ticks.

    Args:
        events: Normalized events (see ``normalize_events``)
        regulation_half: Rounds per regulation half
        overtime_half: Rounds per overtime half

    Returns:
        MatchStats with score, round history and players

    Raises:
        TypeError: If ``events`` is not a sequence of Event objects
    """
    if isinstance(events, (str, bytes)) or not isinstance(events, Sequence):
        raise TypeError("events must be a sequence of Event objects")
    for event in events:
        if not isinstance(event, Event):
            raise TypeError(f"events must contain Event objects, got {type(event).__name__}")

    registry = PlayerRegistry()
    stats = MatchStats()
    last_round_start_tick = 0

    for event in sort_events(events):
        kind = event.kind
        if kind is EventKind.TEAM_ASSIGN:
            _apply_team_assign(registry, event)
        elif kind is EventKind.ROUND_START:
            last_round_start_tick = event.tick
        elif kind is EventKind.DEATH:
            _apply_death(registry, event)
        elif kind is EventKind.DAMAGE:
            _apply_damage(registry, event)
        elif kind is EventKind.ROUND_END:
            if event.winner is None:
                logger.debug(f"Round end at tick {event.tick} has no decisive winner, skipping")
                continue
            stats.total_rounds += 1
            round_num = stats.total_rounds
            credited = scoring_side(round_num, event.winner, regulation_half, overtime_half)
            stats.score[credited] += 1
            stats.rounds.append(
                RoundRecord(
                    round_num=round_num,
                    winner=event.winner,
                    scoring_side=credited,
                    reason=event.reason,
                    start_tick=last_round_start_tick,
                    end_tick=event.tick,
                )
            )

    valid_rounds = stats.total_rounds
    for player in registry:
        if player.starting_side is None:
            continue
        player.adr = player.damage / valid_rounds if valid_rounds > 0 else 0.0
        stats.players.append(player)

    logger.info(
        f"Aggregated {len(events)} events: {valid_rounds} rounds, "
        f"{len(stats.players)} players ({len(registry) - len(stats.players)} without a side)"
    )
    return stats
