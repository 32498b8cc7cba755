"""Tests for round replay assembly and frame composition."""

from __future__ import annotations

import pandas as pd
import pytest

from roundscope.core.config import ReplayConfig
from roundscope.core.constants import Side
from roundscope.core.events import normalize_events
from roundscope.replay.bomb import BombStatus
from roundscope.replay.builder import build_round_replay, sample_ticks

ALICE = 76561198000000001
BOB = 76561198000000002


def rows(ticks):
    result = []
    for tick in ticks:
        result.append({"tick": tick, "steamid": ALICE, "name": "alice", "X": float(tick - 1000), "Y": 0.0, "Z": 0.0, "yaw": 90.0, "team_num": 3, "health": 100})
        if tick < 1128:
            result.append({"tick": tick, "steamid": BOB, "name": "bob", "X": 0.0, "Y": float(tick - 1000), "Z": 0.0, "yaw": 0.0, "team_num": 2, "health": 100})
    return pd.DataFrame(result)


@pytest.fixture
def events():
    return normalize_events(
        [
            {"event_name": "bomb_pickup", "tick": 990, "user_steamid": BOB, "user_name": "bob"},
            {"event_name": "weapon_fire", "tick": 1064, "user_steamid": ALICE, "user_name": "alice", "weapon": "weapon_m4a1"},
            {"event_name": "weapon_fire", "tick": 5000, "user_steamid": ALICE, "user_name": "alice", "weapon": "weapon_m4a1"},
            {
                "event_name": "player_death",
                "tick": 1100,
                "user_steamid": BOB,
                "user_name": "bob",
                "attacker_steamid": ALICE,
                "attacker_name": "alice",
                "weapon": "m4a1",
                "headshot": True,
            },
            {"event_name": "player_death", "tick": 1110, "user_steamid": 76561198000000099, "user_name": "ghost"},
            {"event_name": "player_blind", "tick": 1000, "user_steamid": ALICE, "blind_duration": 1.5},
            {"event_name": "grenade_thrown", "tick": 1010, "user_steamid": BOB, "weapon": "weapon_smokegrenade"},
            {"event_name": "smokegrenade_detonate", "tick": 1070, "user_steamid": BOB, "user_name": "bob", "x": 0.0, "y": 500.0, "z": 0.0},
            {"event_name": "bomb_dropped", "tick": 1100, "user_steamid": BOB, "user_name": "bob"},
        ]
    )


@pytest.fixture
def replay(events):
    return build_round_replay(events, rows(sample_ticks(1000, 1128, 64)), 1000, 1128, interval=64, round_num=3)


class TestSampleTicks:
    """Ticks requested from the decoder."""

    def test_inclusive_range(self):
        assert sample_ticks(1000, 1128, 64) == [1000, 1064, 1128]
        assert sample_ticks(10, 12) == [10, 11, 12]

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            sample_ticks(0, 10, 0)


class TestBuildRoundReplay:
    """Assembly of snapshots, kills, shots, grenades and bomb events."""

    def test_snapshots_and_duration(self, replay):
        assert replay.snapshots.ticks == [1000, 1064, 1128]
        assert replay.duration == pytest.approx(2.0)
        assert replay.round_num == 3

    def test_blind_time_applied(self, replay):
        alice = next(s for s in replay.snapshots.get(1064) if s.steam_id == ALICE)
        # Window 1000..1096 at 64 ticks/s
        assert alice.flash_duration == pytest.approx(0.5)

    def test_kills_in_range_with_positions(self, replay):
        assert [k.tick for k in replay.kills] == [1100, 1110]
        bob_kill = replay.kills[0]
        assert bob_kill.position == (0.0, 64.0, 0.0)
        assert bob_kill.headshot is True

    def test_kill_without_victim_samples_keeps_marker(self, replay):
        ghost = replay.kills[1]
        assert ghost.position is None
        assert "x" not in ghost.to_dict()

    def test_shots_in_range(self, replay):
        assert [(s.tick, s.steam_id) for s in replay.shots] == [(1064, ALICE)]

    def test_grenade_matched_to_throw(self, replay):
        (smoke,) = replay.grenades
        assert smoke.throw_tick == 1010
        assert smoke.throw_pos == (0.0, 0.0, 0.0)

    def test_bomb_events_in_range_with_backfilled_position(self, replay):
        (drop,) = replay.bomb_events
        assert drop.position == (0.0, 64.0, 0.0)

    def test_inverted_range(self, events):
        with pytest.raises(ValueError):
            build_round_replay(events, None, 2000, 1000)

    def test_invalid_interval(self, events):
        with pytest.raises(ValueError):
            build_round_replay(events, None, 1000, 2000, interval=0)

    def test_no_snapshots(self, events):
        replay = build_round_replay(events, None, 1000, 1128)
        assert replay.duration == 0.0
        assert replay.frame_at(1.0).players == []

    def test_to_dict_shape(self, replay):
        data = replay.to_dict()
        assert set(data) == {
            "round",
            "start_tick",
            "end_tick",
            "interval",
            "tick_rate",
            "duration",
            "positions",
            "kills",
            "shots",
            "grenades",
            "bomb_events",
        }
        assert list(data["positions"]) == ["1000", "1064", "1128"]
        assert data["kills"][0]["victim_steamid"] == str(BOB)


class TestFrameAt:
    """One composed instant of the round."""

    def test_players_interpolated(self, replay):
        frame = replay.frame_at(0.5)
        assert frame.tick == pytest.approx(1032.0)
        alice = next(p for p in frame.players if p.state.steam_id == ALICE)
        assert alice.state.x == pytest.approx(32.0)

    def test_time_is_clamped(self, replay):
        assert replay.frame_at(-1.0).time == 0.0
        assert replay.frame_at(99.0).time == pytest.approx(2.0)

    def test_firing_flag_and_tracer(self, replay):
        frame = replay.frame_at(1.0)
        alice = next(p for p in frame.players if p.state.steam_id == ALICE)
        assert alice.is_firing is True
        assert alice.tracer == pytest.approx(1.0)
        assert alice.tracer_yaw == pytest.approx(90.0)

        later = replay.frame_at(1.5)
        alice = next(p for p in later.players if p.state.steam_id == ALICE)
        assert alice.is_firing is False
        assert alice.tracer == 0.0

    def test_bomb_carrier_picked_up_before_range(self, replay):
        assert [e.tick for e in replay.bomb_events] == [990, 1100]
        frame = replay.frame_at(0.5)
        assert frame.bomb.status is BombStatus.CARRIED
        bob = next(p for p in frame.players if p.state.steam_id == BOB)
        assert bob.has_bomb is True

    def test_bomb_events_after_range_excluded(self, events):
        replay = build_round_replay(events, rows([1000, 1064]), 1000, 1064, interval=64)
        assert [e.tick for e in replay.bomb_events] == [990]
        assert replay.frame_at(1.0).bomb.status is BombStatus.CARRIED

    def test_bomb_dropped_after_death(self, replay):
        frame = replay.frame_at(2.0)
        assert frame.bomb.status is BombStatus.DROPPED
        assert frame.bomb.position == (0.0, 64.0, 0.0)

    def test_kill_markers_accumulate(self, replay):
        assert replay.frame_at(1.0).kills == []
        kills = replay.frame_at(2.0).kills
        # The marker without a position is not drawn
        assert [k.tick for k in kills] == [1100]

    def test_grenade_phases(self, replay):
        (in_flight,) = replay.frame_at(1.0).grenades
        assert in_flight.phase == "flight"
        assert in_flight.type == "smoke"
        assert in_flight.progress == pytest.approx(54 / 60)

        (active,) = replay.frame_at(1.5).grenades
        assert active.phase == "active"
        assert (active.x, active.y) == (0.0, 500.0)

    def test_rosters(self, replay):
        frame = replay.frame_at(0.0)
        assert [p.state.name for p in frame.roster(Side.CT)] == ["alice"]
        assert [p.state.name for p in frame.t_players] == ["bob"]
        data = frame.to_dict()
        assert data["ct"] == ["alice"]
        assert data["t"] == ["bob"]
        assert (data["ct_alive"], data["t_alive"]) == (1, 1)
        assert data["players"][0]["is_alive"] is True

    def test_dead_players_not_counted_alive(self, events):
        df = rows([1000, 1064])
        df.loc[df["steamid"] == BOB, "health"] = 0
        frame = build_round_replay(events, df, 1000, 1064, interval=64).frame_at(0.0)
        assert [p.state.name for p in frame.t_players] == ["bob"]
        assert frame.alive_count(Side.T) == 0
        assert frame.alive_count(Side.CT) == 1

    def test_frame_is_stateless(self, replay):
        late = replay.frame_at(1.7).to_dict()
        replay.frame_at(0.2)
        assert replay.frame_at(1.7).to_dict() == late

    def test_custom_tick_rate(self, events):
        replay = build_round_replay(
            events, rows([1000, 1064, 1128]), 1000, 1128, interval=64, config=ReplayConfig(tick_rate=128)
        )
        assert replay.duration == pytest.approx(1.0)
