"""Shared fixtures: a small two-round match and a stand-in for the demo decoder."""

from __future__ import annotations

import pandas as pd
import pytest

from roundscope.core.config import RoundscopeConfig
from roundscope.core.decoder import DemoDecodeError
from roundscope.service import DemoService

ALICE = 76561198000000001
BOB = 76561198000000002

MATCH_HEADER = {"map_name": "de_mirage", "playback_time": 120.0, "server_name": "Test Server"}

# Round 1: ticks 100-300, CT (alice) wins. Round 2: ticks 400-700, T (bob) wins.
MATCH_RECORDS = [
    {"event_name": "player_team", "tick": 1, "user_steamid": ALICE, "user_name": "alice", "team": 3},
    {"event_name": "player_team", "tick": 1, "user_steamid": BOB, "user_name": "bob", "team": 2},
    {"event_name": "round_freeze_end", "tick": 100},
    {"event_name": "bomb_pickup", "tick": 110, "user_steamid": BOB, "user_name": "bob"},
    {"event_name": "weapon_fire", "tick": 196, "user_steamid": ALICE, "user_name": "alice", "weapon": "weapon_m4a1"},
    {
        "event_name": "player_hurt",
        "tick": 200,
        "user_steamid": BOB,
        "user_name": "bob",
        "attacker_steamid": ALICE,
        "attacker_name": "alice",
        "dmg_health": 100,
    },
    {
        "event_name": "player_death",
        "tick": 200,
        "user_steamid": BOB,
        "user_name": "bob",
        "attacker_steamid": ALICE,
        "attacker_name": "alice",
        "weapon": "m4a1",
        "headshot": True,
    },
    {"event_name": "round_end", "tick": 300, "winner": "CT", "reason": "t_killed"},
    {"event_name": "round_freeze_end", "tick": 400},
    {"event_name": "round_end", "tick": 700, "winner": "T", "reason": "ct_killed"},
]


def snapshot_rows(ticks) -> pd.DataFrame:
    """Decoder-shaped tick rows: alice walks along +x, bob along -x."""
    rows = []
    for tick in ticks:
        rows.append(
            {
                "tick": tick,
                "steamid": ALICE,
                "name": "alice",
                "X": float(tick),
                "Y": 0.0,
                "Z": 0.0,
                "yaw": 90.0,
                "team_num": 3,
                "health": 100,
                "armor_value": 100,
                "has_helmet": True,
                "has_defuser": True,
                "active_weapon_name": "M4A1-S",
                "inventory": ["M4A1-S", "USP-S"],
            }
        )
        rows.append(
            {
                "tick": tick,
                "steamid": BOB,
                "name": "bob",
                "X": -float(tick),
                "Y": 10.0,
                "Z": 0.0,
                "yaw": -90.0,
                "team_num": 2,
                "health": 100 if tick < 200 else 0,
                "armor_value": 0,
                "has_helmet": False,
                "has_defuser": False,
                "active_weapon_name": "AK-47",
                "inventory": ["AK-47", "Glock-18", "C4 Explosive"],
            }
        )
    return pd.DataFrame(rows)


class FakeDecoder:
    """Stands in for DemoDecoder; records every call in ``calls``."""

    def __init__(self, path, calls, records=None, fail=None):
        self.path = path
        self.calls = calls
        self.records = MATCH_RECORDS if records is None else records
        self.fail = fail

    def _record(self, name):
        self.calls.append(name)
        if self.fail is not None:
            raise self.fail

    def parse_header(self):
        self._record("parse_header")
        return dict(MATCH_HEADER)

    def parse_events(self, names):
        self._record("parse_events")
        wanted = set(names)
        return [dict(r) for r in self.records if r["event_name"] in wanted]

    def parse_ticks(self, fields, ticks, players=None):
        self._record("parse_ticks")
        return snapshot_rows(ticks)


@pytest.fixture
def decoder_calls():
    return []


@pytest.fixture
def decoder_factory(decoder_calls):
    return lambda path: FakeDecoder(path, decoder_calls)


@pytest.fixture
def demos_dir(tmp_path):
    directory = tmp_path / "demos"
    directory.mkdir()
    (directory / "match.dem").write_bytes(b"PBDEMS2\x00fake demo contents")
    return directory


@pytest.fixture
def service(demos_dir, decoder_factory):
    return DemoService(demos_dir, config=RoundscopeConfig(), decoder_factory=decoder_factory)


@pytest.fixture
def failing_decoder_factory(decoder_calls):
    """A decoder whose every call fails like a corrupt recording."""
    return lambda path: FakeDecoder(path, decoder_calls, fail=DemoDecodeError("Failed to parse events: corrupt demo"))
