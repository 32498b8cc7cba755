"""Tests for playback interpolation."""

from __future__ import annotations

import pytest

from roundscope.core.constants import Side
from roundscope.replay.interpolation import (
    interpolate_at_tick,
    interpolate_frame,
    interpolate_yaw,
    normalize_angle,
    shortest_angle_delta,
)
from roundscope.replay.snapshots import EntityState, SnapshotSet

ALICE = 76561198000000001
BOB = 76561198000000002


def state(steam_id, tick, x, y, yaw=0.0, **kwargs):
    return EntityState(steam_id=steam_id, name=str(steam_id), tick=tick, x=x, y=y, yaw=yaw, **kwargs)


class TestAngles:
    """Yaw wrapping and shortest-path blending."""

    @pytest.mark.parametrize(
        "angle,expected",
        [(0.0, 0.0), (180.0, 180.0), (-180.0, 180.0), (190.0, -170.0), (540.0, 180.0), (-190.0, 170.0)],
    )
    def test_normalize_angle(self, angle, expected):
        assert normalize_angle(angle) == pytest.approx(expected)

    def test_shortest_delta_crosses_wraparound(self):
        assert shortest_angle_delta(170.0, -170.0) == pytest.approx(20.0)
        assert shortest_angle_delta(-170.0, 170.0) == pytest.approx(-20.0)

    def test_yaw_across_wraparound(self):
        assert interpolate_yaw(170.0, -170.0, 0.5) == pytest.approx(180.0)
        assert interpolate_yaw(-170.0, 170.0, 0.5) == pytest.approx(180.0)
        assert interpolate_yaw(10.0, 350.0, 0.5) == pytest.approx(0.0)

    def test_yaw_endpoints(self):
        assert interpolate_yaw(170.0, -170.0, 0.0) == pytest.approx(170.0)
        assert interpolate_yaw(170.0, -170.0, 1.0) == pytest.approx(-170.0)

    @pytest.mark.parametrize("f", [0.0, 0.25, 0.5, 0.75, 1.0])
    def test_yaw_stays_in_range(self, f):
        yaw = interpolate_yaw(-179.0, 179.0, f)
        assert -180.0 < yaw <= 180.0


class TestInterpolateAtTick:
    """Continuous fields blend; discrete fields come from the lower sample."""

    @pytest.fixture
    def snapshots(self):
        return SnapshotSet(
            {
                0: [
                    state(ALICE, 0, 0.0, 0.0, yaw=170.0, health=100, side=Side.CT, active_weapon="AK-47"),
                    state(BOB, 0, 50.0, 50.0, health=80),
                ],
                64: [
                    state(ALICE, 64, 64.0, -64.0, yaw=-170.0, health=40, side=Side.CT, active_weapon="Knife"),
                ],
            }
        )

    def test_position_and_yaw(self, snapshots):
        frame = interpolate_at_tick(snapshots, 32)
        alice = next(p for p in frame.players if p.steam_id == ALICE)
        assert (alice.x, alice.y) == pytest.approx((32.0, -32.0))
        assert alice.yaw == pytest.approx(180.0)
        assert frame.fraction == 0.5

    def test_discrete_fields_from_lower_sample(self, snapshots):
        frame = interpolate_at_tick(snapshots, 60)
        alice = next(p for p in frame.players if p.steam_id == ALICE)
        assert alice.health == 100
        assert alice.active_weapon == "AK-47"
        assert alice.tick == 0

    def test_lower_only_entity_keeps_lower_state(self, snapshots):
        frame = interpolate_at_tick(snapshots, 32)
        bob = next(p for p in frame.players if p.steam_id == BOB)
        assert (bob.x, bob.y, bob.health) == (50.0, 50.0, 80)

    def test_upper_only_entity_not_shown_yet(self):
        snapshots = SnapshotSet({0: [state(ALICE, 0, 0.0, 0.0)], 64: [state(ALICE, 64, 1.0, 1.0), state(BOB, 64, 5.0, 5.0)]})
        frame = interpolate_at_tick(snapshots, 32)
        assert [p.steam_id for p in frame.players] == [ALICE]

    def test_exact_sample_returns_sample(self, snapshots):
        frame = interpolate_at_tick(snapshots, 64)
        (alice,) = frame.players
        assert alice.health == 40
        assert alice.x == 64.0

    def test_blind_time_blends(self):
        snapshots = SnapshotSet(
            {0: [state(ALICE, 0, 0.0, 0.0, flash_duration=2.0)], 64: [state(ALICE, 64, 0.0, 0.0, flash_duration=1.0)]}
        )
        (alice,) = interpolate_at_tick(snapshots, 32).players
        assert alice.flash_duration == pytest.approx(1.5)

    def test_empty(self):
        assert interpolate_at_tick(SnapshotSet(), 10) is None


class TestInterpolateFrame:
    """Playback time to tick mapping."""

    @pytest.fixture
    def snapshots(self):
        return SnapshotSet({1000: [state(ALICE, 1000, 0.0, 0.0)], 1064: [state(ALICE, 1064, 100.0, 0.0)]})

    def test_time_from_first_sample(self, snapshots):
        frame = interpolate_frame(snapshots, 0.25, tick_rate=64)
        assert frame.tick == pytest.approx(1016.0)
        assert frame.players[0].x == pytest.approx(25.0)

    def test_negative_time_clamps_to_first(self, snapshots):
        frame = interpolate_frame(snapshots, -3.0, tick_rate=64)
        assert frame.players[0].x == 0.0

    def test_after_last_sample_holds_last(self, snapshots):
        frame = interpolate_frame(snapshots, 30.0, tick_rate=64)
        assert frame.players[0].x == 100.0

    def test_explicit_origin(self, snapshots):
        frame = interpolate_frame(snapshots, 0.5, tick_rate=64, origin_tick=1000 - 32)
        assert frame.players[0].x == pytest.approx(0.0)

    def test_empty(self):
        assert interpolate_frame(SnapshotSet(), 1.0) is None
