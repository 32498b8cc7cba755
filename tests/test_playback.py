"""Tests for the playback clock."""

from __future__ import annotations

import pytest

from roundscope.replay.builder import RoundReplay
from roundscope.replay.playback import PlaybackCancelledError, PlaybackClock
from roundscope.replay.snapshots import EntityState, SnapshotSet

ALICE = 76561198000000001


@pytest.fixture
def replay():
    snapshots = SnapshotSet(
        {tick: [EntityState(steam_id=ALICE, name="alice", tick=tick, x=float(tick), y=0.0)] for tick in (0, 64, 128)}
    )
    return RoundReplay(start_tick=0, end_tick=128, interval=64, snapshots=snapshots)


class TestPlaybackClock:
    """Play, pause, scrub and advance."""

    def test_starts_paused_at_zero(self, replay):
        clock = PlaybackClock(replay)
        assert clock.time == 0.0
        assert clock.playing is False
        assert clock.duration == pytest.approx(2.0)

    def test_advance_while_paused_does_not_move(self, replay):
        clock = PlaybackClock(replay)
        frame = clock.advance(0.5)
        assert clock.time == 0.0
        assert frame.players[0].state.x == 0.0

    def test_advance_while_playing(self, replay):
        clock = PlaybackClock(replay)
        clock.play()
        frame = clock.advance(0.5)
        assert clock.time == pytest.approx(0.5)
        assert frame.players[0].state.x == pytest.approx(32.0)
        assert clock.progress == pytest.approx(25.0)

    def test_speed_multiplier(self, replay):
        clock = PlaybackClock(replay, speed=2.0)
        clock.play()
        clock.advance(0.5)
        assert clock.time == pytest.approx(1.0)

    def test_stops_at_end(self, replay):
        clock = PlaybackClock(replay)
        clock.play()
        frame = clock.advance(10.0)
        assert clock.time == pytest.approx(2.0)
        assert clock.playing is False
        assert clock.at_end is True
        assert frame.players[0].state.x == 128.0

    def test_play_at_end_restarts(self, replay):
        clock = PlaybackClock(replay)
        clock.scrub(2.0)
        clock.play()
        assert clock.time == 0.0
        assert clock.playing is True

    def test_pause_and_toggle(self, replay):
        clock = PlaybackClock(replay)
        clock.toggle()
        assert clock.playing is True
        clock.advance(0.25)
        clock.pause()
        clock.advance(1.0)
        assert clock.time == pytest.approx(0.25)
        clock.toggle()
        assert clock.playing is True

    def test_scrub_clamps(self, replay):
        clock = PlaybackClock(replay)
        assert clock.scrub(-5.0).time == 0.0
        assert clock.scrub(50.0).time == pytest.approx(2.0)
        frame = clock.scrub(1.0)
        assert frame.players[0].state.x == pytest.approx(64.0)
        assert clock.time == pytest.approx(1.0)

    def test_frame_without_advancing(self, replay):
        clock = PlaybackClock(replay)
        clock.scrub(0.5)
        assert clock.frame().time == pytest.approx(0.5)
        assert clock.time == pytest.approx(0.5)

    def test_negative_delta_raises(self, replay):
        clock = PlaybackClock(replay)
        with pytest.raises(ValueError):
            clock.advance(-0.1)

    @pytest.mark.parametrize("speed", [0, -1.0])
    def test_invalid_speed(self, replay, speed):
        with pytest.raises(ValueError):
            PlaybackClock(replay, speed=speed)


class TestCancellation:
    """A cancelled clock produces no more frames."""

    def test_cancel_stops_everything(self, replay):
        clock = PlaybackClock(replay)
        clock.play()
        clock.cancel()
        assert clock.playing is False
        for call in (lambda: clock.advance(0.1), clock.play, clock.pause, lambda: clock.scrub(1.0), clock.frame):
            with pytest.raises(PlaybackCancelledError):
                call()

    def test_cancel_is_idempotent(self, replay):
        clock = PlaybackClock(replay)
        clock.cancel()
        clock.cancel()
        assert clock.cancelled is True
