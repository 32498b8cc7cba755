"""
Playback scheduler.

A cooperative, single-threaded clock over a RoundReplay. A render loop calls
``advance(delta)`` once per display refresh at whatever cadence it runs;
play/pause/scrub/cancel are plain calls between steps. The clock only holds
the playback time and flags; every frame is recomputed from the replay.
"""

from __future__ import annotations

import logging

from roundscope.replay.builder import RoundReplay
from roundscope.replay.frames import Frame

logger = logging.getLogger(__name__)


class PlaybackCancelledError(RuntimeError):
    """The clock was cancelled; no further frames are produced."""


class PlaybackClock:
    """Drives playback time over a replay."""

    def __init__(self, replay: RoundReplay, speed: float = 1.0):
        if speed <= 0:
            raise ValueError(f"speed must be positive, got {speed}")
        self.replay = replay
        self.speed = speed
        self.time = 0.0
        self.playing = False
        self.cancelled = False

    @property
    def duration(self) -> float:
        return self.replay.duration

    @property
    def at_end(self) -> bool:
        return self.time >= self.duration

    @property
    def progress(self) -> float:
        """Playback position as a percentage."""
        return self.time / self.duration * 100 if self.duration > 0 else 0.0

    def _check_active(self) -> None:
        if self.cancelled:
            raise PlaybackCancelledError("Playback has been cancelled")

    def play(self) -> None:
        """Start or resume; restarts from the beginning when at the end."""
        self._check_active()
        if self.at_end:
            self.time = 0.0
        self.playing = True

    def pause(self) -> None:
        self._check_active()
        self.playing = False

    def toggle(self) -> None:
        if self.playing:
            self.pause()
        else:
            self.play()

    def scrub(self, seconds: float) -> Frame:
        """Jump to ``seconds`` (clamped to the replay) and return that frame."""
        self._check_active()
        self.time = min(max(0.0, seconds), self.duration)
        return self.replay.frame_at(self.time)

    def cancel(self) -> None:
        """Tear down; later calls raise PlaybackCancelledError."""
        self.cancelled = True
        self.playing = False
        logger.debug(f"Playback cancelled at {self.time:.2f}s")

    def advance(self, delta_seconds: float) -> Frame:
        """
        One step of the render loop.

        Moves time forward by ``delta_seconds * speed`` while playing, stops
        at the end, and returns the frame for the resulting time.

        Raises:
            PlaybackCancelledError: If the clock was cancelled
            ValueError: If delta_seconds is negative
        """
        self._check_active()
        if delta_seconds < 0:
            raise ValueError(f"delta_seconds must be >= 0, got {delta_seconds}")
        if self.playing:
            self.time += delta_seconds * self.speed
            if self.time >= self.duration:
                self.time = self.duration
                self.playing = False
        return self.replay.frame_at(self.time)

    def frame(self) -> Frame:
        """The frame at the current time, without advancing."""
        self._check_active()
        return self.replay.frame_at(self.time)
