"""
Replay path.

- snapshots: tick -> entity states, at-or-before lookup, blind windows
- grenades: throw/effect matching
- bomb: derived bomb state
- interpolation: continuous-time player states
- builder / frames: round assembly and renderable frames
- playback / overlay: scheduler and multi-round ghosts
"""

from roundscope.replay.builder import RoundReplay, build_round_replay
from roundscope.replay.frames import Frame
from roundscope.replay.playback import PlaybackCancelledError, PlaybackClock

__all__ = [
    "Frame",
    "PlaybackCancelledError",
    "PlaybackClock",
    "RoundReplay",
    "build_round_replay",
]
