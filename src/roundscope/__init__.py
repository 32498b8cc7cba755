"""
Roundscope - CS2 Demo Scoreboards and Round Replays

Reconstructs match statistics (score per organization across side swaps,
round history, per-player K/D/A, headshots, ADR) and smooth, stateful 2D
round replays (interpolated movement, grenade flight paths, bomb state,
blind timers) from CS2 demo files.

Usage:
    from roundscope import DemoService

    service = DemoService("demos")
    stats = service.get_match_stats("match.dem")
    frame = service.get_round_frame("match.dem", round_num=3, time=12.5)
"""

__version__ = "0.1.0"
__author__ = "Roundscope Contributors"


def __getattr__(name):
    """Lazy import for heavy dependencies."""
    if name == "DemoService":
        from roundscope.service import DemoService
        return DemoService
    elif name == "DemoDecoder":
        from roundscope.core.decoder import DemoDecoder
        return DemoDecoder
    elif name == "normalize_events":
        from roundscope.core.events import normalize_events
        return normalize_events
    elif name == "aggregate_match_stats":
        from roundscope.analysis.stats import aggregate_match_stats
        return aggregate_match_stats
    elif name == "build_round_replay":
        from roundscope.replay.builder import build_round_replay
        return build_round_replay
    elif name == "PlaybackClock":
        from roundscope.replay.playback import PlaybackClock
        return PlaybackClock
    raise AttributeError(f"module 'roundscope' has no attribute '{name}'")


__all__ = [
    # Version
    "__version__",
    # Query boundary
    "DemoService",
    "DemoDecoder",
    # Engine
    "normalize_events",
    "aggregate_match_stats",
    "build_round_replay",
    "PlaybackClock",
]
