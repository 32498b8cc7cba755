"""
Demo query service.

The single boundary between callers (HTTP routes, CLI) and the engine:
resolves recordings inside the demos directory, drives the decoder,
memoizes results per recording fingerprint and hands back statistics,
replays and frames.

Error contract:
- FileNotFoundError: the recording (or demos directory) does not exist
- InvalidDemoNameError / InvalidTickRangeError (ValueError): bad query,
  rejected before anything is decoded
- RoundNotFoundError (LookupError): no such round in the match
- DemoDecodeError: the decoder failed; nothing partial is returned
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

from roundscope.analysis.models import MatchStats, RoundRecord
from roundscope.analysis.stats import aggregate_match_stats
from roundscope.core.config import RoundscopeConfig, get_config
from roundscope.core.decoder import DemoDecoder
from roundscope.core.events import Event, normalize_events
from roundscope.infra.cache import MemoCache, file_fingerprint
from roundscope.replay.builder import RoundReplay, build_round_replay, sample_ticks
from roundscope.replay.frames import Frame
from roundscope.replay.overlay import GhostPosition, PrefetchResult, overlay_positions, prefetch_rounds

logger = logging.getLogger(__name__)

DEMO_EXTENSION = ".dem"


class InvalidTickRangeError(ValueError):
    """Non-numeric or inverted tick range."""


class InvalidDemoNameError(ValueError):
    """Demo name is not a plain .dem file name inside the demos directory."""


class RoundNotFoundError(LookupError):
    """The requested round does not exist in the match."""


def _parse_int(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise InvalidTickRangeError(f"Invalid {label}: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise InvalidTickRangeError(f"Invalid {label}: {value!r}")
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise InvalidTickRangeError(f"Invalid {label}: {value!r}") from e


def parse_tick_range(start: Any, end: Any, interval: Any = None) -> tuple[int, int, int]:
    """
    Validate a replay query.

    Args:
        start: Start tick (int or numeric string)
        end: End tick (int or numeric string), must be >= start
        interval: Sampling interval, defaults to 1 when missing

    Returns:
        (start, end, interval) as ints

    Raises:
        InvalidTickRangeError: On non-numeric, negative or inverted values
    """
    if start is None or end is None:
        raise InvalidTickRangeError("Invalid tick range: startTick and endTick are required")
    start_tick = _parse_int(start, "startTick")
    end_tick = _parse_int(end, "endTick")
    step = 1 if interval is None or interval == "" else _parse_int(interval, "interval")

    if start_tick < 0:
        raise InvalidTickRangeError(f"Invalid tick range: startTick must be >= 0, got {start_tick}")
    if end_tick < start_tick:
        raise InvalidTickRangeError(f"Invalid tick range: endTick ({end_tick}) is before startTick ({start_tick})")
    if step < 1:
        raise InvalidTickRangeError(f"Invalid interval: must be >= 1, got {step}")
    return start_tick, end_tick, step


class DemoService:
    """Memoized statistics and replay queries over a directory of demos."""

    def __init__(
        self,
        demos_dir: str | Path | None = None,
        cache: MemoCache | None = None,
        config: RoundscopeConfig | None = None,
        decoder_factory: Callable[[Path], DemoDecoder] = DemoDecoder,
    ):
        self.config = config or get_config()
        self.demos_dir = Path(demos_dir if demos_dir is not None else self.config.api.demos_dir)
        self.cache = cache or MemoCache(max_entries=self.config.cache.max_entries)
        self.decoder_factory = decoder_factory

    # ------------------------------------------------------------------
    # Recordings
    # ------------------------------------------------------------------

    def list_demos(self) -> list[dict[str, Any]]:
        """Demos in the directory, newest first."""
        if not self.demos_dir.is_dir():
            raise FileNotFoundError(f"Demos directory not found: {self.demos_dir}")
        demos = []
        for path in self.demos_dir.iterdir():
            if not path.is_file() or path.suffix.lower() != DEMO_EXTENSION:
                continue
            stat = path.stat()
            demos.append(
                {
                    "name": path.name,
                    "size": stat.st_size,
                    "modified": datetime.fromtimestamp(stat.st_mtime).isoformat(),
                }
            )
        demos.sort(key=lambda d: d["modified"], reverse=True)
        return demos

    def resolve_demo(self, name: str) -> Path:
        """
        Map a demo name to a file inside the demos directory.

        Raises:
            InvalidDemoNameError: Name contains path components or is not a .dem file
            FileNotFoundError: No such demo
        """
        if not name or name != Path(name).name or name in (".", ".."):
            raise InvalidDemoNameError(f"Invalid demo name: {name!r}")
        if not name.lower().endswith(DEMO_EXTENSION):
            raise InvalidDemoNameError(f"Invalid demo name: {name!r} (expected a {DEMO_EXTENSION} file)")

        base = self.demos_dir.resolve()
        path = (base / name).resolve()
        if path.parent != base:
            raise InvalidDemoNameError(f"Invalid demo name: {name!r}")
        if not path.is_file():
            raise FileNotFoundError(f"Demo file not found: {name}")
        return path

    def _fingerprint(self, path: Path) -> str:
        return file_fingerprint(path, self.config.cache.fingerprint)

    def _events(self, path: Path, fingerprint: str, names: Iterable[str]) -> list[Event]:
        names = tuple(names)

        def compute() -> list[Event]:
            records = self.decoder_factory(path).parse_events(list(names))
            return normalize_events(records)

        return self.cache.get_or_compute(str(path), fingerprint, compute, namespace="events", params=names)

    # ------------------------------------------------------------------
    # Statistics query
    # ------------------------------------------------------------------

    def get_match(self, name: str) -> tuple[dict[str, Any], MatchStats]:
        path = self.resolve_demo(name)
        fingerprint = self._fingerprint(path)

        def compute() -> tuple[dict[str, Any], MatchStats]:
            header = self.decoder_factory(path).parse_header()
            events = self._events(path, fingerprint, self.config.decoder.stats_events)
            return header, aggregate_match_stats(events)

        return self.cache.get_or_compute(str(path), fingerprint, compute, namespace="stats")

    def get_match_stats(self, name: str) -> dict[str, Any]:
        """Header plus score, round history and player statistics."""
        header, stats = self.get_match(name)
        return {"header": header, "match_stats": stats.to_dict()}

    def get_round(self, name: str, round_num: int) -> RoundRecord:
        _header, stats = self.get_match(name)
        record = stats.get_round(round_num)
        if record is None:
            raise RoundNotFoundError(f"Round {round_num} not found (match has {stats.total_rounds} rounds)")
        return record

    # ------------------------------------------------------------------
    # Replay query
    # ------------------------------------------------------------------

    def get_round_replay(
        self,
        name: str,
        start: Any,
        end: Any,
        interval: Any = None,
        round_num: int | None = None,
    ) -> RoundReplay:
        """Replay data for a tick range; the range is validated before decoding."""
        start_tick, end_tick, step = parse_tick_range(start, end, interval)
        path = self.resolve_demo(name)
        fingerprint = self._fingerprint(path)

        def compute() -> RoundReplay:
            events = self._events(path, fingerprint, self.config.decoder.replay_events)
            snapshots = self.decoder_factory(path).parse_ticks(
                list(self.config.decoder.snapshot_fields),
                sample_ticks(start_tick, end_tick, step),
            )
            return build_round_replay(
                events,
                snapshots,
                start_tick,
                end_tick,
                step,
                config=self.config.replay,
                round_num=round_num,
            )

        return self.cache.get_or_compute(
            str(path), fingerprint, compute, namespace="replay", params=(start_tick, end_tick, step)
        )

    def get_replay_for_round(self, name: str, round_num: int, interval: int | None = None) -> RoundReplay:
        record = self.get_round(name, round_num)
        step = interval if interval is not None else self.config.replay.default_interval
        return self.get_round_replay(name, record.start_tick, record.end_tick, step, round_num=round_num)

    def get_round_frame(self, name: str, round_num: int, time: float) -> Frame:
        """One interpolated frame ``time`` seconds into a round."""
        return self.get_replay_for_round(name, round_num).frame_at(time)

    # ------------------------------------------------------------------
    # Multi-round overlay
    # ------------------------------------------------------------------

    def prefetch(
        self,
        name: str,
        rounds: Iterable[int] | None = None,
        on_progress: Callable[[int, int], None] | None = None,
        cancel: threading.Event | None = None,
    ) -> PrefetchResult:
        """Load several rounds one after another at the prefetch interval."""
        if rounds is None:
            _header, stats = self.get_match(name)
            rounds = [r.round_num for r in stats.rounds]
        interval = self.config.replay.prefetch_interval
        return prefetch_rounds(
            lambda round_num: self.get_replay_for_round(name, round_num, interval),
            rounds,
            on_progress=on_progress,
            cancel=cancel,
        )

    def get_overlay(
        self,
        name: str,
        rounds: Iterable[int],
        time: float,
        steam_ids: Iterable[int] | None = None,
    ) -> tuple[list[GhostPosition], dict[int, str]]:
        """Ghost positions for the selected rounds, plus rounds that failed to load."""
        self.resolve_demo(name)
        result = self.prefetch(name, rounds)
        return overlay_positions(result.replays, time, steam_ids), result.failures
