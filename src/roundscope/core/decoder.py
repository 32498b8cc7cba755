"""
Demo decoder adapter for CS2 replay files.

Thin boundary around demoparser2. The rest of Roundscope never touches the
binary format; it consumes three calls:

- parse_header(): map name, playback time, server info
- parse_events(names): raw event records, each tagged with ``event_name``
- parse_ticks(fields, ticks): per-entity snapshot rows for the requested ticks

Any failure inside demoparser2 is surfaced as ``DemoDecodeError`` carrying
the underlying message, so callers never build statistics from a half-read
recording.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pandas as pd

from roundscope.core.utils import safe_float, safe_int, safe_str

if TYPE_CHECKING:
    from demoparser2 import DemoParser as Demoparser2

try:
    from demoparser2 import DemoParser as Demoparser2

    DEMOPARSER2_AVAILABLE = True
except ImportError:
    DEMOPARSER2_AVAILABLE = False

logger = logging.getLogger(__name__)


class DemoDecodeError(RuntimeError):
    """The recording could not be decoded."""


def _frame_to_records(df: pd.DataFrame, event_name: str | None = None) -> list[dict[str, Any]]:
    """Flatten a decoder DataFrame into plain dicts with NaN mapped to None."""
    if df is None or df.empty:
        return []
    clean = df.astype(object).where(pd.notna(df), None)
    records = clean.to_dict("records")
    if event_name is not None:
        for record in records:
            record["event_name"] = event_name
    return records


class DemoDecoder:
    """
    Reads header, events and tick snapshots from a CS2 demo via demoparser2.

    Instances are cheap; the underlying parser is created lazily on first use.
    """

    def __init__(self, demo_path: str | Path):
        self.demo_path = Path(demo_path)
        if not self.demo_path.exists():
            raise FileNotFoundError(f"Demo file not found: {demo_path}")
        self._parser: Demoparser2 | None = None

    @property
    def parser(self) -> Demoparser2:
        if self._parser is None:
            if not DEMOPARSER2_AVAILABLE:
                raise ImportError("No parser available. Install demoparser2: pip install demoparser2")
            try:
                self._parser = Demoparser2(str(self.demo_path))
            except Exception as e:
                raise DemoDecodeError(f"Failed to open demo {self.demo_path.name}: {e}") from e
        return self._parser

    def parse_header(self) -> dict[str, Any]:
        """Parse header metadata (map name, duration, server)."""
        try:
            header = self.parser.parse_header()
        except (DemoDecodeError, ImportError):
            raise
        except Exception as e:
            raise DemoDecodeError(f"Failed to parse header: {e}") from e

        if not isinstance(header, dict):
            header = {}
        result = dict(header)
        result["map_name"] = safe_str(header.get("map_name"), "unknown")
        result["playback_time"] = safe_float(header.get("playback_time"), 0.0)
        result["server_name"] = safe_str(header.get("server_name"))
        logger.info(f"Map: {result['map_name']}, Server: {result['server_name']}")
        return result

    def parse_events(self, event_names: list[str]) -> list[dict[str, Any]]:
        """
        Parse the requested game events.

        Event kinds the recording never emitted simply contribute no records.

        Returns:
            Flat list of records (unsorted), each with an ``event_name`` key
        """
        if not event_names:
            return []
        try:
            parsed = self.parser.parse_events(list(event_names))
        except (DemoDecodeError, ImportError):
            raise
        except Exception as e:
            raise DemoDecodeError(f"Failed to parse events: {e}") from e

        records: list[dict[str, Any]] = []
        for event_name, df in parsed or []:
            batch = _frame_to_records(df, event_name)
            logger.debug(f"Parsed {len(batch)} {event_name} events")
            records.extend(batch)

        logger.info(f"Parsed {len(records)} events of {len(event_names)} requested kinds")
        return records

    def parse_ticks(
        self,
        fields: list[str],
        ticks: list[int],
        players: list[int] | None = None,
    ) -> pd.DataFrame:
        """
        Parse entity snapshots for the requested ticks.

        Args:
            fields: demoparser2 prop names (e.g. "X", "yaw", "health")
            ticks: Ticks to sample; only these ticks are populated
            players: Optional Steam IDs to restrict the snapshot to

        Returns:
            DataFrame with at least ``tick``, ``steamid`` and ``name`` columns
        """
        if not ticks:
            return pd.DataFrame(columns=["tick", "steamid", "name", *fields])
        kwargs: dict[str, Any] = {"ticks": [safe_int(t) for t in ticks]}
        if players:
            kwargs["players"] = list(players)
        try:
            df = self.parser.parse_ticks(list(fields), **kwargs)
        except (DemoDecodeError, ImportError):
            raise
        except Exception as e:
            raise DemoDecodeError(f"Failed to parse ticks: {e}") from e

        if df is None:
            return pd.DataFrame(columns=["tick", "steamid", "name", *fields])
        logger.info(f"Parsed {len(df)} snapshot rows across {len(ticks)} ticks")
        return df
