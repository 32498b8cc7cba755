"""Tests for the demoparser2 adapter."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pandas as pd
import pytest

from roundscope.core.decoder import DemoDecodeError, DemoDecoder


@pytest.fixture
def demo_file(tmp_path):
    path = tmp_path / "match.dem"
    path.write_bytes(b"PBDEMS2\x00")
    return path


@pytest.fixture
def mock_parser():
    parser = MagicMock()
    with (
        patch("roundscope.core.decoder.DEMOPARSER2_AVAILABLE", True),
        patch("roundscope.core.decoder.Demoparser2", create=True, return_value=parser) as cls,
    ):
        parser.constructor = cls
        yield parser


class TestDemoDecoder:
    """Header, events and ticks through a mocked demoparser2."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            DemoDecoder(tmp_path / "absent.dem")

    def test_parser_created_lazily_once(self, demo_file, mock_parser):
        decoder = DemoDecoder(demo_file)
        mock_parser.constructor.assert_not_called()
        mock_parser.parse_header.return_value = {}
        decoder.parse_header()
        decoder.parse_header()
        mock_parser.constructor.assert_called_once_with(str(demo_file))

    def test_header_defaults(self, demo_file, mock_parser):
        mock_parser.parse_header.return_value = {"map_name": "de_inferno", "playback_time": "95.5"}
        header = DemoDecoder(demo_file).parse_header()
        assert header["map_name"] == "de_inferno"
        assert header["playback_time"] == 95.5
        assert header["server_name"] == ""

    def test_events_flattened_and_tagged(self, demo_file, mock_parser):
        deaths = pd.DataFrame([{"tick": 100, "user_steamid": "765", "headshot": True, "assister_steamid": np.nan}])
        ends = pd.DataFrame([{"tick": 300, "winner": "CT"}])
        mock_parser.parse_events.return_value = [("player_death", deaths), ("round_end", ends)]

        records = DemoDecoder(demo_file).parse_events(["player_death", "round_end"])

        assert [r["event_name"] for r in records] == ["player_death", "round_end"]
        assert records[0]["assister_steamid"] is None
        assert records[0]["tick"] == 100
        mock_parser.parse_events.assert_called_once_with(["player_death", "round_end"])

    def test_empty_event_frames(self, demo_file, mock_parser):
        mock_parser.parse_events.return_value = [("bomb_planted", pd.DataFrame())]
        assert DemoDecoder(demo_file).parse_events(["bomb_planted"]) == []

    def test_no_event_names(self, demo_file, mock_parser):
        assert DemoDecoder(demo_file).parse_events([]) == []
        mock_parser.parse_events.assert_not_called()

    def test_ticks(self, demo_file, mock_parser):
        frame = pd.DataFrame([{"tick": 64, "steamid": 1, "name": "a", "X": 1.0}])
        mock_parser.parse_ticks.return_value = frame

        result = DemoDecoder(demo_file).parse_ticks(["X"], [64], players=[1])

        assert result is frame
        mock_parser.parse_ticks.assert_called_once_with(["X"], ticks=[64], players=[1])

    def test_no_ticks_requested(self, demo_file, mock_parser):
        result = DemoDecoder(demo_file).parse_ticks(["X", "Y"], [])
        assert result.empty
        assert list(result.columns) == ["tick", "steamid", "name", "X", "Y"]
        mock_parser.parse_ticks.assert_not_called()

    @pytest.mark.parametrize(
        "method,args",
        [
            ("parse_header", ()),
            ("parse_events", (["round_end"],)),
            ("parse_ticks", (["X"], [1])),
        ],
    )
    def test_parser_errors_wrapped(self, demo_file, mock_parser, method, args):
        getattr(mock_parser, method).side_effect = Exception("unexpected end of demo")
        with pytest.raises(DemoDecodeError, match="unexpected end of demo"):
            getattr(DemoDecoder(demo_file), method)(*args)

    def test_open_failure_wrapped(self, demo_file):
        with (
            patch("roundscope.core.decoder.DEMOPARSER2_AVAILABLE", True),
            patch("roundscope.core.decoder.Demoparser2", create=True, side_effect=Exception("not a demo")),
        ):
            with pytest.raises(DemoDecodeError, match="not a demo"):
                DemoDecoder(demo_file).parse_header()

    def test_demoparser2_missing(self, demo_file):
        with patch("roundscope.core.decoder.DEMOPARSER2_AVAILABLE", False):
            with pytest.raises(ImportError, match="demoparser2"):
                DemoDecoder(demo_file).parse_header()
