"""Tests for configuration loading, merging and saving."""

from __future__ import annotations

import json
import logging
import logging.handlers

import pytest
import yaml

from roundscope.core.config import (
    LoggingConfig,
    RoundscopeConfig,
    config_to_dict,
    dict_to_config,
    generate_default_config,
    get_config,
    load_config,
    load_env_config,
    merge_configs,
    reset_config,
    save_config,
    set_config,
    setup_logging,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "ROUNDSCOPE_LOG_LEVEL",
        "ROUNDSCOPE_LOG_FILE",
        "ROUNDSCOPE_DEMOS_DIR",
        "ROUNDSCOPE_TICK_RATE",
        "ROUNDSCOPE_PREFETCH_INTERVAL",
        "ROUNDSCOPE_CACHE_FINGERPRINT",
        "ROUNDSCOPE_CACHE_MAX_ENTRIES",
    ):
        monkeypatch.delenv(var, raising=False)
    yield
    reset_config()


class TestDefaults:
    """Default values."""

    def test_defaults(self):
        config = RoundscopeConfig()
        assert config.replay.tick_rate == 64
        assert config.replay.fuse_seconds == 40.0
        assert config.replay.prefetch_interval == 4
        assert config.cache.fingerprint == "sha256"
        assert config.api.demos_dir == "demos"
        assert "player_death" in config.decoder.stats_events
        assert "X" in config.decoder.snapshot_fields

    def test_sections_do_not_share_lists(self):
        a, b = RoundscopeConfig(), RoundscopeConfig()
        a.decoder.stats_events.append("bomb_planted")
        assert "bomb_planted" not in b.decoder.stats_events


class TestLoading:
    """File, environment and merge precedence."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "roundscope.yaml"
        path.write_text("replay:\n  tick_rate: 128\ncache:\n  fingerprint: size\n")
        config = load_config(path, include_env=False)
        assert config.replay.tick_rate == 128
        assert config.cache.fingerprint == "size"
        assert config.replay.fuse_seconds == 40.0

    def test_load_toml(self, tmp_path):
        path = tmp_path / "roundscope.toml"
        path.write_text('[api]\ndemos_dir = "/srv/demos"\n')
        assert load_config(path, include_env=False).api.demos_dir == "/srv/demos"

    def test_load_json(self, tmp_path):
        path = tmp_path / "roundscope.json"
        path.write_text(json.dumps({"cache": {"max_entries": 8}}))
        assert load_config(path, include_env=False).cache.max_entries == 8

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "roundscope.yaml"
        path.write_text("replay:\n  tick_rate: 128\n")
        monkeypatch.setenv("ROUNDSCOPE_TICK_RATE", "32")
        monkeypatch.setenv("ROUNDSCOPE_DEMOS_DIR", "/data/demos")
        config = load_config(path)
        assert config.replay.tick_rate == 32
        assert config.api.demos_dir == "/data/demos"

    def test_env_type_conversion(self, monkeypatch):
        monkeypatch.setenv("ROUNDSCOPE_CACHE_MAX_ENTRIES", "16")
        monkeypatch.setenv("ROUNDSCOPE_LOG_LEVEL", "DEBUG")
        env = load_env_config()
        assert env == {"cache": {"max_entries": 16}, "logging": {"level": "DEBUG"}}

    def test_numeric_looking_paths_stay_strings(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ROUNDSCOPE_DEMOS_DIR", "2024")
        monkeypatch.setenv("ROUNDSCOPE_LOG_FILE", "123")
        config = load_config(tmp_path / "absent.yaml")
        assert config.api.demos_dir == "2024"
        assert config.logging.file == "123"

    def test_malformed_number_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ROUNDSCOPE_TICK_RATE", "fast")
        assert load_env_config() == {}
        assert load_config(tmp_path / "absent.yaml").replay.tick_rate == 64

    def test_merge_is_deep(self):
        merged = merge_configs({"replay": {"tick_rate": 64, "fuse_seconds": 40.0}}, {"replay": {"tick_rate": 128}})
        assert merged == {"replay": {"tick_rate": 128, "fuse_seconds": 40.0}}

    def test_unknown_keys_ignored(self):
        config = dict_to_config({"replay": {"tick_rate": 128, "warp_speed": 9}, "mystery": {"a": 1}})
        assert config.replay.tick_rate == 128
        assert not hasattr(config.replay, "warp_speed")

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml", include_env=False)
        assert config == RoundscopeConfig()


class TestSaving:
    """Persisting configuration."""

    @pytest.mark.parametrize("name", ["out.yaml", "out.json"])
    def test_save_and_reload(self, tmp_path, name):
        config = RoundscopeConfig()
        config.replay.tick_rate = 128
        config.api.cors_origins = ["http://localhost:5173"]
        path = tmp_path / name
        save_config(config, path)

        reloaded = load_config(path, include_env=False)
        assert reloaded.replay.tick_rate == 128
        assert reloaded.api.cors_origins == ["http://localhost:5173"]

    def test_unknown_format(self, tmp_path):
        with pytest.raises(ValueError):
            save_config(RoundscopeConfig(), tmp_path / "out.ini")

    def test_config_to_dict(self):
        data = config_to_dict(RoundscopeConfig())
        assert data["replay"]["tick_rate"] == 64
        assert set(data) >= {"decoder", "replay", "cache", "api", "logging"}

    def test_generate_default_config(self, tmp_path):
        path = tmp_path / "roundscope.yaml"
        generate_default_config(path)
        data = yaml.safe_load(path.read_text())
        assert data["replay"]["tick_rate"] == 64
        assert load_config(path, include_env=False).cache.max_entries == 32


class TestGlobalConfig:
    """Process-wide configuration."""

    def test_set_and_reset(self):
        custom = RoundscopeConfig()
        custom.replay.tick_rate = 128
        set_config(custom)
        assert get_config() is custom
        reset_config()
        assert get_config() is not custom


class TestSetupLogging:
    """Root logger configuration."""

    def test_level_and_file_handler(self, tmp_path):
        log_file = tmp_path / "roundscope.log"
        setup_logging(LoggingConfig(level="DEBUG", file=str(log_file)))
        root = logging.getLogger()
        try:
            assert root.level == logging.DEBUG
            assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
        finally:
            for handler in list(root.handlers):
                if isinstance(handler, logging.handlers.RotatingFileHandler):
                    root.removeHandler(handler)
                    handler.close()
            root.setLevel(logging.WARNING)
