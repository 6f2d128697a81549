"""Tests for configuration loading."""

from __future__ import annotations

import os
from datetime import timedelta

import pytest
from pydantic import ValidationError

from core.config import AppConfig, EngineConfig, load_config
from core.duration import parse_duration


class TestDuration:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("30s", timedelta(seconds=30)), ("5m", timedelta(minutes=5)),
         ("2h", timedelta(hours=2)), ("365d", timedelta(days=365)),
         ("52w", timedelta(weeks=52)), ("1h30m", timedelta(minutes=90)),
         (" 10 s ", timedelta(seconds=10))],
    )
    def test_parse(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "5", "m5", "1.5h", "10y"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)


class TestModels:
    def test_defaults(self):
        config = AppConfig()
        assert config.engine.min_bars == 50
        assert config.engine.risk_free_rate == 0.02
        assert config.engine.benchmark_symbol == "SPY"
        assert config.engine.lookback_window == timedelta(days=365)
        assert config.engine.fetch_timeout_seconds == 30.0
        assert config.market_data.provider == "yahoo_finance"
        assert config.sentiment.provider == "headlines"
        assert config.cache.ttl_seconds == 300.0

    def test_invalid_duration_rejected(self):
        with pytest.raises(ValidationError):
            EngineConfig(lookback="a year")

    def test_min_bars_lower_bound(self):
        with pytest.raises(ValidationError):
            EngineConfig(min_bars=1)


class TestLoadConfig:
    def test_missing_files_use_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("STONKS_HOME", raising=False)
        config = load_config(tmp_path / "config.yaml", tmp_path / ".env")
        assert config.engine == EngineConfig()

    def test_yaml_values_and_env_references(self, tmp_path, monkeypatch):
        monkeypatch.delenv("STONKS_HOME", raising=False)
        monkeypatch.setenv("STONKS_TEST_FINNHUB_KEY", "secret-key")
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "engine:\n"
            "  min_bars: 60\n"
            "  fetch_timeout: 10s\n"
            "market_data:\n"
            "  provider: finnhub\n"
            "  providers:\n"
            "    finnhub:\n"
            "      api_key: ${STONKS_TEST_FINNHUB_KEY}\n"
            "cache:\n"
            "  enabled: false\n"
        )
        config = load_config(config_file, tmp_path / ".env")
        assert config.engine.min_bars == 60
        assert config.engine.fetch_timeout_seconds == 10.0
        assert config.market_data.provider == "finnhub"
        assert config.market_data.providers["finnhub"].api_key == "secret-key"
        assert config.cache.enabled is False

    def test_unresolved_reference_is_left_in_place(self, tmp_path, monkeypatch):
        monkeypatch.delenv("STONKS_HOME", raising=False)
        monkeypatch.delenv("STONKS_TEST_UNSET", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text("engine:\n  benchmark_symbol: ${STONKS_TEST_UNSET}\n")
        config = load_config(config_file, tmp_path / ".env")
        assert config.engine.benchmark_symbol == "${STONKS_TEST_UNSET}"

    def test_dotenv_feeds_references(self, tmp_path, monkeypatch):
        monkeypatch.delenv("STONKS_HOME", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("STONKS_TEST_DOTENV_BENCH=QQQ\n")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("engine:\n  benchmark_symbol: ${STONKS_TEST_DOTENV_BENCH}\n")
        try:
            config = load_config(config_file, env_file)
        finally:
            os.environ.pop("STONKS_TEST_DOTENV_BENCH", None)
        assert config.engine.benchmark_symbol == "QQQ"

    def test_home_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STONKS_HOME", str(tmp_path))
        (tmp_path / "config.yaml").write_text("logging:\n  level: DEBUG\n")
        config = load_config()
        assert config.logging.level == "DEBUG"

    def test_provider_settings_are_enabled_and_api_key_only(self, tmp_path, monkeypatch):
        monkeypatch.delenv("STONKS_HOME", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "home_dir: /elsewhere\n"
            "market_data:\n"
            "  providers:\n"
            "    finnhub:\n"
            "      api_key: abc\n"
            "      extra: {region: us}\n"
        )
        config = load_config(config_file, tmp_path / ".env")
        finnhub = config.market_data.providers["finnhub"]
        assert finnhub.model_dump() == {"enabled": True, "api_key": "abc"}
        assert "home_dir" not in config.model_dump()

    def test_invalid_yaml_values_fail_fast(self, tmp_path, monkeypatch):
        monkeypatch.delenv("STONKS_HOME", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text("cache:\n  ttl: forever\n")
        with pytest.raises(ValidationError):
            load_config(config_file, tmp_path / ".env")
