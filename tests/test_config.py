"""Tests for service configuration loading."""
import json

import pytest

from atlas_hybrid.config import ServiceConfig
from atlas_hybrid.intent import DEFAULT_INTENT


class TestServiceConfig:
    """Tests for ServiceConfig."""

    def test_defaults(self):
        """Defaults use ./.atlas and the built-in intent defaults."""
        config = ServiceConfig()
        assert config.state_dir == "./.atlas"
        assert config.intent_defaults == DEFAULT_INTENT
        assert config.engine.n_arms == 10

    def test_from_dict_merges_intent_defaults(self):
        """Partial intent defaults are merged over the built-ins."""
        config = ServiceConfig.from_dict({"intent_defaults": {"domain": "blog"}, "log_level": "debug"})
        assert config.intent_defaults["domain"] == "blog"
        assert config.intent_defaults["device"] == "desktop"
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("filename", ["atlas.yaml", "atlas.json"])
    def test_save_load_roundtrip(self, tmp_path, filename):
        """YAML and JSON files round-trip."""
        path = str(tmp_path / filename)
        config = ServiceConfig(state_dir="/tmp/atlas-state", layout_cache_size=64)
        config.engine.bandit_ratio = 0.8
        config.save(path)

        loaded = ServiceConfig.load(path)
        assert loaded.state_dir == "/tmp/atlas-state"
        assert loaded.layout_cache_size == 64
        assert loaded.engine.bandit_ratio == 0.8

    def test_load_yaml_engine_section(self, tmp_path):
        """Engine settings are read from a nested section."""
        path = tmp_path / "atlas.yaml"
        path.write_text("engine:\n  active_bandit: ucb\n  bandit_ratio: 0.7\n")
        config = ServiceConfig.load(str(path))
        assert config.engine.active_bandit == "ucb"
        assert config.engine.bandit_ratio == 0.7

    def test_load_missing_or_invalid(self, tmp_path):
        """Missing, malformed and non-mapping files load as None."""
        assert ServiceConfig.load(str(tmp_path / "absent.yaml")) is None
        bad = tmp_path / "bad.json"
        bad.write_text("{oops")
        assert ServiceConfig.load(str(bad)) is None
        listed = tmp_path / "list.json"
        listed.write_text(json.dumps([1, 2]))
        assert ServiceConfig.load(str(listed)) is None


class TestFromEnv:
    """Tests for environment overrides."""

    def test_overrides(self, monkeypatch):
        """ATLAS_* variables override the base config."""
        monkeypatch.setenv("ATLAS_STATE_DIR", "/var/lib/atlas")
        monkeypatch.setenv("ATLAS_LOG_LEVEL", "warning")
        monkeypatch.setenv("ATLAS_BANDIT_RATIO", "0.25")
        monkeypatch.setenv("ATLAS_ACTIVE_BANDIT", "ucb")
        config = ServiceConfig.from_env(ServiceConfig())
        assert config.state_dir == "/var/lib/atlas"
        assert config.log_level == "WARNING"
        assert config.engine.bandit_ratio == 0.25
        assert config.engine.active_bandit == "ucb"

    def test_invalid_ratio_ignored(self, monkeypatch):
        """A non-numeric ratio keeps the base value."""
        monkeypatch.setenv("ATLAS_BANDIT_RATIO", "lots")
        config = ServiceConfig.from_env(ServiceConfig())
        assert config.engine.bandit_ratio == 0.5

    def test_config_file_from_env(self, tmp_path, monkeypatch):
        """ATLAS_CONFIG names the base file when no base is given."""
        path = tmp_path / "atlas.yaml"
        path.write_text("state_dir: /srv/atlas\n")
        monkeypatch.setenv("ATLAS_CONFIG", str(path))
        monkeypatch.delenv("ATLAS_STATE_DIR", raising=False)
        assert ServiceConfig.from_env().state_dir == "/srv/atlas"
