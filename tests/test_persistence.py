"""Tests for engine state persistence."""
import json

import pytest

from atlas_hybrid.errors import EngineInitError
from atlas_hybrid.intent import FEATURE_SCHEMA_VERSION
from atlas_hybrid.learning.persistence_hooks import STATE_VERSION, EnginePersistence


class TestEnginePersistence:
    """Tests for EnginePersistence."""

    def test_paths(self, tmp_path):
        """Artifacts are named after the sanitized engine name."""
        persistence = EnginePersistence(str(tmp_path), name="my engine/1")
        assert persistence.name == "my_engine_1"
        assert persistence.state_path.name == "my_engine_1_state.json"
        assert persistence.weights_path.name == "my_engine_1_weights.pt"

    def test_creates_directory(self, tmp_path):
        """The base directory is created on demand."""
        target = tmp_path / "a" / "b"
        EnginePersistence(str(target))
        assert target.is_dir()

    def test_unusable_directory(self, tmp_path):
        """A path blocked by a file raises EngineInitError."""
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(EngineInitError):
            EnginePersistence(str(blocker / "state"))

    def test_save_load_roundtrip(self, tmp_path):
        """Saved state loads back with version stamps."""
        persistence = EnginePersistence(str(tmp_path))
        assert persistence.save_state({"step_count": 7})
        data = persistence.load_state()
        assert data["step_count"] == 7
        assert data["version"] == STATE_VERSION
        assert data["feature_schema_version"] == FEATURE_SCHEMA_VERSION
        assert not persistence.state_path.with_suffix(".tmp").exists()

    def test_load_missing(self, tmp_path):
        """No file means no state."""
        assert EnginePersistence(str(tmp_path)).load_state() is None

    def test_load_corrupt(self, tmp_path):
        """Corrupt JSON degrades to None."""
        persistence = EnginePersistence(str(tmp_path))
        persistence.state_path.write_text("{not json")
        assert persistence.load_state() is None

    def test_load_not_object(self, tmp_path):
        """A JSON array is rejected."""
        persistence = EnginePersistence(str(tmp_path))
        persistence.state_path.write_text("[1, 2]")
        assert persistence.load_state() is None

    def test_schema_mismatch(self, tmp_path):
        """State from another feature schema is discarded."""
        persistence = EnginePersistence(str(tmp_path))
        persistence.state_path.write_text(
            json.dumps({"version": STATE_VERSION, "feature_schema_version": FEATURE_SCHEMA_VERSION + 1})
        )
        assert persistence.load_state() is None

    def test_delete(self, tmp_path):
        """delete() removes both artifacts."""
        persistence = EnginePersistence(str(tmp_path))
        persistence.save_state({})
        persistence.weights_path.write_bytes(b"")
        assert persistence.delete()
        assert not persistence.state_path.exists()
        assert not persistence.weights_path.exists()
