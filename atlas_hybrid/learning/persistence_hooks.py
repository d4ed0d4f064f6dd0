"""
Persistence hooks for engine state.

Stores two artifacts per engine name in a directory:
- `<name>_weights.pt`: value network weights (torch checkpoint)
- `<name>_state.json`: config, counters, stats and bandit snapshots

Writes are atomic (temp file + rename). Loads degrade to None/False on
absence or corruption so the engine starts fresh.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import EngineInitError
from ..intent import FEATURE_SCHEMA_VERSION

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class EnginePersistence:
    """
    Handles persistence of engine state to disk.

    Features:
    - Atomic writes (temp file + rename)
    - Version and feature-schema compatibility checking
    - Graceful degradation on load failure
    """

    def __init__(self, base_path: str, name: str = "atlas-engine"):
        """
        Initialize persistence handler.

        Args:
            base_path: Directory for storing engine state
            name: Key prefix for this engine's files

        Raises:
            EngineInitError: If the directory cannot be created
        """
        self.base_path = Path(base_path)
        safe_name = "".join(c if c.isalnum() or c in "-_" else "_" for c in name)
        self.name = safe_name or "atlas-engine"
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise EngineInitError(f"Persistence directory {base_path} is unusable: {e}") from e

    @property
    def weights_path(self) -> Path:
        return self.base_path / f"{self.name}_weights.pt"

    @property
    def state_path(self) -> Path:
        return self.base_path / f"{self.name}_state.json"

    def save_state(self, state: Dict[str, Any]) -> bool:
        """
        Save the JSON state blob.

        Returns:
            True if save succeeded
        """
        try:
            payload = {
                "version": STATE_VERSION,
                "feature_schema_version": FEATURE_SCHEMA_VERSION,
                **state,
            }
            temp_path = self.state_path.with_suffix(".tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            temp_path.replace(self.state_path)
            logger.debug(f"Engine state saved to {self.state_path}")
            return True
        except Exception as e:
            logger.warning(f"Failed to save engine state for {self.name}: {e}")
            return False

    def load_state(self) -> Optional[Dict[str, Any]]:
        """
        Load the JSON state blob.

        Returns:
            State dictionary, or None if missing, corrupt or incompatible
        """
        path = self.state_path
        if not path.exists():
            logger.debug(f"No saved engine state found at {path}")
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)

            if not isinstance(data, dict):
                logger.warning(f"Engine state at {path} is not an object, ignoring")
                return None

            version = data.get("version", STATE_VERSION)
            if version != STATE_VERSION:
                logger.warning(f"Incompatible engine state version: {version}")
                return None

            schema_version = data.get("feature_schema_version", FEATURE_SCHEMA_VERSION)
            if schema_version != FEATURE_SCHEMA_VERSION:
                logger.warning(
                    f"Feature schema mismatch: saved={schema_version}, "
                    f"current={FEATURE_SCHEMA_VERSION}. Engine state will be reset."
                )
                return None

            return data

        except Exception as e:
            logger.warning(f"Failed to restore engine state for {self.name}: {e}")
            return None

    def delete(self) -> bool:
        """
        Delete saved artifacts.

        Returns:
            True if deletion succeeded or nothing existed
        """
        try:
            for path in (self.state_path, self.weights_path):
                if path.exists():
                    path.unlink()
            logger.debug(f"Deleted engine state for {self.name}")
            return True
        except Exception as e:
            logger.warning(f"Failed to delete engine state for {self.name}: {e}")
            return False
