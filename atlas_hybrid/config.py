"""
Service configuration.

Load settings from YAML/JSON files and ATLAS_* environment variables
for easy customization without modifying code.

Example config.yaml:

    state_dir: ./.atlas
    log_level: INFO
    layout_cache_size: 512
    intent_defaults:
      domain: ecommerce
      device: mobile
    engine:
      bandit_ratio: 0.7
      active_bandit: ucb
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from .intent import DEFAULT_INTENT
from .learning.learning_config import EngineConfig

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = "./.atlas"


@dataclass
class ServiceConfig:
    """
    Configuration for the adaptive layout service.

    Attributes:
        state_dir: Directory for persisted engine state
        engine: Decision engine hyperparameters
        intent_defaults: Values applied to absent intent fields
        layout_cache_size: Maximum cached layouts (None = unbounded)
        log_level: Root log level
    """
    state_dir: str = DEFAULT_STATE_DIR
    engine: EngineConfig = field(default_factory=EngineConfig)
    intent_defaults: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_INTENT))
    layout_cache_size: Optional[int] = None
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state_dir": self.state_dir,
            "engine": self.engine.to_dict(),
            "intent_defaults": dict(self.intent_defaults),
            "layout_cache_size": self.layout_cache_size,
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceConfig":
        """Create from dictionary. Unknown keys are ignored."""
        data = data or {}
        defaults = dict(DEFAULT_INTENT)
        defaults.update(data.get("intent_defaults") or {})
        cache_size = data.get("layout_cache_size")
        return cls(
            state_dir=str(data.get("state_dir", DEFAULT_STATE_DIR)),
            engine=EngineConfig.from_dict(data.get("engine") or {}),
            intent_defaults=defaults,
            layout_cache_size=None if cache_size is None else int(cache_size),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )

    def save(self, path: str) -> None:
        """Save config to a YAML or JSON file (by extension)."""
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            if path.endswith((".yaml", ".yml")):
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> Optional["ServiceConfig"]:
        """
        Load config from a JSON or YAML file.

        Returns:
            ServiceConfig, or None if the file is missing or invalid
        """
        if not os.path.exists(path):
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()

            if path.endswith((".yaml", ".yml")):
                data = yaml.safe_load(content)
            else:
                data = json.loads(content)

            if not isinstance(data, dict):
                logger.warning(f"Config at {path} is not a mapping")
                return None

            return cls.from_dict(data)

        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            return None

    @classmethod
    def from_env(cls, base: Optional["ServiceConfig"] = None) -> "ServiceConfig":
        """
        Overlay ATLAS_* environment variables on a base config.

        ATLAS_CONFIG names a file to start from when no base is given.
        Invalid numeric values are ignored with a warning.
        """
        if base is None:
            config_path = os.environ.get("ATLAS_CONFIG")
            base = (cls.load(config_path) if config_path else None) or cls()

        data = base.to_dict()

        state_dir = os.environ.get("ATLAS_STATE_DIR")
        if state_dir:
            data["state_dir"] = state_dir

        log_level = os.environ.get("ATLAS_LOG_LEVEL")
        if log_level:
            data["log_level"] = log_level

        ratio = os.environ.get("ATLAS_BANDIT_RATIO")
        if ratio:
            try:
                data["engine"]["bandit_ratio"] = float(ratio)
            except ValueError:
                logger.warning(f"Ignoring invalid ATLAS_BANDIT_RATIO={ratio!r}")

        active = os.environ.get("ATLAS_ACTIVE_BANDIT")
        if active:
            data["engine"]["active_bandit"] = active

        return cls.from_dict(data)
