"""
Engine configuration.

Load engine settings from JSON or YAML files, then apply
``CINERL_*`` environment overrides. Learning hyperparameters
live in a nested ``learning`` section.
"""
from __future__ import annotations

import os
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from .learning.learning_config import LearningConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "CINERL_"


class ConfigError(ValueError):
    """A configuration or data file could not be parsed."""


def read_document(path: str) -> Any:
    """Read a JSON or YAML document, chosen by file extension."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
        if path.endswith((".yaml", ".yml")):
            return yaml.safe_load(content)
        return json.loads(content)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e


@dataclass
class EngineConfig:
    """
    Configuration for a RecommendationEngine.

    Attributes:
        data_dir: Directory for the JSON user store (None = in-memory only)
        catalogue_path: JSON/YAML catalogue file (None = built-in sample)
        log_level: Root log level
        log_dir: Directory for rotating log files (None = console only)
        default_count: Recommendations returned when no count is given
        history_limit: Default number of events returned by history()
        learning: Learning hyperparameters
    """
    data_dir: Optional[str] = None
    catalogue_path: Optional[str] = None
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    default_count: int = 8
    history_limit: int = 50
    learning: LearningConfig = field(default_factory=LearningConfig)

    def __post_init__(self):
        self.default_count = max(1, self.default_count)
        self.history_limit = max(1, self.history_limit)
        if isinstance(self.learning, dict):
            self.learning = LearningConfig.from_dict(self.learning)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data_dir": self.data_dir,
            "catalogue_path": self.catalogue_path,
            "log_level": self.log_level,
            "log_dir": self.log_dir,
            "default_count": self.default_count,
            "history_limit": self.history_limit,
            "learning": self.learning.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def save(self, path: str) -> None:
        """Save config to JSON file."""
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Optional[str]) -> "EngineConfig":
        """
        Load config from a JSON or YAML file.

        A missing file yields defaults; an unreadable one raises ConfigError.
        """
        if not path or not os.path.exists(path):
            logger.debug(f"No config file at {path}, using defaults")
            return cls()

        data = read_document(path)
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> "EngineConfig":
        """Override fields from CINERL_* environment variables."""
        env = os.environ if environ is None else environ
        overrides = {
            "data_dir": env.get(f"{ENV_PREFIX}DATA_DIR"),
            "catalogue_path": env.get(f"{ENV_PREFIX}CATALOGUE"),
            "log_level": env.get(f"{ENV_PREFIX}LOG_LEVEL"),
            "log_dir": env.get(f"{ENV_PREFIX}LOG_DIR"),
        }
        for name, value in overrides.items():
            if value:
                setattr(self, name, value)
        return self
