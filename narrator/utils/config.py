"""
Configuration loader for the page narrator.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


class Config:
    """Configuration manager for narration, overlay and viewer settings."""

    _instance: Optional["Config"] = None
    _config: Dict[str, Any] = {}

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if not self._config:
            self._load_config()

    def _get_project_root(self) -> Path:
        """Get the project root directory."""
        # Navigate up from narrator/utils to project root
        current = Path(__file__).resolve()
        return current.parent.parent.parent

    def _config_path(self) -> Path:
        override = os.environ.get("NARRATOR_CONFIG")
        if override:
            return Path(override)
        return self._get_project_root() / "config" / "settings.yaml"

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        config_path = self._config_path()

        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
        else:
            # Use defaults if config doesn't exist
            self._config = self._get_defaults()

    def reload(self) -> None:
        """Re-read the configuration file."""
        self._config = {}
        self._load_config()

    def _get_defaults(self) -> Dict[str, Any]:
        """Return default configuration."""
        return {
            "narration": {
                "rate": 1.0,
                "pitch": 1.0,
                "voice": None,
                "auto_page_turn": True,
                "auto_continue": False,
                "rate_range": [0.6, 1.4],
                "pitch_range": [0.6, 1.4],
            },
            "overlay": {
                "padding": 2,
                "min_width": 6,
                "min_height": 10,
                "max_size": 2000,
            },
            "viewer": {
                "zoom": 1.25,
            },
            "engine": {
                "base_rate": 200,
                "poll_interval": 0.02,
            },
        }

    def get(self, *keys: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Example:
            config.get("narration", "rate") -> 1.0
        """
        value = self._config
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
            if value is None:
                return default
        return value

    @property
    def project_root(self) -> Path:
        """Get the project root directory."""
        return self._get_project_root()

    @property
    def rate(self) -> float:
        """Get the default speech rate multiplier."""
        return float(self.get("narration", "rate", default=1.0))

    @property
    def pitch(self) -> float:
        """Get the default speech pitch multiplier."""
        return float(self.get("narration", "pitch", default=1.0))

    @property
    def voice(self) -> Optional[str]:
        """Get the preferred voice (None selects the first available)."""
        return self.get("narration", "voice", default=None)

    @property
    def auto_page_turn(self) -> bool:
        """Check if narration should turn the page when it finishes."""
        return bool(self.get("narration", "auto_page_turn", default=True))

    @property
    def auto_continue(self) -> bool:
        """Check if narration should restart on the next page."""
        return bool(self.get("narration", "auto_continue", default=False))

    @property
    def rate_range(self) -> List[float]:
        return list(self.get("narration", "rate_range", default=[0.6, 1.4]))

    @property
    def pitch_range(self) -> List[float]:
        return list(self.get("narration", "pitch_range", default=[0.6, 1.4]))

    @property
    def overlay_padding(self) -> float:
        return self.get("overlay", "padding", default=2)

    @property
    def overlay_min_width(self) -> float:
        return self.get("overlay", "min_width", default=6)

    @property
    def overlay_min_height(self) -> float:
        return self.get("overlay", "min_height", default=10)

    @property
    def overlay_max_size(self) -> float:
        """Upper bound for highlight width and height."""
        return self.get("overlay", "max_size", default=2000)

    @property
    def zoom(self) -> float:
        """Get the page-to-viewport scale."""
        return float(self.get("viewer", "zoom", default=1.25))

    @property
    def engine_base_rate(self) -> int:
        """Words per minute that correspond to rate 1.0."""
        return int(self.get("engine", "base_rate", default=200))

    @property
    def poll_interval(self) -> float:
        return float(self.get("engine", "poll_interval", default=0.02))


# Singleton instance
config = Config()
