"""
SyncCava Settings Manager
Handles typed configuration values stored in settings.json
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from logging_config import get_logger

logger = get_logger(__name__)

ROOT_DIR = Path(__file__).parent

# Allow overriding the settings file location via environment variable
SETTINGS_FILE = Path(os.getenv("SYNCCAVA_SETTINGS_FILE", str(ROOT_DIR / "settings.json")))


@dataclass
class Setting:
    """Represents a single configurable setting"""
    name: str
    type: type
    default: Any
    description: Optional[str] = None
    options: Optional[list] = None  # Allowed values, if restricted
    min_val: Optional[float] = None
    max_val: Optional[float] = None

    def validate_and_convert(self, value: Any) -> Any:
        if value is None:
            return self.default
        try:
            if self.type == bool and isinstance(value, str):
                return value.strip().lower() in ('true', '1', 'yes', 'on')
            converted = self.type(value)
        except (ValueError, TypeError):
            logger.warning(f"Invalid value {value!r} for '{self.name}', using default {self.default!r}")
            return self.default

        if self.options is not None and converted not in self.options:
            logger.warning(f"'{converted}' is not a valid choice for '{self.name}' ({self.options})")
            return self.default
        if self.min_val is not None and converted < self.min_val:
            return self.type(self.min_val)
        if self.max_val is not None and converted > self.max_val:
            return self.type(self.max_val)
        return converted


class SettingsManager:
    def __init__(self, settings_file: Path = SETTINGS_FILE):
        self.settings_file = settings_file
        self._settings: Dict[str, Any] = {}

        # Define all available settings
        self._definitions = {
            # Debug
            "debug.log_file": Setting("Log File", str, "synccava.log", "Log file name"),
            "debug.log_level": Setting("Log Level", str, "INFO", "Console verbosity", options=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
            "debug.log_to_console": Setting("Log to Console", bool, True, "Print logs to terminal"),
            "debug.log_detailed": Setting("Detailed Logging", bool, False, "DEBUG level in the log file"),
            "debug.log_rotation.max_bytes": Setting("Max Log Size", int, 1048576, "Max log file size (bytes)", min_val=1024),
            "debug.log_rotation.backup_count": Setting("Log Backups", int, 10, "Number of backups to keep", min_val=0),

            # Sync loop
            "sync.source": Setting("Media Source", str, "playerctl", "Where the artwork URL comes from", options=["playerctl", "spotify"]),
            "sync.poll_interval": Setting("Poll Interval", float, 1.0, "Delay between polls (s)", min_val=0.0, max_val=60.0),
            "sync.num_colors": Setting("Palette Size", int, 3, "Colors requested from the quantizer", min_val=1, max_val=256),

            # Cava
            "cava.config_location": Setting("Cava Config", str, "", "Path to the cava config (blank = XDG default)"),
            "cava.process_name": Setting("Process Name", str, "cava", "Process that receives the reload signal"),
            "cava.reload_signal": Setting("Reload Signal", str, "USR2", "USR2 reloads colors only, USR1 the whole config", options=["USR1", "USR2"]),

            # Playerctl
            "playerctl.player": Setting("Player", str, "", "playerctl --player filter (blank = any)"),
            "playerctl.timeout": Setting("Timeout", float, 2.0, "playerctl timeout (s)", min_val=0.1),

            # Artwork
            "artwork.timeout": Setting("Timeout", float, 10.0, "Download timeout (s)", min_val=1.0, max_val=60.0),
            "artwork.retries": Setting("Retries", int, 3, "Download attempts", min_val=1, max_val=10),
            "artwork.max_size": Setting("Max Size", int, 300, "Artwork is shrunk to this many pixels per side", min_val=16, max_val=4096),

            # Spotify API
            "spotify.redirect_uri": Setting("Redirect URI", str, "http://127.0.0.1:8888/callback", "OAuth callback URL"),
            "spotify.scope": Setting("Scope", str, "user-read-currently-playing", "OAuth scope"),
            "spotify.timeout": Setting("Timeout", float, 5.0, "Request timeout (s)", min_val=1.0),
            "spotify.retries": Setting("Retries", int, 3, "Max retries", min_val=0),
        }

        self.load_settings()

    def load_settings(self) -> None:
        """Load settings from JSON, fall back to defaults"""
        self._settings = {key: definition.default for key, definition in self._definitions.items()}

        if not self.settings_file.exists():
            return

        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                saved = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load {self.settings_file}: {e} - using defaults")
            return

        if not isinstance(saved, dict):
            logger.error(f"{self.settings_file} must contain a JSON object - using defaults")
            return

        for key, val in saved.items():
            if key in self._definitions:
                self._settings[key] = self._definitions[key].validate_and_convert(val)
            else:
                logger.debug(f"Ignoring unknown setting '{key}'")

    def convert(self, key: str, value: Any) -> Any:
        """Convert a raw value (e.g. an environment string) using the setting's type"""
        definition = self._definitions.get(key)
        if definition is None:
            return value
        return definition.validate_and_convert(value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value.
        Priority:
        1. Loaded value (from JSON or Schema Default)
        2. Provided 'default' argument (if key unknown)
        """
        if key in self._settings:
            return self._settings[key]
        return default


settings = SettingsManager()
