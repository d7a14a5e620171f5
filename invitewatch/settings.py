"""
Persistent user settings (the chosen log directory).
"""

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from invitewatch.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Settings:
    """User-chosen settings."""
    log_directory: str | None = None


class SettingsStore:
    """
    Stores Settings as JSON.

    {
        "log_directory": "C:/Users/me/AppData/LocalLow/VRChat/VRChat"
    }
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> Settings:
        """Load settings; a missing or corrupt file yields defaults."""
        if not self.path.exists():
            return Settings()

        try:
            with self.path.open('r', encoding='utf-8') as f:
                data: dict[str, Any] = json.load(f)
            return Settings(log_directory=data.get("log_directory"))
        except (json.JSONDecodeError, AttributeError, OSError) as e:
            logger.warning("Could not load settings file %s: %s", self.path, e)
            return Settings()

    def save(self, settings: Settings) -> bool:
        """Write settings to disk; returns False on failure."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open('w', encoding='utf-8') as f:
                json.dump(asdict(settings), f, indent=2)
            logger.info("Settings saved to: %s", self.path)
            return True
        except OSError:
            logger.error("Failed to save settings to %s", self.path, exc_info=True)
            return False

    def save_log_directory(self, directory: str) -> bool:
        """Update only the log directory."""
        settings = self.load()
        settings.log_directory = directory
        return self.save(settings)
