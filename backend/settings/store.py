"""Persistent key/value settings, stored as a JSON file."""

import json
import logging
import threading
from pathlib import Path

from config import SETTINGS_FILE
from discovery.models import Device

logger = logging.getLogger(__name__)

DEVICE_KEY = "device"


class ConfigurationStore:
    """Remembers which player the remote talks to, plus other preferences."""

    def __init__(self, path: Path = SETTINGS_FILE):
        self._store_path = Path(path)
        self._values: dict[str, str] = {}
        self._lock = threading.Lock()
        self._load()

    @property
    def path(self) -> Path:
        return self._store_path

    def _load(self) -> None:
        if not self._store_path.exists():
            return

        try:
            data = json.loads(self._store_path.read_text())
            if not isinstance(data, dict):
                raise ValueError("settings file is not a JSON object")
            self._values = {str(k): v for k, v in data.items()}
            logger.info(f"Loaded settings from {self._store_path}")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load settings: {e}")

    def _save(self) -> None:
        try:
            self._store_path.parent.mkdir(parents=True, exist_ok=True)
            self._store_path.write_text(json.dumps(self._values, indent=2))
        except OSError as e:
            logger.error(f"Failed to save settings: {e}")

    def get(self, key: str, default=None):
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value) -> None:
        with self._lock:
            self._values[key] = value
            self._save()

    def select_device(self, device: Device) -> bool:
        """Store ``device`` as the command target. Returns True if it changed."""
        logger.info(f"Device {device.name} ({device.address}) selected")
        if self.get(DEVICE_KEY) == device.address:
            return False
        self.set(DEVICE_KEY, device.address)
        logger.info("Settings updated")
        return True
