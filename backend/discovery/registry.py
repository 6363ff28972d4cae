"""Thread-safe registry of live devices, keyed by device id."""

import logging
import threading

from discovery.models import Device

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Holds the devices announced recently.

    Every operation runs under a single lock. Callers only ever receive
    copies, so nothing outside the lock can mutate a stored Device.
    """

    def __init__(self) -> None:
        self._devices: dict[str, Device] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)

    def upsert(self, device_id: str, name: str, address: str, now: float) -> bool:
        """Add or refresh a device. Returns True if it was not known before."""
        with self._lock:
            device = self._devices.get(device_id)
            if device is None:
                self._devices[device_id] = Device(
                    id=device_id, name=name, address=address, last_seen=now
                )
                logger.info(f"Host {device_id} ({address}) added")
                return True

            # Update in place so the entry keeps its identity.
            device.name = name
            device.address = address
            device.last_seen = now
        logger.debug(f"Host {device_id} ({address}) updated")
        return False

    def get(self, device_id: str) -> Device | None:
        with self._lock:
            device = self._devices.get(device_id)
            return device.model_copy() if device else None

    def snapshot(self) -> list[Device]:
        """Return a point-in-time copy of every known device."""
        with self._lock:
            return [d.model_copy() for d in self._devices.values()]

    def pop_older_than(self, threshold: float) -> list[Device]:
        """Remove and return every device last seen before ``threshold``."""
        with self._lock:
            stale = [d for d in self._devices.values() if d.last_seen < threshold]
            for device in stale:
                del self._devices[device.id]
        return stale

    def evict_older_than(self, threshold: float) -> int:
        """Remove every device last seen before ``threshold``. Returns the count."""
        return len(self.pop_older_than(threshold))
