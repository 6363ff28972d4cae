"""
Device-side announcer.

Broadcasts the announcement a MediaBox player sends so remotes can find
it. Handy for simulating a player on the LAN.
"""

import asyncio
import logging
import random
import socket
import string

from config import (
    ANNOUNCE_INTERVAL,
    ANNOUNCE_PORT,
    ANNOUNCE_PREFIX,
    ANNOUNCE_REPEAT,
)

logger = logging.getLogger(__name__)

DEFAULT_FEATURES = ("DLMASTER", "PLAYER", "SHAREDLIB")
BROADCAST_ADDRESS = "255.255.255.255"


def generate_device_id(length: int = 12) -> str:
    charset = string.digits + string.ascii_uppercase
    return "".join(random.choice(charset) for _ in range(length))


def _check_field(label: str, value: str) -> str:
    if not value or not value.isascii() or ":" in value:
        raise ValueError(f"{label} must be non-empty ASCII without ':', got {value!r}")
    return value


def format_announcement(
    device_id: str, name: str, address: str, features=DEFAULT_FEATURES
) -> str:
    return f"{ANNOUNCE_PREFIX}{device_id}:{name}:{address}:{','.join(features)}"


class Announcer:
    """Sends the announcement in bursts every ``interval`` seconds."""

    def __init__(
        self,
        name: str,
        address: str,
        device_id: str | None = None,
        features=DEFAULT_FEATURES,
        port: int = ANNOUNCE_PORT,
        target: str = BROADCAST_ADDRESS,
        interval: float = ANNOUNCE_INTERVAL,
    ) -> None:
        self.device_id = _check_field("device id", device_id or generate_device_id())
        self.name = _check_field("name", name)
        self.address = _check_field("address", address)
        self.features = tuple(_check_field("feature", f) for f in features)
        self.port = port
        self.target = target
        self.interval = interval
        self._transport: asyncio.DatagramTransport | None = None
        self._task: asyncio.Task | None = None

    @property
    def message(self) -> bytes:
        return format_announcement(
            self.device_id, self.name, self.address, self.features
        ).encode("ascii")

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.setblocking(False)

        transport, _ = await loop.create_datagram_endpoint(
            asyncio.DatagramProtocol,
            sock=sock,
        )
        self._transport = transport
        self._task = asyncio.create_task(self._announce_loop())
        logger.info(f"Announcing {self.name} ({self.device_id}) on UDP port {self.port}")

    async def stop(self) -> None:
        task, self._task = self._task, None
        try:
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        finally:
            if self._transport:
                self._transport.close()
                self._transport = None
        logger.info("Announcer stopped")

    def announce(self) -> None:
        """Send one burst of identical datagrams."""
        if not self._transport:
            return
        data = self.message
        for _ in range(ANNOUNCE_REPEAT):
            try:
                self._transport.sendto(data, (self.target, self.port))
            except OSError as e:
                logger.error(f"Could not broadcast announcement: {e}")
                return

    async def _announce_loop(self) -> None:
        while True:
            self.announce()
            await asyncio.sleep(self.interval)
