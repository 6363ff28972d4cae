"""
UDP-based MediaBox discovery service.

Listens for the broadcast announcements MediaBox players send every few
seconds, keeps a registry of the players heard from recently, and drops
the ones that went quiet.
"""

import asyncio
import contextlib
import logging
import socket
import time
from enum import Enum

from config import (
    ANNOUNCE_PORT,
    DEVICE_TTL,
    LISTEN_BACKOFF,
    REAPER_PERIOD,
    RECV_BUFFER_SIZE,
)
from discovery.models import Device, Rejected
from discovery.parser import parse_announcement
from discovery.registry import DeviceRegistry

logger = logging.getLogger(__name__)


class ListenerState(str, Enum):
    CLOSED = "closed"
    BOUND = "bound"
    RECEIVING = "receiving"


class _Worker:
    """A single background task with cancel-and-join shutdown."""

    def __init__(self) -> None:
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        assert not self.running, f"{type(self).__name__} already running"
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Cancel the task and wait for it to exit."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def run(self) -> None:
        raise NotImplementedError


class AnnouncementListener(_Worker):
    """Receives announcement datagrams and feeds the registry.

    Socket errors never end the loop: the socket is closed, the error is
    reported through ``emit`` and the listener rebinds after a backoff.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        port: int = ANNOUNCE_PORT,
        backoff: float = LISTEN_BACKOFF,
        clock=time.time,
        emit=None,  # async fn(event: str, data: dict)
    ) -> None:
        super().__init__()
        self.registry = registry
        self.port = port
        self.backoff = backoff
        self._clock = clock
        self._emit = emit
        self._sock: socket.socket | None = None
        self._state = ListenerState.CLOSED

    @property
    def state(self) -> ListenerState:
        return self._state

    def _bind(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.setblocking(False)
            sock.bind(("", self.port))
        except OSError:
            sock.close()
            raise
        return sock

    def _close_socket(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        self._state = ListenerState.CLOSED

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            while True:
                try:
                    if self._sock is None:
                        self._sock = self._bind()
                        self._state = ListenerState.BOUND
                        logger.info(f"Listening for announcements on UDP port {self.port}")

                    self._state = ListenerState.RECEIVING
                    data, addr = await loop.sock_recvfrom(self._sock, RECV_BUFFER_SIZE)
                    await self.handle_datagram(data, addr[0])

                except OSError as e:
                    logger.warning(f"Announcement listener error: {e}")
                    self._close_socket()
                    await self._notify(f"Listen {e}")
                    await asyncio.sleep(self.backoff)
        finally:
            self._close_socket()

    async def handle_datagram(self, data: bytes, sender: str) -> None:
        """Parse one datagram and record the device if it is a player."""
        result = parse_announcement(data)
        if isinstance(result, Rejected):
            logger.debug(f"Ignoring datagram from {sender}: {result.reason}")
            return

        logger.debug(f"{sender}: {result.id} {result.name} {result.address}")
        is_new = self.registry.upsert(
            result.id, result.name, result.address, self._clock()
        )
        if is_new and self._emit:
            device = self.registry.get(result.id)
            if device:
                await self._emit("device_discovered", device.model_dump())

    async def _notify(self, message: str) -> None:
        if self._emit:
            await self._emit("notification", {"type": "error", "message": message})


class ExpiryReaper(_Worker):
    """Periodically evicts devices that stopped announcing."""

    def __init__(
        self,
        registry: DeviceRegistry,
        ttl: float = DEVICE_TTL,
        period: float = REAPER_PERIOD,
        clock=time.time,
        emit=None,
    ) -> None:
        super().__init__()
        self.registry = registry
        self.ttl = ttl
        self.period = period
        self._clock = clock
        self._emit = emit

    def reap_once(self, now: float | None = None) -> list[Device]:
        """Run a single expiry pass. Returns the evicted devices."""
        if now is None:
            now = self._clock()
        stale = self.registry.pop_older_than(now - self.ttl)
        for device in stale:
            logger.info(f"Device lost: {device.name} ({device.address})")
        return stale

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.period)
            logger.debug("Removing expired entries")
            for device in self.reap_once():
                if self._emit:
                    await self._emit("device_lost", device.model_dump())


class DiscoveryService:
    """Owns the listener and the reaper for one registry."""

    def __init__(
        self,
        registry: DeviceRegistry | None = None,
        port: int = ANNOUNCE_PORT,
        ttl: float = DEVICE_TTL,
        reaper_period: float = REAPER_PERIOD,
        backoff: float = LISTEN_BACKOFF,
        clock=time.time,
    ) -> None:
        self.registry = registry if registry is not None else DeviceRegistry()
        self._callbacks: list = []  # async fn(event, data)
        self._pending: set[asyncio.Task] = set()
        self.listener = AnnouncementListener(
            self.registry, port=port, backoff=backoff, clock=clock, emit=self._emit
        )
        self.reaper = ExpiryReaper(
            self.registry, ttl=ttl, period=reaper_period, clock=clock, emit=self._emit
        )

    @property
    def running(self) -> bool:
        return self.listener.running

    def on_event(self, callback) -> None:
        """Register callback: async fn(event_type: str, data: dict)."""
        self._callbacks.append(callback)

    async def _emit(self, event_type: str, data: dict) -> None:
        """Schedule every callback without waiting for it."""
        for cb in self._callbacks:
            try:
                task = asyncio.ensure_future(cb(event_type, data))
            except Exception as e:
                logger.error(f"Discovery callback error: {e}")
                continue
            self._pending.add(task)
            task.add_done_callback(self._callback_done)

    def _callback_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Discovery callback error: {task.exception()}")

    async def start(self) -> None:
        logger.info(f"Starting discovery on UDP port {self.listener.port}")
        self.listener.start()
        self.reaper.start()

    async def stop(self) -> None:
        """Stop both workers and wait until they have exited."""
        await asyncio.gather(self.listener.stop(), self.reaper.stop())
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Discovery service stopped")

    def get_devices(self) -> list[Device]:
        return self.registry.snapshot()
