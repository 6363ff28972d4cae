"""
Command channel: owns the transport to the selected player.

Opening spawns the connection attempt as its own task so callers never
wait on the network. Commands sent while the channel is not open are
dropped: delivery is best effort and failed connections are not retried
unless a RetryPolicy is supplied.
"""

import asyncio
import contextlib
import logging
from enum import Enum

from config import SHORT_RANGE_PEER
from remote.retry import RetryPolicy
from remote.transport import Transport, TransportError, create_transport

logger = logging.getLogger(__name__)


class ChannelState(str, Enum):
    CLOSED = "closed"
    CONNECTING = "connecting"
    OPEN = "open"


class CommandChannel:
    """Serializes command tokens onto a single transport session."""

    def __init__(
        self,
        transport_factory=None,  # fn(target) -> Transport
        retry_policy: RetryPolicy | None = None,
        short_range_peer: str = SHORT_RANGE_PEER,
    ) -> None:
        self._transport_factory = transport_factory
        self.retry_policy = retry_policy
        self.short_range_peer = short_range_peer
        self._transport: Transport | None = None
        self._connect_task: asyncio.Task | None = None
        self._state = ChannelState.CLOSED
        self._target: str | None = None
        self._lock = asyncio.Lock()
        self._event_callbacks: list = []  # async fn(event_type, data)

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def target(self) -> str | None:
        return self._target

    @property
    def transport(self) -> Transport | None:
        return self._transport

    def on_event(self, callback) -> None:
        """Register callback: async fn(event_type: str, data: dict)."""
        self._event_callbacks.append(callback)

    async def _set_state(self, state: ChannelState) -> None:
        if state == self._state:
            return
        self._state = state
        data = {"state": state.value, "target": self._target}
        for cb in self._event_callbacks:
            try:
                await cb("channel_state", data)
            except Exception as e:
                logger.error(f"Channel callback error: {e}")

    def _create_transport(self, target: str) -> Transport:
        if self._transport_factory is not None:
            return self._transport_factory(target)
        return create_transport(target, short_range_peer=self.short_range_peer)

    async def open(self, target: str) -> asyncio.Task:
        """Close any current session and start connecting to ``target``.

        Returns the connect task; awaiting it is optional.
        """
        async with self._lock:
            await self._teardown()
            transport = self._create_transport(target)
            self._transport = transport
            self._target = target
            await self._set_state(ChannelState.CONNECTING)
            self._connect_task = asyncio.create_task(self._connect(transport))
            return self._connect_task

    async def open_configured(self, store) -> asyncio.Task | None:
        """Open the device stored under ``device`` in the settings store."""
        target = store.get("device")
        if not target:
            logger.info("No device configured, command channel stays closed")
            return None
        self.short_range_peer = store.get("bluetooth_peer", self.short_range_peer)
        return await self.open(target)

    async def _connect(self, transport: Transport) -> bool:
        retries = self.retry_policy.max_retries if self.retry_policy else 0

        for attempt in range(retries + 1):
            try:
                await transport.connect()
            except TransportError as e:
                logger.error(f"Command channel to {transport.target} failed: {e}")
                await transport.close()
                if attempt < retries:
                    delay = self.retry_policy.get_delay(attempt)
                    logger.info(f"Retrying {transport.target} in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue
                if self._transport is transport:
                    self._transport = None
                    await self._set_state(ChannelState.CLOSED)
                return False

            if self._transport is transport:
                logger.info(f"Command channel open ({transport.kind.value} {transport.target})")
                await self._set_state(ChannelState.OPEN)
            return True
        return False

    async def wait_open(self, timeout: float | None = None) -> bool:
        """Wait for the pending connect attempt. True if the channel is open."""
        task = self._connect_task
        if task is not None and not task.done():
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout)
            except asyncio.TimeoutError:
                return False
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return self._state == ChannelState.OPEN

    async def send(self, token: str) -> bool:
        """Write one command line. Dropped silently unless the channel is open."""
        transport = self._transport
        if self._state != ChannelState.OPEN or transport is None:
            logger.debug(f"Channel {self._state.value}, dropping {token}")
            return False
        if not token.isascii() or "\n" in token or "\r" in token:
            logger.warning(f"Dropping malformed command {token!r}")
            return False

        try:
            await transport.write_line(token)
        except TransportError as e:
            logger.error(f"Could not send {token}: {e}")
            if self._transport is transport:
                self._transport = None
                await transport.close()
                await self._set_state(ChannelState.CLOSED)
            return False

        logger.debug(f"Sent {token} via {transport.kind.value}")
        return True

    async def close(self) -> None:
        """Release the transport. Safe to call when already closed."""
        async with self._lock:
            await self._teardown()

    async def _teardown(self) -> None:
        task, self._connect_task = self._connect_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        transport, self._transport = self._transport, None
        if transport is not None:
            await transport.close()
            logger.info(f"Command channel to {transport.target} closed")
        await self._set_state(ChannelState.CLOSED)
