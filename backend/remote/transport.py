"""
Byte-stream transports for remote-control commands.

Two interchangeable variants connect to a player and expose an ordered
line sink: plain TCP, and Bluetooth RFCOMM for players paired over
short-range wireless.
"""

import asyncio
import logging
import socket
import time
from enum import Enum

from config import (
    COMMAND_PORT,
    CONNECT_TIMEOUT,
    SHORT_RANGE_CHANNEL,
    SHORT_RANGE_PEER,
    SHORT_RANGE_SETTLE_TIMEOUT,
    SHORT_RANGE_TARGET,
)

logger = logging.getLogger(__name__)

INQUIRY_POLL_INTERVAL = 0.5


class TransportError(Exception):
    """Raised when a transport cannot connect or write."""


class TransportKind(str, Enum):
    TCP = "tcp"
    SHORT_RANGE = "short_range"


class Transport:
    """Base class: connect once, then write lines until closed."""

    kind: TransportKind

    def __init__(self, connect_timeout: float = CONNECT_TIMEOUT) -> None:
        self.connect_timeout = connect_timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    @property
    def target(self) -> str:
        raise NotImplementedError

    @property
    def is_open(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def connect(self) -> None:
        raise NotImplementedError

    async def write_line(self, line: str) -> None:
        """Write ``line`` plus a newline and flush it immediately.

        Lines must be ASCII; anything else raises UnicodeEncodeError before
        a byte reaches the wire.
        """
        if not self.is_open:
            raise TransportError(f"Transport to {self.target} is not open")
        data = f"{line}\n".encode("ascii")
        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise TransportError(f"Write to {self.target} failed: {e}") from e

    async def close(self) -> None:
        writer, self._writer = self._writer, None
        self._reader = None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error while closing transport to {self.target}: {e}")


class TcpTransport(Transport):
    kind = TransportKind.TCP

    def __init__(
        self,
        host: str,
        port: int = COMMAND_PORT,
        connect_timeout: float = CONNECT_TIMEOUT,
    ) -> None:
        super().__init__(connect_timeout)
        self.host = host
        self.port = port

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"

    async def connect(self) -> None:
        logger.debug(f"Opening TCP socket to {self.target}")
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
        except (OSError, asyncio.TimeoutError) as e:
            raise TransportError(f"Could not connect to {self.target}: {e!r}") from e


class ShortRangeTransport(Transport):
    """RFCOMM stream to a known Bluetooth peer.

    ``resolve_channel`` maps the peer address to its RFCOMM channel (service
    matching); when not given the configured channel is used. If
    ``inquiry_active`` reports a running device inquiry the connect waits for
    it to settle, at most ``settle_timeout`` seconds, since connecting during
    an inquiry tends to fail.
    """

    kind = TransportKind.SHORT_RANGE

    def __init__(
        self,
        peer: str,
        channel: int = SHORT_RANGE_CHANNEL,
        connect_timeout: float = CONNECT_TIMEOUT,
        settle_timeout: float = SHORT_RANGE_SETTLE_TIMEOUT,
        resolve_channel=None,  # fn(peer) -> int | None
        inquiry_active=None,  # fn() -> bool
    ) -> None:
        super().__init__(connect_timeout)
        self.peer = peer
        self.channel = channel
        self.settle_timeout = settle_timeout
        self._resolve_channel = resolve_channel
        self._inquiry_active = inquiry_active

    @property
    def target(self) -> str:
        return f"{self.peer}#{self.channel}"

    @staticmethod
    def supported() -> bool:
        return hasattr(socket, "AF_BLUETOOTH") and hasattr(socket, "BTPROTO_RFCOMM")

    async def _wait_for_inquiry(self) -> None:
        if self._inquiry_active is None:
            return
        deadline = time.monotonic() + self.settle_timeout
        while self._inquiry_active():
            if time.monotonic() >= deadline:
                logger.warning("Bluetooth inquiry still running, connecting anyway")
                return
            await asyncio.sleep(INQUIRY_POLL_INTERVAL)

    def _match_service(self) -> int:
        if self._resolve_channel is None:
            return self.channel
        try:
            channel = self._resolve_channel(self.peer)
        except OSError as e:
            raise TransportError(f"Service lookup on {self.peer} failed: {e}") from e
        if channel is None:
            raise TransportError(f"No remote-control service found on {self.peer}")
        return channel

    async def connect(self) -> None:
        if not self.supported():
            raise TransportError("Bluetooth sockets are not supported on this platform")

        await self._wait_for_inquiry()
        self.channel = self._match_service()
        logger.debug(f"Opening Bluetooth socket to {self.target}")

        loop = asyncio.get_running_loop()
        try:
            sock = socket.socket(
                socket.AF_BLUETOOTH, socket.SOCK_STREAM, socket.BTPROTO_RFCOMM
            )
        except OSError as e:
            raise TransportError(f"Could not create Bluetooth socket: {e}") from e

        try:
            sock.setblocking(False)
            await asyncio.wait_for(
                loop.sock_connect(sock, (self.peer, self.channel)),
                timeout=self.connect_timeout,
            )
            self._reader, self._writer = await asyncio.open_connection(sock=sock)
        except (OSError, asyncio.TimeoutError) as e:
            sock.close()
            raise TransportError(f"Could not connect to {self.target}: {e!r}") from e
        except asyncio.CancelledError:
            sock.close()
            raise


def create_transport(
    target: str,
    short_range_peer: str = SHORT_RANGE_PEER,
    connect_timeout: float = CONNECT_TIMEOUT,
) -> Transport:
    """Pick the transport variant for a configured ``device`` value.

    The Bluetooth variant built here connects straight to RFCOMM channel
    SHORT_RANGE_CHANNEL with no inquiry wait: the stdlib socket API can
    neither query SDP records nor see a running inquiry. Callers on a
    platform that can should build ShortRangeTransport with
    ``resolve_channel`` and ``inquiry_active`` themselves and pass it through
    CommandChannel's ``transport_factory``.
    """
    if target == SHORT_RANGE_TARGET:
        return ShortRangeTransport(short_range_peer, connect_timeout=connect_timeout)
    return TcpTransport(target, COMMAND_PORT, connect_timeout=connect_timeout)
