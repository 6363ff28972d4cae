"""Shared fixtures and fakes for MediaBox Remote tests."""

import asyncio
import socket

import pytest

from discovery.registry import DeviceRegistry
from remote.transport import Transport, TransportError, TransportKind
from settings.store import ConfigurationStore


def free_port(kind=socket.SOCK_STREAM) -> int:
    """Return a port nothing is currently bound to on localhost."""
    with socket.socket(socket.AF_INET, kind) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


class FakeTransport(Transport):
    """In-memory transport recording every line written."""

    kind = TransportKind.TCP

    def __init__(self, target: str = "fake", fail_times: int = 0, block: bool = False):
        super().__init__()
        self._target = target
        self.fail_times = fail_times
        self.block = block
        self.attempts = 0
        self.lines: list[str] = []
        self.fail_writes = False
        self.closed_count = 0
        self._open = False

    @property
    def target(self) -> str:
        return self._target

    @property
    def is_open(self) -> bool:
        return self._open

    async def connect(self) -> None:
        self.attempts += 1
        if self.block:
            await asyncio.Event().wait()
        if self.attempts <= self.fail_times:
            raise TransportError("connection refused")
        self._open = True

    async def write_line(self, line: str) -> None:
        if not self._open:
            raise TransportError("not open")
        if self.fail_writes:
            raise TransportError("broken pipe")
        self.lines.append(line)

    async def close(self) -> None:
        if self._open:
            self.closed_count += 1
        self._open = False


class LineServer:
    """Local TCP server standing in for a player's command port."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.connections = 0
        self.active = 0
        self._server: asyncio.Server | None = None

    @property
    def port(self) -> int:
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)

    async def stop(self) -> None:
        self._server.close()
        await self._server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self.active += 1
        try:
            while line := await reader.readline():
                self.lines.append(line.decode("ascii"))
        finally:
            self.active -= 1
            writer.close()


@pytest.fixture
def registry():
    return DeviceRegistry()


@pytest.fixture
def store(tmp_path):
    return ConfigurationStore(tmp_path / "settings.json")
