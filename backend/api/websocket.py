"""
WebSocket hub pushing discovery and channel events to remote UIs.

Every message is a ``ServerEvent`` serialized by pydantic. A client that
connects first receives the current device list and channel state, then
live events. Clients that cannot take an event within WS_SEND_TIMEOUT
are dropped so one stalled UI never holds up the others.
"""

import asyncio
import logging
from typing import Literal

from fastapi import WebSocket
from pydantic import BaseModel

from config import WS_SEND_TIMEOUT
from discovery.models import Device
from remote.channel import ChannelState

logger = logging.getLogger(__name__)

EventType = Literal["device_discovered", "device_lost", "notification", "channel_state"]


class ChannelStatus(BaseModel):
    state: ChannelState
    target: str | None = None


class Notification(BaseModel):
    type: str
    message: str


class ServerEvent(BaseModel):
    event: EventType
    data: Device | ChannelStatus | Notification


class ConnectionManager:
    """Tracks UI clients and fans events out to them."""

    def __init__(self, send_timeout: float = WS_SEND_TIMEOUT) -> None:
        self.send_timeout = send_timeout
        self._clients: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket, initial: list[ServerEvent] | None = None) -> None:
        """Accept ``websocket`` and replay ``initial`` to it before live events."""
        await websocket.accept()
        for event in initial or []:
            if not await self._send(websocket, event.model_dump_json()):
                return
        self._clients.add(websocket)
        logger.info(f"UI client connected. Total: {len(self._clients)}")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._clients:
            self._clients.discard(websocket)
            logger.info(f"UI client disconnected. Total: {len(self._clients)}")

    async def _send(self, websocket: WebSocket, message: str) -> bool:
        try:
            await asyncio.wait_for(websocket.send_text(message), self.send_timeout)
        except Exception as e:
            logger.warning(f"Dropping UI client: {e!r}")
            self.disconnect(websocket)
            return False
        return True

    async def broadcast(self, event: ServerEvent) -> None:
        message = event.model_dump_json()
        clients = list(self._clients)
        await asyncio.gather(*(self._send(ws, message) for ws in clients))

    async def handle_event(self, event_type: str, data: dict) -> None:
        """
        Event handler compatible with DiscoveryService.on_event()
        and CommandChannel.on_event().
        """
        await self.broadcast(ServerEvent(event=event_type, data=data))


def snapshot_events(devices: list[Device], state: ChannelState, target: str | None) -> list[ServerEvent]:
    """Events that bring a freshly connected UI up to date."""
    events = [ServerEvent(event="device_discovered", data=d) for d in devices]
    events.append(ServerEvent(event="channel_state", data=ChannelStatus(state=state, target=target)))
    return events
