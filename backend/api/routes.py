"""REST API routes for the MediaBox remote."""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from remote.commands import is_valid_command, key_command, url_command
from settings.store import DEVICE_KEY

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# These will be injected by main.py at startup
_discovery_service = None
_channel = None
_store = None


def init_routes(discovery_service, channel, store) -> None:
    """Inject service dependencies into the routes module."""
    global _discovery_service, _channel, _store
    _discovery_service = discovery_service
    _channel = channel
    _store = store


# --- Device Discovery ---

@router.get("/devices")
async def list_devices():
    """Return the players announced recently."""
    devices = _discovery_service.get_devices()
    return {"devices": [d.model_dump() for d in devices]}


class SelectDeviceBody(BaseModel):
    device_id: str | None = None  # pick a discovered player
    device: str | None = None  # or give an address / "bluetooth" directly


@router.get("/device")
async def get_device():
    return {"device": _store.get(DEVICE_KEY)}


@router.put("/device")
async def select_device(body: SelectDeviceBody):
    """Store the command target and reconnect to it."""
    if body.device_id is not None:
        device = _discovery_service.registry.get(body.device_id)
        if not device:
            raise HTTPException(status_code=404, detail="Device not found")
        _store.select_device(device)
    elif body.device:
        _store.set(DEVICE_KEY, body.device)
    else:
        raise HTTPException(status_code=400, detail="No device given")

    await _channel.open_configured(_store)
    return {"device": _store.get(DEVICE_KEY), "state": _channel.state.value}


# --- Command channel ---

@router.get("/channel")
async def get_channel():
    return {"state": _channel.state.value, "target": _channel.target}


@router.post("/channel/open")
async def open_channel():
    await _channel.open_configured(_store)
    return {"state": _channel.state.value, "target": _channel.target}


@router.post("/channel/close")
async def close_channel():
    await _channel.close()
    return {"state": _channel.state.value}


class CommandBody(BaseModel):
    command: str


class KeyBody(BaseModel):
    key: str


class UrlBody(BaseModel):
    url: str


@router.post("/commands")
async def send_command(body: CommandBody):
    if not is_valid_command(body.command):
        raise HTTPException(status_code=400, detail=f"Unknown command: {body.command}")
    return {"sent": await _channel.send(body.command)}


@router.post("/commands/key")
async def send_key(body: KeyBody):
    try:
        token = key_command(body.key)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"sent": await _channel.send(token)}


@router.post("/commands/url")
async def send_url(body: UrlBody):
    try:
        token = url_command(body.url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"sent": await _channel.send(token)}
