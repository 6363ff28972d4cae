"""
MediaBox Remote: FastAPI application entry point.

Starts the Discovery Service and opens the command channel to the
configured player on startup, serves the REST API and WebSocket endpoint.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from api.routes import init_routes, router
from api.websocket import ConnectionManager, snapshot_events
from config import API_HOST, API_PORT
from discovery.service import DiscoveryService
from remote.channel import CommandChannel
from settings.store import ConfigurationStore

# --- Logging ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# --- Services ---
settings_store = ConfigurationStore()
discovery_service = DiscoveryService()
command_channel = CommandChannel()
ws_manager = ConnectionManager()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start/stop background services."""
    logger.info("Starting MediaBox Remote services...")

    try:
        discovery_service.on_event(ws_manager.handle_event)
        command_channel.on_event(ws_manager.handle_event)

        await discovery_service.start()
        await command_channel.open_configured(settings_store)

        logger.info(f"MediaBox Remote ready, API: {API_HOST}:{API_PORT}")

        yield

    except Exception as e:
        logger.error(f"Startup failed: {e}", exc_info=True)
        raise
    finally:
        logger.info("Shutting down MediaBox Remote services...")
        await command_channel.close()
        await discovery_service.stop()


app = FastAPI(
    title="MediaBox Remote",
    version="1.0.0",
    lifespan=lifespan,
)

# Inject services into routes
init_routes(discovery_service, command_channel, settings_store)
app.include_router(router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    initial = snapshot_events(
        discovery_service.get_devices(), command_channel.state, command_channel.target
    )
    await ws_manager.connect(websocket, initial)
    try:
        while True:
            # Clients only listen; inbound frames are read to notice disconnects
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(websocket)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=API_HOST,
        port=API_PORT,
        log_level="info",
    )
