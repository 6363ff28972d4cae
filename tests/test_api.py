"""Tests for the REST control API."""

import httpx
import pytest
from fastapi import FastAPI

from api.routes import init_routes, router
from conftest import FakeTransport
from discovery.service import DiscoveryService
from remote.channel import ChannelState, CommandChannel


@pytest.fixture
def services(store):
    created: list[FakeTransport] = []

    def factory(target):
        transport = FakeTransport(target)
        created.append(transport)
        return transport

    discovery = DiscoveryService()
    discovery.registry.upsert("ABC123", "LivingRoom", "192.168.1.50", now=1.0)
    channel = CommandChannel(transport_factory=factory)
    init_routes(discovery, channel, store)

    app = FastAPI()
    app.include_router(router)
    return app, channel, store, created


def client_for(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


class TestDevices:
    @pytest.mark.asyncio
    async def test_list_devices(self, services):
        app, *_ = services
        async with client_for(app) as client:
            response = await client.get("/api/devices")
        assert response.status_code == 200
        devices = response.json()["devices"]
        assert [(d["id"], d["name"], d["address"]) for d in devices] == [
            ("ABC123", "LivingRoom", "192.168.1.50")
        ]

    @pytest.mark.asyncio
    async def test_select_discovered_device_opens_channel(self, services):
        app, channel, store, created = services
        async with client_for(app) as client:
            response = await client.put("/api/device", json={"device_id": "ABC123"})
            assert response.status_code == 200
            assert response.json()["device"] == "192.168.1.50"
            assert await channel.wait_open(1.0)

            response = await client.get("/api/channel")
        assert response.json() == {"state": "open", "target": "192.168.1.50"}
        assert store.get("device") == "192.168.1.50"
        assert created[0].target == "192.168.1.50"
        await channel.close()

    @pytest.mark.asyncio
    async def test_select_unknown_device(self, services):
        app, *_ = services
        async with client_for(app) as client:
            response = await client.put("/api/device", json={"device_id": "nope"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_select_requires_a_device(self, services):
        app, *_ = services
        async with client_for(app) as client:
            response = await client.put("/api/device", json={})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_select_raw_address(self, services):
        app, channel, store, _ = services
        async with client_for(app) as client:
            await client.put("/api/device", json={"device": "10.0.0.9"})
            response = await client.get("/api/device")
        assert response.json() == {"device": "10.0.0.9"}
        await channel.close()


class TestCommands:
    @pytest.mark.asyncio
    async def test_send_while_closed(self, services):
        app, *_ = services
        async with client_for(app) as client:
            response = await client.post("/api/commands", json={"command": "PLAY"})
        assert response.status_code == 200
        assert response.json() == {"sent": False}

    @pytest.mark.asyncio
    async def test_unknown_command(self, services):
        app, *_ = services
        async with client_for(app) as client:
            response = await client.post("/api/commands", json={"command": "JUMP"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_send_commands_over_open_channel(self, services):
        app, channel, store, created = services
        store.set("device", "192.168.1.50")
        async with client_for(app) as client:
            await client.post("/api/channel/open")
            assert await channel.wait_open(1.0)

            assert (await client.post("/api/commands", json={"command": "PLAY"})).json() == {"sent": True}
            assert (await client.post("/api/commands/key", json={"key": "q"})).json() == {"sent": True}
            url = "http://example.com/a.mp4"
            assert (await client.post("/api/commands/url", json={"url": url})).json() == {"sent": True}

            response = await client.post("/api/channel/close")
        assert response.json() == {"state": "closed"}
        assert channel.state == ChannelState.CLOSED
        assert created[0].lines == ["PLAY", "KEY:Q", f"URL:{url}"]

    @pytest.mark.asyncio
    async def test_bad_key(self, services):
        app, *_ = services
        async with client_for(app) as client:
            response = await client.post("/api/commands/key", json={"key": "ab"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_non_ascii_key_is_rejected(self, services):
        app, *_ = services
        async with client_for(app) as client:
            response = await client.post("/api/commands/key", json={"key": "\u00e9"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_open_without_configured_device(self, services):
        app, *_ = services
        async with client_for(app) as client:
            response = await client.post("/api/channel/open")
        assert response.json() == {"state": "closed", "target": None}
