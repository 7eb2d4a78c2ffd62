from __future__ import annotations

import asyncio
import json
import logging

import pytest

from gamelink.app.config import GameLinkConfig
from gamelink.app.runner import build_client
from gamelink.core.errors import ConfigDeliveryError, ConfigError
from gamelink.protocol.messages import ControlKey, SessionConfig
from gamelink.runtime.events import EventKind
from gamelink.runtime.state import ConnectionState
from gamelink.tests.fakes import EventRecorder, FakeNetwork, settle
from gamelink.transport.websocket import WebSocketTransport


CFG = GameLinkConfig(endpoint="ws://test/ws", reconnect_interval_s=0.1, config_retry_delay_s=0.01)


async def _open_client(cfg: GameLinkConfig = CFG):
    net = FakeNetwork()
    client = build_client(cfg, transport_factory=net.factory, logger=logging.getLogger("test"))
    client.connect()
    await settle()
    assert client.state is ConnectionState.OPEN
    return net, client


def _sent(net: FakeNetwork):
    return [json.loads(f) for f in net.last.sent]


def test_game_commands_are_sent_as_key_frames():
    async def scenario():
        net, client = await _open_client()

        assert client.start() is True
        assert client.send_input("ArrowLeft") is True
        assert client.send_input(ControlKey.ARROW_DOWN) is True
        assert client.restart() is True
        await settle()

        assert _sent(net) == [
            {"key": " "},
            {"key": "ArrowLeft"},
            {"key": "ArrowDown"},
            {"key": "r"},
        ]
        await client.aclose()

    asyncio.run(scenario())


def test_quit_keeps_connection_open():
    async def scenario():
        net, client = await _open_client()

        assert client.quit() is True
        await settle()

        assert _sent(net) == [{"key": "q"}]
        assert client.state is ConnectionState.OPEN
        assert client.status().connected is True
        await client.aclose()

    asyncio.run(scenario())


def test_unknown_input_is_dropped(caplog):
    async def scenario():
        net, client = await _open_client()

        with caplog.at_level(logging.WARNING, logger="test"):
            assert client.send_input("x") is False
        await settle()

        assert net.last.sent == []
        assert "UNKNOWN_KEY_DROPPED" in caplog.text
        await client.aclose()

    asyncio.run(scenario())


def test_commands_when_not_connected_return_false():
    async def scenario():
        net = FakeNetwork()
        client = build_client(CFG, transport_factory=net.factory)

        assert client.start() is False
        assert client.send_input("ArrowUp") is False
        assert net.transports == []

    asyncio.run(scenario())


def test_send_config_delivers_bare_object():
    async def scenario():
        net, client = await _open_client()
        session = SessionConfig(grid_width=12, grid_height=8)

        attempt = await client.send_config(session)
        await settle()

        assert attempt == 1
        assert _sent(net) == [session.to_wire()]
        await client.aclose()

    asyncio.run(scenario())


def test_send_config_fails_when_server_unreachable():
    async def scenario():
        net = FakeNetwork()
        net.fail_open = True
        cfg = CFG.with_overrides(config_attempts=3, reconnect_interval_s=10.0)
        client = build_client(cfg, transport_factory=net.factory)
        client.connect()

        with pytest.raises(ConfigDeliveryError) as ei:
            await client.send_config(SessionConfig())
        assert ei.value.details["attempts"] == 3
        await client.aclose()

    asyncio.run(scenario())


def test_client_context_manager_and_events():
    async def scenario():
        net = FakeNetwork()
        client = build_client(CFG, transport_factory=net.factory)
        rec = EventRecorder(client)

        async with client:
            await settle()
            assert client.state is ConnectionState.OPEN
            net.last.feed('{"snake":[{"x":0,"y":0}],"gameStarted":true}')
            await settle()

        assert client.state is ConnectionState.IDLE
        assert rec.kinds() == [
            EventKind.CONNECTED,
            EventKind.GAME_STATE,
            EventKind.GAME_STARTED,
            EventKind.CONNECTED,
        ]
        assert rec.events[-1] == (EventKind.CONNECTED, (False,))

    asyncio.run(scenario())


def test_build_client_uses_websocket_transport_by_default():
    client = build_client(GameLinkConfig(endpoint="ws://h/ws", open_timeout_s=1.5))

    t = client.manager._transport_factory("ws://h/ws")
    assert isinstance(t, WebSocketTransport)
    assert t.open_timeout == 1.5


def test_build_client_rejects_bad_reconnect_settings():
    with pytest.raises(ConfigError) as ei:
        build_client(GameLinkConfig(reconnect_backoff=0.5), transport_factory=FakeNetwork().factory)
    assert ei.value.details["endpoint"] == GameLinkConfig().endpoint
