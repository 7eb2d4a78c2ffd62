from __future__ import annotations

import asyncio
import io
import json
import logging

import pytest

import gamelink.cli.main as main_mod
from gamelink.app.config import GameLinkConfig
from gamelink.app.runner import build_client
from gamelink.cli.args import parse_args, resolve_config
from gamelink.cli.commands import PrintEventSink, format_snapshot, parse_key, run_play, run_watch
from gamelink.core.errors import ConfigError, ConnectError
from gamelink.protocol.messages import ControlKey, Point, SessionConfig, Snapshot
from gamelink.tests.fakes import FakeNetwork, settle


CFG = GameLinkConfig(endpoint="ws://test/ws", reconnect_interval_s=0.1, config_retry_delay_s=0.01)


# -----------------------------
# Argument parsing / config
# -----------------------------

def test_parse_args_play_flags():
    args = parse_args(["--log-level", "DEBUG", "play", "--url", "ws://h/ws", "--width", "30", "--no-debug-numbers"])

    assert args.cmd == "play"
    assert args.log_level == "DEBUG"
    assert args.url == "ws://h/ws"
    assert args.width == 30
    assert args.debug_numbers is False
    assert args.height is None


def test_parse_args_requires_subcommand():
    with pytest.raises(SystemExit):
        parse_args([])


def test_resolve_config_layers_file_then_flags(tmp_path):
    p = tmp_path / "c.yml"
    p.write_text("endpoint: ws://file/ws\nsession:\n  grid_width: 50\n  game_speed: 80\n", encoding="utf-8")

    cfg = resolve_config(parse_args(["play", "--config", str(p), "--speed", "60", "--debug-numbers"]))

    assert cfg.endpoint == "ws://file/ws"
    assert cfg.session == SessionConfig(grid_width=50, game_speed=60, show_debug_numbers=True)

    cfg = resolve_config(parse_args(["watch", "--config", str(p), "--url", "ws://flag/ws"]))
    assert cfg.endpoint == "ws://flag/ws"


def test_resolve_config_rejects_bad_game_settings():
    with pytest.raises(ConfigError):
        resolve_config(parse_args(["play", "--width", "0"]))


@pytest.mark.parametrize(
    "line, key",
    [
        ("w", ControlKey.ARROW_UP),
        ("LEFT\n", ControlKey.ARROW_LEFT),
        ("start", ControlKey.START),
        ("ArrowRight", ControlKey.ARROW_RIGHT),
        ("q", ControlKey.QUIT),
        ("jump", None),
    ],
)
def test_parse_key(line, key):
    assert parse_key(line) is key


# -----------------------------
# Output
# -----------------------------

def test_format_snapshot():
    snap = Snapshot(snake=(Point(2, 3), Point(2, 2)), food=Point(5, 5), game_started=True, extra={"score": 4})
    assert format_snapshot(snap) == (
        "STATE len=2 head=(2,3) food=(5,5) started=True over=False won=False score=4"
    )
    assert "head=- food=-" in format_snapshot(Snapshot(snake=()))


def test_print_sink_attach_and_close():
    async def scenario():
        net = FakeNetwork()
        client = build_client(CFG, transport_factory=net.factory)
        out = io.StringIO()
        sink = PrintEventSink(show_states=False, out=out)
        sink.attach(client)

        client.connect()
        await settle()
        net.last.feed('{"snake":[{"x":0,"y":0}],"gameOver":true,"gameWon":true}')
        net.last.feed('{"type":"hello"}')
        await settle()

        sink.close()
        await client.aclose()
        return out.getvalue().splitlines()

    lines = asyncio.run(scenario())
    assert lines == ["CONNECTED", "GAME WON", "MESSAGE {'type': 'hello'}"]


# -----------------------------
# Commands
# -----------------------------

def test_run_play_sends_config_start_and_keys(capsys):
    async def scenario():
        net = FakeNetwork()
        client = build_client(CFG, transport_factory=net.factory, logger=logging.getLogger("test"))
        lines = iter(["w\n", "bogus\n", "\n", "q\n", "exit\n", "d\n"])

        async def read_line():
            await settle()
            return next(lines, "")

        rc = await run_play(client, CFG, connect_timeout_s=1.0, read_line=read_line)
        return rc, net

    rc, net = asyncio.run(scenario())

    assert rc == 0
    assert [json.loads(f) for f in net.last.sent] == [
        CFG.session.to_wire(),
        {"key": " "},
        {"key": "ArrowUp"},
        {"key": "q"},
    ]
    out = capsys.readouterr().out
    assert "CONNECTED" in out
    assert "Unknown key: 'bogus'" in out


def test_run_watch_times_out_with_connect_error():
    async def scenario():
        net = FakeNetwork()
        net.fail_open = True
        client = build_client(CFG, transport_factory=net.factory)

        with pytest.raises(ConnectError) as ei:
            await run_watch(client, secs=1.0, connect_timeout_s=0.05)
        assert ei.value.details["endpoint"] == "ws://test/ws"
        assert client.state.value == "idle"

    asyncio.run(scenario())


def test_run_watch_stops_after_secs():
    async def scenario():
        net = FakeNetwork()
        client = build_client(CFG, transport_factory=net.factory)
        return await run_watch(client, secs=0.05, connect_timeout_s=1.0)

    assert asyncio.run(scenario()) == 0


# -----------------------------
# Entry point
# -----------------------------

def test_main_reports_config_error(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(main_mod, "configure_logging", lambda *a, **k: None)

    rc = main_mod.main(["watch", "--config", str(tmp_path / "missing.yml")])

    assert rc == 1
    out = capsys.readouterr().out
    assert out.startswith("ERROR: Missing config file")
    assert "Hint:" in out


def test_main_dispatches_play(monkeypatch):
    monkeypatch.setattr(main_mod, "configure_logging", lambda *a, **k: None)
    seen = {}

    def fake_play(cfg, *, connect_timeout_s):
        seen["cfg"] = cfg
        seen["timeout"] = connect_timeout_s
        return 0

    monkeypatch.setattr(main_mod, "cmd_play", fake_play)

    assert main_mod.main(["play", "--url", "ws://h/ws", "--height", "9", "--connect-timeout", "3"]) == 0
    assert seen["cfg"].endpoint == "ws://h/ws"
    assert seen["cfg"].session.grid_height == 9
    assert seen["timeout"] == 3.0
