# gamelink/cli/args.py
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from gamelink.app.config import GameLinkConfig, load_config
from gamelink.core.errors import ConfigError
from gamelink.protocol.messages import SessionConfig


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gamelink")
    parser.add_argument("--log-level", default="WARNING", choices=LOG_LEVELS)
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file.")

    sub = parser.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--url", default=None, help="Server endpoint, e.g. ws://localhost:8080/ws")
    common.add_argument("--config", type=Path, default=None, help="YAML client config file.")
    common.add_argument(
        "--connect-timeout",
        type=float,
        default=10.0,
        help="Seconds to wait for the first connection before giving up.",
    )

    pw = sub.add_parser("watch", parents=[common], help="Print connection changes and game snapshots.")
    pw.add_argument("--secs", type=float, default=None, help="Stop after N seconds (default: run until Ctrl-C).")

    pp = sub.add_parser("play", parents=[common], help="Configure, start, and steer a game from stdin.")
    pp.add_argument("--width", type=int, default=None)
    pp.add_argument("--height", type=int, default=None)
    pp.add_argument("--speed", type=int, default=None)
    pp.add_argument("--start-size", type=int, default=None)
    pp.add_argument("--debug-numbers", action=argparse.BooleanOptionalAction, default=None)

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def resolve_config(args: argparse.Namespace) -> GameLinkConfig:
    """
    Config file (if any) first, then CLI flags on top.
    """
    cfg = load_config(args.config) if args.config is not None else GameLinkConfig()
    cfg = cfg.with_overrides(endpoint=args.url)

    if args.cmd != "play":
        return cfg

    session = cfg.session.to_wire()
    flags = {
        "gridWidth": args.width,
        "gridHeight": args.height,
        "gameSpeed": args.speed,
        "snakeStartSize": args.start_size,
        "showDebugNumbers": args.debug_numbers,
    }
    session.update({k: v for k, v in flags.items() if v is not None})

    try:
        return cfg.with_overrides(session=SessionConfig.from_mapping(session))
    except ValueError as e:
        raise ConfigError("Invalid game settings.", hint=str(e), details={"session": session}) from None
