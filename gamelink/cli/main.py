# gamelink/cli/main.py
from __future__ import annotations

from typing import Optional

from gamelink.core.errors import GameLinkError

from gamelink.cli.args import parse_args, resolve_config
from gamelink.cli.commands import (
    cmd_play,
    cmd_watch,
    configure_logging,
)


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args = parse_args(argv)
        configure_logging(args.log_level, args.log_file)
        cfg = resolve_config(args)

        if args.cmd == "watch":
            return cmd_watch(cfg, secs=args.secs, connect_timeout_s=args.connect_timeout)
        if args.cmd == "play":
            return cmd_play(cfg, connect_timeout_s=args.connect_timeout)

        return 2
    except GameLinkError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
