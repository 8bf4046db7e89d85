from __future__ import annotations

import argparse
import sys

from sqlalchemy.exc import InterfaceError, OperationalError

from salesboard.core.logging import configure_logging
from salesboard.services.schema_log import (
    applied_changes,
    apply_changes,
    build_config,
    pending_changes,
    revert_changes,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Apply, revert or list schema changes")
    parser.add_argument("--database-url", default=None)
    commands = parser.add_subparsers(dest="command", required=True)
    up = commands.add_parser("up", help="Apply pending changes")
    up.add_argument("target", nargs="?", default="head")
    down = commands.add_parser("down", help="Revert applied changes down to target")
    down.add_argument("target")
    commands.add_parser("status", help="List applied and pending changes")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging()
    config = build_config(args.database_url)
    try:
        if args.command == "up":
            applied = apply_changes(config, args.target)
            print(f"applied={','.join(applied) or '-'}")
        elif args.command == "down":
            reverted = revert_changes(config, args.target)
            print(f"reverted={','.join(reverted) or '-'}")
        else:
            print(f"applied={','.join(applied_changes(config)) or '-'}")
            print(f"pending={','.join(pending_changes(config)) or '-'}")
    except (OperationalError, InterfaceError) as exc:
        print(f"migrate failed: database unavailable: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:  # noqa: BLE001 - surface migration failures clearly
        print(f"migrate failed: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
