from __future__ import annotations

import argparse
from uuid import UUID

from salesboard.core.cli import run_script
from salesboard.persistence.db import SessionLocal
from salesboard.services.repair import format_summary, remove_salesperson_assignments


def _build_parser() -> argparse.ArgumentParser:
    # One id per run keeps the blast radius to a single salesperson.
    parser = argparse.ArgumentParser(description="Remove every objective assignment of one salesperson")
    parser.add_argument("salesperson_id", type=UUID, help="Salesperson id")
    return parser


async def _remove(salesperson_id: UUID) -> int:
    async with SessionLocal() as session:
        summary = await remove_salesperson_assignments(session, salesperson_id)
    print(f"salesperson_id={summary.salesperson_id} nombre={summary.salesperson_name}")
    print(format_summary("remove_salesperson_objectives", summary.counts))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    return run_script("remove_salesperson_objectives", lambda: _remove(args.salesperson_id))


if __name__ == "__main__":
    raise SystemExit(main())
