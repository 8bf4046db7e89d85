from __future__ import annotations

import argparse
from uuid import UUID

from salesboard.core.cli import run_script
from salesboard.persistence.db import SessionLocal
from salesboard.services.repair import format_summary, sweep_orphaned_junctions


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Delete junction rows whose parent no longer exists")
    parser.add_argument("--tenant", type=UUID, default=None)
    parser.add_argument("--dry-run", action="store_true")
    return parser


async def _sweep(tenant_id: UUID | None, dry_run: bool) -> int:
    async with SessionLocal() as session:
        summary = await sweep_orphaned_junctions(session, tenant_id=tenant_id, dry_run=dry_run)
    print(format_summary("sweep_orphans", summary.counts, summary.soft_failures, dry_run=dry_run))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    return run_script("sweep_orphans", lambda: _sweep(args.tenant, args.dry_run))


if __name__ == "__main__":
    raise SystemExit(main())
