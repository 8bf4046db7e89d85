from __future__ import annotations

import argparse
from uuid import UUID

from salesboard.core.cli import run_script
from salesboard.persistence.db import SessionLocal
from salesboard.services.repair import DUPLICATE_TARGETS, format_summary, resolve_duplicates


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Delete duplicate rows that share a natural key, keeping the most-assigned one"
    )
    parser.add_argument("--tenant", type=UUID, default=None, help="Limit the pass to one tenant id")
    parser.add_argument("--target", default="quantitative_objective", choices=sorted(DUPLICATE_TARGETS))
    parser.add_argument("--dry-run", action="store_true", help="Report candidates without deleting")
    return parser


async def _resolve(target: str, tenant_id: UUID | None, dry_run: bool) -> int:
    async with SessionLocal() as session:
        summary = await resolve_duplicates(session, target, tenant_id=tenant_id, dry_run=dry_run)
    title = f"resolve_duplicates target={target}"
    print(format_summary(title, summary.counts, summary.soft_failures, dry_run=dry_run))
    for resolution in summary.resolutions:
        victims = ",".join(str(victim.id) for victim in resolution.victims)
        print(f"  kept={resolution.survivor.id} discarded={victims}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    return run_script("resolve_duplicates", lambda: _resolve(args.target, args.tenant, args.dry_run))


if __name__ == "__main__":
    raise SystemExit(main())
