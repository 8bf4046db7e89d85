from __future__ import annotations

import argparse
from uuid import UUID

from salesboard.core.cli import run_script
from salesboard.persistence.db import SessionLocal
from salesboard.services.repair import format_summary, integrity_report


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Report duplicates, orphans, unmigrated and cross-tenant rows")
    parser.add_argument("--tenant", type=UUID, default=None)
    return parser


async def _check(tenant_id: UUID | None) -> int:
    # Read-only; a dirty report is still a successful run.
    async with SessionLocal() as session:
        report = await integrity_report(session, tenant_id=tenant_id)
    print(format_summary("check_integrity", report.counts))
    print(f"  clean={str(report.clean).lower()}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    return run_script("check_integrity", lambda: _check(args.tenant))


if __name__ == "__main__":
    raise SystemExit(main())
