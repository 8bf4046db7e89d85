from __future__ import annotations

import argparse

from salesboard.core.cli import run_script
from salesboard.persistence.db import SessionLocal
from salesboard.services.repair import backfill_tenants, format_summary


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Attribute rows without a tenant to the default tenant")
    parser.add_argument("--tenant-name", default=None, help="Defaults to DEFAULT_TENANT_NAME")
    return parser


async def _backfill(tenant_name: str | None) -> int:
    async with SessionLocal() as session:
        summary = await backfill_tenants(session, default_tenant_name=tenant_name)
    print(f"tenant_id={summary.tenant_id} tenant_name={summary.tenant_name} created={summary.tenant_created}")
    print(format_summary("backfill_tenants", summary.counts, summary.soft_failures))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    return run_script("backfill_tenants", lambda: _backfill(args.tenant_name))


if __name__ == "__main__":
    raise SystemExit(main())
