from __future__ import annotations

import argparse
import json
from pathlib import Path
from uuid import UUID

from salesboard.core.cli import run_script
from salesboard.persistence.db import SessionLocal
from salesboard.services.importer import import_client_services
from salesboard.services.repair import format_summary


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import client-service assignments from a JSON export")
    parser.add_argument("path", type=Path, help="JSON list of {cliente, servicios: [...]} records")
    parser.add_argument("--tenant", type=UUID, required=True)
    return parser


async def _import(path: Path, tenant_id: UUID) -> int:
    records = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(records, list):
        raise ValueError(f"{path} must contain a JSON list")
    async with SessionLocal() as session:
        summary = await import_client_services(session, tenant_id, records)
    print(format_summary("import_client_services", summary.counts))
    for cliente in summary.missing_clients:
        print(f"  missing_client={cliente}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    return run_script("import_client_services", lambda: _import(args.path, args.tenant))


if __name__ == "__main__":
    raise SystemExit(main())
