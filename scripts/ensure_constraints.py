from __future__ import annotations

import argparse

from salesboard.core.cli import run_script
from salesboard.persistence.db import SessionLocal
from salesboard.services.repair import ensure_junction_constraints, format_summary


async def _ensure() -> int:
    async with SessionLocal() as session:
        summary = await ensure_junction_constraints(session)
    print(format_summary("ensure_constraints", summary.counts, summary.soft_failures))
    for name in summary.added:
        print(f"  added={name}")
    return 0


def main(argv: list[str] | None = None) -> int:
    argparse.ArgumentParser(description="Add missing cascading foreign keys on junction tables").parse_args(argv)
    return run_script("ensure_constraints", _ensure)


if __name__ == "__main__":
    raise SystemExit(main())
