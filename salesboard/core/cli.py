from __future__ import annotations

import asyncio
import sys
from typing import Awaitable, Callable

from sqlalchemy.exc import InterfaceError, OperationalError

from salesboard.core.errors import NotFoundError, SalesboardError
from salesboard.core.logging import configure_logging
from salesboard.persistence.db import engine


async def _with_engine_cleanup(procedure: Callable[[], Awaitable[int]]) -> int:
    try:
        return await procedure()
    finally:
        await engine.dispose()


def run_script(name: str, procedure: Callable[[], Awaitable[int]]) -> int:
    """Run one operator procedure and map failures to exit status 1 with a stderr message."""
    configure_logging()
    try:
        return asyncio.run(_with_engine_cleanup(procedure))
    except NotFoundError as exc:
        print(f"{name} failed: {exc.message}", file=sys.stderr)
        return 1
    except (OperationalError, InterfaceError) as exc:
        print(f"{name} failed: database unavailable: {exc}", file=sys.stderr)
        return 1
    except SalesboardError as exc:
        print(f"{name} failed: [{exc.code}] {exc.message}", file=sys.stderr)
        return 1
    except Exception as exc:  # noqa: BLE001 - surface script failures clearly
        print(f"{name} failed: {exc}", file=sys.stderr)
        return 1
