from __future__ import annotations

import os
from pathlib import Path
import tempfile

# Point settings at a throwaway SQLite file before any salesboard module builds the engine.
_TEST_DB = Path(tempfile.mkdtemp(prefix="salesboard-tests-")) / "salesboard.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB}"

import pytest  # noqa: E402

from salesboard.domain.models import Base  # noqa: E402
from salesboard.persistence.db import engine  # noqa: E402


@pytest.fixture(autouse=True)
async def reset_schema_between_tests() -> None:
    # Every test starts from an empty schema built from the ORM models.
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    # Drop pooled connections so scripts that run their own event loop start clean.
    await engine.dispose()
    yield
    await engine.dispose()
