from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from salesboard.core.config import get_settings


logger = logging.getLogger(__name__)

SCRIPT_LOCATION = Path(__file__).resolve().parent.parent / "persistence" / "alembic"


def build_config(database_url: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(SCRIPT_LOCATION))
    url = database_url or get_settings().database_url
    # Config values go through ConfigParser interpolation.
    config.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return config


def _database_url(config: Config) -> str:
    return config.get_main_option("sqlalchemy.url") or get_settings().database_url


async def _read_heads(database_url: str) -> tuple[str, ...]:
    engine = create_async_engine(database_url, poolclass=NullPool)
    try:
        async with engine.connect() as connection:
            return await connection.run_sync(
                lambda sync_conn: tuple(MigrationContext.configure(sync_conn).get_current_heads())
            )
    finally:
        await engine.dispose()


def _all_revisions(config: Config) -> list[str]:
    # Head first, base last.
    script = ScriptDirectory.from_config(config)
    return [revision.revision for revision in script.walk_revisions("base", "heads")]


def applied_changes(config: Config) -> list[str]:
    """Applied revision identifiers, from the current head back to base."""
    heads = asyncio.run(_read_heads(_database_url(config)))
    if not heads:
        return []
    script = ScriptDirectory.from_config(config)
    applied: list[str] = []
    for revision in script.iterate_revisions(heads, "base"):
        if revision.revision not in applied:
            applied.append(revision.revision)
    return applied


def pending_changes(config: Config) -> list[str]:
    """Revisions not yet in the ledger, in the order an upgrade would apply them."""
    applied = set(applied_changes(config))
    return [revision for revision in reversed(_all_revisions(config)) if revision not in applied]


def apply_changes(config: Config, target: str = "head") -> list[str]:
    before = set(applied_changes(config))
    command.upgrade(config, target)
    after = applied_changes(config)
    newly_applied = [revision for revision in reversed(after) if revision not in before]
    logger.info("schema_changes_applied target=%s revisions=%s", target, ",".join(newly_applied) or "-")
    return newly_applied


def revert_changes(config: Config, target: str) -> list[str]:
    before = applied_changes(config)
    command.downgrade(config, target)
    after = set(applied_changes(config))
    reverted = [revision for revision in before if revision not in after]
    logger.info("schema_changes_reverted target=%s revisions=%s", target, ",".join(reverted) or "-")
    return reverted
