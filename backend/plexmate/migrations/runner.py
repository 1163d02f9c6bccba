"""Schema migrations for the PlexMate tables.

Each ``versions/NNN_name.sql`` file runs once, in version order, inside its
own transaction. The whole pass holds a Postgres advisory lock so two bot
processes starting together cannot apply the same file twice.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"

# Arbitrary, but fixed: identifies the PlexMate migration lock
ADVISORY_LOCK_KEY = 0x504C584D


@dataclass(frozen=True)
class Migration:
    version: str
    filename: str
    sql: str

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.sql.encode("utf-8")).hexdigest()


def discover(migrations_dir: Path = VERSIONS_DIR) -> list[Migration]:
    """Read every migration file, ordered by its numeric prefix."""
    found = []
    for path in sorted(migrations_dir.glob("*.sql")):
        version = path.stem.split("_", 1)[0]
        if not version.isdigit():
            logger.warning(f"Ignoring migration without numeric prefix: {path.name}")
            continue
        found.append(Migration(version, path.name, path.read_text(encoding="utf-8")))
    return found


class MigrationRunner:
    """Apply pending migrations and record them in ``schema_migrations``."""

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def run_pending(self, migrations_dir: Path | None = None) -> list[str]:
        """Returns the versions applied by this call."""
        migrations = discover(migrations_dir or VERSIONS_DIR)
        if not migrations:
            logger.info("No migration files found")
            return []

        applied_now: list[str] = []
        async with self.pool.acquire() as conn:
            await conn.execute("SELECT pg_advisory_lock($1)", ADVISORY_LOCK_KEY)
            try:
                await self._ensure_table(conn)
                applied = await self._applied(conn)

                for migration in migrations:
                    recorded = applied.get(migration.version)
                    if recorded is None:
                        await self._apply(conn, migration)
                        applied_now.append(migration.version)
                    elif recorded != migration.checksum:
                        logger.warning(
                            f"Migration {migration.filename} changed after it was applied"
                        )
            finally:
                await conn.execute("SELECT pg_advisory_unlock($1)", ADVISORY_LOCK_KEY)

        if applied_now:
            logger.info(f"Applied migrations: {', '.join(applied_now)}")
        else:
            logger.info("Database schema is current")
        return applied_now

    async def _ensure_table(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                version    TEXT PRIMARY KEY,
                filename   TEXT NOT NULL,
                checksum   TEXT NOT NULL,
                applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            """
        )

    async def _applied(self, conn: asyncpg.Connection) -> dict[str, str]:
        rows = await conn.fetch(f"SELECT version, checksum FROM {self.TRACKING_TABLE}")  # noqa: S608
        return {row["version"]: row["checksum"] for row in rows}

    async def _apply(self, conn: asyncpg.Connection, migration: Migration) -> None:
        logger.info(f"Applying migration {migration.filename}")
        async with conn.transaction():
            await conn.execute(migration.sql)
            await conn.execute(
                f"INSERT INTO {self.TRACKING_TABLE} (version, filename, checksum) "  # noqa: S608
                "VALUES ($1, $2, $3)",
                migration.version,
                migration.filename,
                migration.checksum,
            )
