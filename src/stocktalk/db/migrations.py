"""Schema migrations for the audit database."""

import logging
from pathlib import Path

import duckdb

logger = logging.getLogger(__name__)


def get_migrations_dir() -> Path:
    repo_root = Path(__file__).parent.parent.parent.parent
    return repo_root / "migrations"


def run_migrations(
    conn: duckdb.DuckDBPyConnection | str, migrations_dir: Path | None = None
) -> list[str]:
    """Apply pending .sql migrations in filename order.

    Args:
        conn: DuckDB connection or database path string.
        migrations_dir: Directory of migration files (default: repo migrations/).

    Returns:
        Versions applied by this call.

    Raises:
        FileNotFoundError: If the migrations directory does not exist.
    """
    if isinstance(conn, str):
        conn = duckdb.connect(conn)

    migrations_dir = migrations_dir or get_migrations_dir()
    if not migrations_dir.exists():
        raise FileNotFoundError(f"Migrations directory not found: {migrations_dir}")

    migration_files = sorted(migrations_dir.glob("*.sql"))
    if not migration_files:
        return []

    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)

    applied = {row[0] for row in conn.execute("SELECT version FROM schema_migrations").fetchall()}

    newly_applied = []
    for migration_file in migration_files:
        version = migration_file.stem  # e.g., "001_parsed_commands"
        if version in applied:
            continue

        conn.execute(migration_file.read_text())
        conn.execute("INSERT INTO schema_migrations (version) VALUES (?)", [version])
        newly_applied.append(version)
        logger.info("Applied migration: %s", version)

    return newly_applied
