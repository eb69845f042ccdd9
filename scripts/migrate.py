#!/usr/bin/env python3
"""Apply the audit-log migrations to a DuckDB database."""

import argparse
import sys
from pathlib import Path

import duckdb

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from stocktalk.db.connection import get_connection, get_db_path  # noqa: E402
from stocktalk.db.migrations import get_migrations_dir, run_migrations  # noqa: E402


def main() -> int:
    """Run migrations."""
    parser = argparse.ArgumentParser(description="Run DuckDB migrations")
    parser.add_argument(
        "--migrations-dir",
        type=Path,
        default=get_migrations_dir(),
        help="Path to migrations directory",
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="Path to DuckDB database file (overrides DUCKDB_PATH env var)",
    )
    args = parser.parse_args()

    db_path = args.db_path or get_db_path()
    print(f"Database: {db_path}")
    print(f"Migrations directory: {args.migrations_dir}")

    conn = get_connection(db_path)
    try:
        applied = run_migrations(conn, migrations_dir=args.migrations_dir)
        if not applied:
            print("No pending migrations.")
        for version in applied:
            print(f"✓ Applied migration: {version}")
        return 0
    except (duckdb.Error, FileNotFoundError) as e:
        print(f"\n✗ Error applying migrations: {e}", file=sys.stderr)
        return 1
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())
