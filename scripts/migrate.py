#!/usr/bin/env python
"""Apply the payroll suite SQL migrations to PostgreSQL.

Usage:
    python scripts/migrate.py
    python scripts/migrate.py --database-url postgresql://...
    python scripts/migrate.py --dry-run
"""

import argparse
import re
import sys
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from payroll_suite.config import get_settings

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"
HISTORY_TABLE = "payroll_migration_history"


def migration_files() -> list[tuple[int, Path]]:
    """Numbered migration files in apply order."""
    if not MIGRATIONS_DIR.is_dir():
        raise SystemExit(f"Migrations directory not found: {MIGRATIONS_DIR}")

    numbered = []
    for path in MIGRATIONS_DIR.glob("*.sql"):
        match = re.match(r"(\d+)_", path.name)
        if match:
            numbered.append((int(match.group(1)), path))
    return sorted(numbered)


def applied_migrations(engine: Engine) -> set[int]:
    with engine.begin() as conn:
        conn.execute(text(f"""
            CREATE TABLE IF NOT EXISTS {HISTORY_TABLE} (
                migration_number INT PRIMARY KEY,
                filename TEXT NOT NULL,
                applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """))
        rows = conn.execute(text(f"SELECT migration_number FROM {HISTORY_TABLE}"))
        return {row[0] for row in rows}


def apply_migration(engine: Engine, number: int, path: Path) -> None:
    """Run one file and record it, in a single transaction."""
    sql = path.read_text(encoding="utf-8")
    with engine.begin() as conn:
        # Raw driver execution; the files contain format() placeholders and casts.
        conn.exec_driver_sql(sql)
        conn.execute(
            text(f"""
                INSERT INTO {HISTORY_TABLE} (migration_number, filename)
                VALUES (:num, :name)
                ON CONFLICT (migration_number) DO NOTHING
            """),
            {"num": number, "name": path.name},
        )


def main() -> int:
    parser = argparse.ArgumentParser(description="Apply payroll suite migrations")
    parser.add_argument(
        "--database-url",
        default=get_settings().database_url_sync,
        help="Synchronous database URL (defaults to DATABASE_URL_SYNC)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List pending migrations without executing them",
    )
    args = parser.parse_args()

    target = args.database_url.rsplit("@", 1)[-1]
    print(f"Payroll suite migrations -> {target}")

    files = migration_files()
    engine = create_engine(args.database_url)
    try:
        applied = applied_migrations(engine)
    except SQLAlchemyError as exc:
        print(f"ERROR: could not connect to database: {exc}")
        return 1

    pending = [(number, path) for number, path in files if number not in applied]
    print(f"{len(files)} migration files, {len(applied)} applied, {len(pending)} pending")

    for number, path in pending:
        if args.dry_run:
            print(f"  [dry run] {path.name}")
            continue
        print(f"  applying {path.name}")
        try:
            apply_migration(engine, number, path)
        except SQLAlchemyError as exc:
            print(f"  FAILED: {exc}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
