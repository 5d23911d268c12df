"""
Schema Migrations for Sirened

Idempotent upgrades for databases created before a column or table was
added to the models. ``create_all`` only creates missing tables; it never
alters existing ones, so additive column changes live here.

Each migration inspects the live catalog first and only issues DDL when
the change is missing, so the runner is safe to run on every startup.

Usage:
    runner = MigrationRunner(engine)
    report = runner.run()

    # CLI
    sirened-migrate --database-url postgresql://... --dry-run
"""

import argparse
import os
import sys
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from dotenv import load_dotenv
from loguru import logger
from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.engine.reflection import Inspector
from sqlalchemy.exc import SQLAlchemyError

from sirened.exceptions import MigrationError
from .database import Database


@dataclass
class Migration:
    """
    A named, idempotent schema change.

    Attributes:
        name: Unique identifier, used in logs and reports.
        description: Human readable summary.
        check: Returns True when the change is already present.
        apply: Issues the DDL on an open connection.
    """

    name: str
    description: str
    check: Callable[[Inspector], bool]
    apply: Callable[[Connection], None]


@dataclass
class MigrationReport:
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied)


def _has_column(inspector: Inspector, table: str, column: str) -> bool:
    return any(c["name"] == column for c in inspector.get_columns(table))


def add_column_migration(table: str, column: str, ddl: str, description: Optional[str] = None) -> Migration:
    """
    Migration adding ``column`` to ``table``.

    ``ddl`` is the column definition after the name, e.g.
    ``"BOOLEAN DEFAULT FALSE"``. When the table itself does not exist the
    migration counts as satisfied; ``create_all`` will build it complete.
    """

    def check(inspector: Inspector) -> bool:
        if not inspector.has_table(table):
            return True
        return _has_column(inspector, table, column)

    def apply(connection: Connection) -> None:
        connection.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"))

    return Migration(
        name=f"{table}.{column}",
        description=description or f"Add {column} to {table}",
        check=check,
        apply=apply,
    )


def create_table_migration(table: str, ddl: str, description: Optional[str] = None) -> Migration:
    """Migration creating ``table`` from a column list ``ddl``."""

    def check(inspector: Inspector) -> bool:
        return inspector.has_table(table)

    def apply(connection: Connection) -> None:
        connection.execute(text(f"CREATE TABLE {table} ({ddl})"))

    return Migration(
        name=f"create_{table}",
        description=description or f"Create table {table}",
        check=check,
        apply=apply,
    )


DEFAULT_MIGRATIONS: tuple[Migration, ...] = (
    add_column_migration(
        "ratings", "featured", "BOOLEAN DEFAULT FALSE",
        "Allow authors to feature a rating on their book page",
    ),
    add_column_migration(
        "ratings", "report_status", "VARCHAR(20) DEFAULT 'none'",
        "Track moderation state of reported ratings",
    ),
    add_column_migration(
        "rating_preferences", "auto_adjust", "BOOLEAN NOT NULL DEFAULT FALSE",
        "Remember whether weight sliders rebalance automatically",
    ),
    add_column_migration(
        "users", "social_links", "JSON DEFAULT '[]'",
        "Social media links on user profiles",
    ),
    add_column_migration(
        "book_genre_taxonomies", "importance", "FLOAT DEFAULT 1.0",
        "Importance of a taxonomy for a book, derived from rank",
    ),
)


class MigrationRunner:
    """Runs migrations in order, each in its own transaction."""

    def __init__(self, engine: Engine, migrations: Sequence[Migration] = DEFAULT_MIGRATIONS):
        names = [m.name for m in migrations]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate migration names: {sorted(duplicates)}")

        self.engine = engine
        self.migrations = list(migrations)

    def pending(self) -> list[str]:
        """Names of migrations that would change the schema."""
        with self.engine.connect() as connection:
            return [m.name for m in self.migrations if not m.check(inspect(connection))]

    def run(self, dry_run: bool = False) -> MigrationReport:
        """
        Apply every missing migration.

        Raises:
            MigrationError: A migration failed; later ones are not attempted.
        """
        report = MigrationReport()

        for migration in self.migrations:
            try:
                with self.engine.begin() as connection:
                    # Fresh inspector per step: inspectors cache reflection results
                    if migration.check(inspect(connection)):
                        logger.debug(f"Migration {migration.name}: already applied")
                        report.skipped.append(migration.name)
                        continue

                    if dry_run:
                        logger.info(f"Migration {migration.name}: pending ({migration.description})")
                        report.pending.append(migration.name)
                        continue

                    logger.info(f"Migration {migration.name}: applying ({migration.description})")
                    migration.apply(connection)
            except SQLAlchemyError as e:
                logger.error(f"Migration {migration.name} failed: {e}")
                raise MigrationError(migration.name, detail=str(e)) from e

            report.applied.append(migration.name)

        logger.info(
            f"Migrations complete: {len(report.applied)} applied, "
            f"{len(report.skipped)} already present, {len(report.pending)} pending"
        )
        return report


def run_migrations(engine: Engine, dry_run: bool = False) -> MigrationReport:
    return MigrationRunner(engine).run(dry_run=dry_run)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(description="Apply Sirened schema migrations")
    parser.add_argument("--database-url", type=str, default=None, help="SQLAlchemy URL (defaults to DATABASE_URL)")
    parser.add_argument("--dry-run", action="store_true", help="Report pending migrations without applying")
    args = parser.parse_args(argv)

    database_url = args.database_url or os.getenv("DATABASE_URL", "sqlite:///./sirened.db")
    database = Database(database_url)

    try:
        report = MigrationRunner(database.engine).run(dry_run=args.dry_run)
    except MigrationError as e:
        logger.error(f"{e.message}: {e.detail}")
        return 1
    finally:
        database.dispose()

    for name in report.pending:
        print(f"pending  {name}")
    for name in report.applied:
        print(f"applied  {name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
