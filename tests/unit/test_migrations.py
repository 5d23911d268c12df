"""
Unit tests for the schema migration runner.
"""

import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from sirened.exceptions import MigrationError
from sirened.storage.migrations import (
    DEFAULT_MIGRATIONS,
    Migration,
    MigrationRunner,
    add_column_migration,
    create_table_migration,
    main,
    run_migrations,
)
from sirened.storage.models import Base


def _columns(engine, table):
    return {c["name"] for c in inspect(engine).get_columns(table)}


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    yield eng
    eng.dispose()


@pytest.fixture
def legacy_engine(engine):
    """A database from before the rating and profile columns existed."""
    with engine.begin() as connection:
        connection.execute(text(
            "CREATE TABLE ratings (id INTEGER PRIMARY KEY, user_id INTEGER, book_id INTEGER, enjoyment INTEGER)"
        ))
        connection.execute(text(
            "CREATE TABLE users (id INTEGER PRIMARY KEY, email VARCHAR(255), username VARCHAR(50))"
        ))
        connection.execute(text("INSERT INTO ratings (id, user_id, book_id, enjoyment) VALUES (1, 1, 1, 4)"))
    return engine


class TestMigrationRunner:
    """Tests for applying migrations against a live catalog."""

    def test_adds_missing_columns(self, legacy_engine):
        report = MigrationRunner(legacy_engine).run()

        assert report.applied == ["ratings.featured", "ratings.report_status", "users.social_links"]
        assert {"featured", "report_status"} <= _columns(legacy_engine, "ratings")
        assert "social_links" in _columns(legacy_engine, "users")

    def test_missing_tables_are_skipped(self, legacy_engine):
        report = MigrationRunner(legacy_engine).run()

        assert "rating_preferences.auto_adjust" in report.skipped
        assert "book_genre_taxonomies.importance" in report.skipped

    def test_existing_rows_get_defaults(self, legacy_engine):
        MigrationRunner(legacy_engine).run()

        with legacy_engine.connect() as connection:
            row = connection.execute(text("SELECT report_status FROM ratings WHERE id = 1")).one()
        assert row.report_status == "none"

    def test_second_run_is_noop(self, legacy_engine):
        MigrationRunner(legacy_engine).run()
        report = MigrationRunner(legacy_engine).run()

        assert report.applied == []
        assert not report.changed
        assert len(report.skipped) == len(DEFAULT_MIGRATIONS)

    def test_current_schema_needs_nothing(self, engine):
        Base.metadata.create_all(engine)

        report = run_migrations(engine)

        assert report.applied == []
        assert MigrationRunner(engine).pending() == []

    def test_dry_run_changes_nothing(self, legacy_engine):
        report = MigrationRunner(legacy_engine).run(dry_run=True)

        assert report.pending == ["ratings.featured", "ratings.report_status", "users.social_links"]
        assert report.applied == []
        assert "featured" not in _columns(legacy_engine, "ratings")

    def test_failure_names_migration(self, engine):
        broken = Migration(
            name="broken",
            description="Always fails",
            check=lambda inspector: False,
            apply=lambda connection: connection.execute(text("ALTER TABLE nowhere ADD COLUMN x INTEGER")),
        )

        with pytest.raises(MigrationError) as exc_info:
            MigrationRunner(engine, [broken]).run()

        assert "broken" in exc_info.value.message

    def test_duplicate_names_rejected(self, engine):
        migration = add_column_migration("ratings", "featured", "BOOLEAN")
        with pytest.raises(ValueError):
            MigrationRunner(engine, [migration, migration])


class TestMigrationBuilders:
    def test_create_table_migration(self, engine):
        migration = create_table_migration("audit_log", "id INTEGER PRIMARY KEY, message TEXT")
        runner = MigrationRunner(engine, [migration])

        assert runner.pending() == ["create_audit_log"]
        assert runner.run().applied == ["create_audit_log"]
        assert inspect(engine).has_table("audit_log")
        assert runner.run().skipped == ["create_audit_log"]


class TestMigrateCli:
    def test_dry_run_against_file_database(self, tmp_path, capsys):
        url = f"sqlite:///{tmp_path / 'legacy.db'}"
        file_engine = create_engine(url)
        with file_engine.begin() as connection:
            connection.execute(text("CREATE TABLE ratings (id INTEGER PRIMARY KEY)"))
        file_engine.dispose()

        assert main(["--database-url", url, "--dry-run"]) == 0
        assert "pending  ratings.featured" in capsys.readouterr().out

        assert main(["--database-url", url]) == 0
        assert "applied  ratings.report_status" in capsys.readouterr().out
