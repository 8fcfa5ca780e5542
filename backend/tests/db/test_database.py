"""SQLite connection and migration tests."""

import sqlite3

import pytest

from repowiki.db.migrations import SCHEMA_VERSION, run_migrations


def count_repositories(db) -> int:
    return db.fetchone("SELECT COUNT(*) AS n FROM repositories")["n"]


def test_migrations_are_idempotent(temp_db):
    run_migrations(temp_db)

    rows = temp_db.fetchall("SELECT version FROM schema_version")
    assert [row["version"] for row in rows] == [SCHEMA_VERSION]


def test_foreign_keys_enforced(temp_db):
    with pytest.raises(sqlite3.IntegrityError):
        temp_db.write(
            "INSERT INTO analysis_jobs (id, repository_id, status, progress, created_at) "
            "VALUES ('j', 999, 'pending', 0, '2024-01-01')"
        )


def test_failed_write_leaves_no_open_transaction(temp_db):
    temp_db.write(
        "INSERT INTO repositories (url, owner, name, created_at, updated_at) "
        "VALUES ('https://github.com/o/r', 'o', 'r', 'now', 'now')"
    )

    with pytest.raises(sqlite3.IntegrityError):
        temp_db.write(
            "INSERT INTO repositories (url, owner, name, created_at, updated_at) "
            "VALUES ('https://github.com/o/r', 'o', 'r', 'now', 'now')"
        )

    assert not temp_db._conn.in_transaction
    assert count_repositories(temp_db) == 1


def test_transaction_rolls_back_on_error(temp_db):
    with pytest.raises(RuntimeError):
        with temp_db.transaction() as db:
            db.execute(
                "INSERT INTO repositories (url, owner, name, created_at, updated_at) "
                "VALUES ('https://github.com/o/x', 'o', 'x', 'now', 'now')"
            )
            raise RuntimeError("boom")

    assert count_repositories(temp_db) == 0
