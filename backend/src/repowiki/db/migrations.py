"""Database migrations and schema management for repowiki."""

import logging

from repowiki.db.connection import Database

logger = logging.getLogger(__name__)

# Schema version for tracking migrations
SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Analyzed GitHub repositories, keyed by canonical URL
CREATE TABLE IF NOT EXISTS repositories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL UNIQUE,
    owner TEXT NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    language TEXT,
    stars INTEGER NOT NULL DEFAULT 0,
    analyzed_at TEXT,  -- NULL until the first analysis completes
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- One row per execution of the analysis pipeline
CREATE TABLE IF NOT EXISTS analysis_jobs (
    id TEXT PRIMARY KEY,
    repository_id INTEGER NOT NULL REFERENCES repositories(id),
    status TEXT NOT NULL DEFAULT 'pending',  -- 'pending', 'in_progress', 'completed', 'failed'
    progress INTEGER NOT NULL DEFAULT 0,  -- Percentage, never decreases
    result TEXT,  -- JSON: subsystem_count, summary, warnings
    error_message TEXT,
    started_at TEXT,
    completed_at TEXT,
    created_at TEXT NOT NULL
);

-- Classified subsystems; (repository_id, name) is the merge key
CREATE TABLE IF NOT EXISTS subsystems (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    repository_id INTEGER NOT NULL REFERENCES repositories(id),
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    type TEXT NOT NULL,
    files TEXT NOT NULL DEFAULT '[]',  -- JSON list of paths
    entry_points TEXT NOT NULL DEFAULT '[]',  -- JSON list of paths
    dependencies TEXT NOT NULL DEFAULT '[]',  -- JSON list of names
    complexity TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(repository_id, name)
);

-- At most one generated page per subsystem
CREATE TABLE IF NOT EXISTS wiki_pages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    subsystem_id INTEGER NOT NULL UNIQUE REFERENCES subsystems(id),
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    citations TEXT NOT NULL DEFAULT '[]',  -- JSON list of citation objects
    table_of_contents TEXT NOT NULL DEFAULT '[]',  -- JSON list of headings
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_jobs_repository ON analysis_jobs(repository_id);
CREATE INDEX IF NOT EXISTS idx_jobs_status ON analysis_jobs(status);
CREATE INDEX IF NOT EXISTS idx_repositories_analyzed_at ON repositories(analyzed_at);
"""


def run_migrations(db: Database) -> None:
    """Create tables if needed and record the schema version.

    Args:
        db: Database connection.
    """
    db.executescript(SCHEMA_SQL)

    with db.transaction():
        row = db.fetchone("SELECT MAX(version) AS version FROM schema_version")
        current = row["version"] if row and row["version"] is not None else 0

        if current < SCHEMA_VERSION:
            db.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            logger.info(f"Database schema migrated from version {current} to {SCHEMA_VERSION}")
