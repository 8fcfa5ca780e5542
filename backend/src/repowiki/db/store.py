"""SQLite-backed persistence gateway for repositories, jobs, subsystems and pages."""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from repowiki.db.connection import Database
from repowiki.db.models import AnalysisJob, JobStatus, Repository, Subsystem, WikiPage
from repowiki.generation.schemas import Citation, TableOfContentsItem


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_text(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _to_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class WikiStore:
    """Typed get/insert/update access to the four stored entities.

    Every write is a single-row statement committed immediately. Nothing is
    ever deleted.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    # -------------------------------------------------------------------------
    # Repositories
    # -------------------------------------------------------------------------

    def _row_to_repository(self, row: sqlite3.Row) -> Repository:
        return Repository(
            id=row["id"],
            url=row["url"],
            owner=row["owner"],
            name=row["name"],
            description=row["description"],
            language=row["language"],
            stars=row["stars"],
            analyzed_at=_to_datetime(row["analyzed_at"]),
            created_at=_to_datetime(row["created_at"]),
            updated_at=_to_datetime(row["updated_at"]),
        )

    def get_repository(self, repository_id: int) -> Optional[Repository]:
        """Get a repository by ID. Returns None if not found."""
        row = self.db.fetchone("SELECT * FROM repositories WHERE id = ?", (repository_id,))
        return self._row_to_repository(row) if row else None

    def get_repository_by_url(self, url: str) -> Optional[Repository]:
        """Find a repository by its canonical URL."""
        row = self.db.fetchone("SELECT * FROM repositories WHERE url = ?", (url,))
        return self._row_to_repository(row) if row else None

    def insert_repository(
        self,
        url: str,
        owner: str,
        name: str,
        description: Optional[str] = None,
        language: Optional[str] = None,
        stars: int = 0,
    ) -> Repository:
        """Insert a repository that has not been analyzed yet."""
        now = _to_text(utcnow())
        cursor = self.db.write(
            """
            INSERT INTO repositories
                (url, owner, name, description, language, stars, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (url, owner, name, description, language, stars, now, now),
        )
        # lastrowid is guaranteed non-None after INSERT
        assert cursor.lastrowid is not None
        repository = self.get_repository(cursor.lastrowid)
        assert repository is not None
        return repository

    def update_repository(self, repository_id: int, **kwargs: Any) -> None:
        """Update repository fields. Only updates fields that are provided."""
        allowed_fields = {"description", "language", "stars", "analyzed_at"}
        self._update("repositories", repository_id, allowed_fields, kwargs, touch=True)

    def list_recent_repositories(self, limit: int = 10) -> list[Repository]:
        """List analyzed repositories, most recently analyzed first."""
        rows = self.db.fetchall(
            """
            SELECT * FROM repositories
            WHERE analyzed_at IS NOT NULL
            ORDER BY analyzed_at DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [self._row_to_repository(row) for row in rows]

    # -------------------------------------------------------------------------
    # Analysis jobs
    # -------------------------------------------------------------------------

    def _row_to_job(self, row: sqlite3.Row) -> AnalysisJob:
        return AnalysisJob(
            id=row["id"],
            repository_id=row["repository_id"],
            status=JobStatus(row["status"]),
            progress=row["progress"],
            result=json.loads(row["result"]) if row["result"] else None,
            error_message=row["error_message"],
            started_at=_to_datetime(row["started_at"]),
            completed_at=_to_datetime(row["completed_at"]),
            created_at=_to_datetime(row["created_at"]),
        )

    def insert_job(self, repository_id: int) -> AnalysisJob:
        """Create a pending job for a repository."""
        job_id = str(uuid.uuid4())
        self.db.write(
            """
            INSERT INTO analysis_jobs (id, repository_id, status, progress, created_at)
            VALUES (?, ?, ?, 0, ?)
            """,
            (job_id, repository_id, JobStatus.PENDING.value, _to_text(utcnow())),
        )
        job = self.get_job(job_id)
        assert job is not None
        return job

    def get_job(self, job_id: str) -> Optional[AnalysisJob]:
        """Get a job by ID. Returns None if not found."""
        row = self.db.fetchone("SELECT * FROM analysis_jobs WHERE id = ?", (job_id,))
        return self._row_to_job(row) if row else None

    def update_job(self, job_id: str, **kwargs: Any) -> None:
        """Update job fields. Only updates fields that are provided."""
        allowed_fields = {
            "status",
            "progress",
            "result",
            "error_message",
            "started_at",
            "completed_at",
        }
        self._update("analysis_jobs", job_id, allowed_fields, kwargs, touch=False)

    def fail_unfinished_jobs(self, error_message: str) -> int:
        """Mark every pending or in-progress job as failed.

        Returns:
            Number of jobs updated.
        """
        cursor = self.db.write(
            """
            UPDATE analysis_jobs
            SET status = ?, error_message = ?, completed_at = ?
            WHERE status IN (?, ?)
            """,
            (
                JobStatus.FAILED.value,
                error_message,
                _to_text(utcnow()),
                JobStatus.PENDING.value,
                JobStatus.IN_PROGRESS.value,
            ),
        )
        return cursor.rowcount if cursor.rowcount else 0

    # -------------------------------------------------------------------------
    # Subsystems
    # -------------------------------------------------------------------------

    def _row_to_subsystem(self, row: sqlite3.Row) -> Subsystem:
        return Subsystem(
            id=row["id"],
            repository_id=row["repository_id"],
            name=row["name"],
            description=row["description"],
            type=row["type"],
            complexity=row["complexity"],
            files=json.loads(row["files"]),
            entry_points=json.loads(row["entry_points"]),
            dependencies=json.loads(row["dependencies"]),
            created_at=_to_datetime(row["created_at"]),
            updated_at=_to_datetime(row["updated_at"]),
        )

    def get_subsystem(self, subsystem_id: int) -> Optional[Subsystem]:
        row = self.db.fetchone("SELECT * FROM subsystems WHERE id = ?", (subsystem_id,))
        return self._row_to_subsystem(row) if row else None

    def list_subsystems(self, repository_id: int) -> list[Subsystem]:
        """List a repository's subsystems in insertion order."""
        rows = self.db.fetchall(
            "SELECT * FROM subsystems WHERE repository_id = ? ORDER BY id",
            (repository_id,),
        )
        return [self._row_to_subsystem(row) for row in rows]

    def insert_subsystem(
        self,
        repository_id: int,
        name: str,
        description: str,
        type: str,
        complexity: str,
        files: list[str],
        entry_points: list[str],
        dependencies: list[str],
    ) -> Subsystem:
        """Insert a newly classified subsystem."""
        now = _to_text(utcnow())
        cursor = self.db.write(
            """
            INSERT INTO subsystems
                (repository_id, name, description, type, files, entry_points,
                 dependencies, complexity, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                repository_id,
                name,
                description,
                type,
                json.dumps(files),
                json.dumps(entry_points),
                json.dumps(dependencies),
                complexity,
                now,
                now,
            ),
        )
        assert cursor.lastrowid is not None
        subsystem = self.get_subsystem(cursor.lastrowid)
        assert subsystem is not None
        return subsystem

    def update_subsystem(self, subsystem_id: int, **kwargs: Any) -> None:
        """Update subsystem fields in place. Only updates fields that are provided."""
        allowed_fields = {
            "description",
            "type",
            "files",
            "entry_points",
            "dependencies",
            "complexity",
        }
        self._update("subsystems", subsystem_id, allowed_fields, kwargs, touch=True)

    # -------------------------------------------------------------------------
    # Wiki pages
    # -------------------------------------------------------------------------

    def _row_to_page(self, row: sqlite3.Row) -> WikiPage:
        return WikiPage(
            id=row["id"],
            subsystem_id=row["subsystem_id"],
            title=row["title"],
            content=row["content"],
            citations=[Citation.model_validate(c) for c in json.loads(row["citations"])],
            table_of_contents=[
                TableOfContentsItem.model_validate(item)
                for item in json.loads(row["table_of_contents"])
            ],
            created_at=_to_datetime(row["created_at"]),
            updated_at=_to_datetime(row["updated_at"]),
        )

    def get_page_for_subsystem(self, subsystem_id: int) -> Optional[WikiPage]:
        row = self.db.fetchone("SELECT * FROM wiki_pages WHERE subsystem_id = ?", (subsystem_id,))
        return self._row_to_page(row) if row else None

    def list_pages(self, repository_id: int) -> list[WikiPage]:
        """List every page belonging to a repository's subsystems."""
        rows = self.db.fetchall(
            """
            SELECT p.* FROM wiki_pages p
            JOIN subsystems s ON s.id = p.subsystem_id
            WHERE s.repository_id = ?
            ORDER BY s.id
            """,
            (repository_id,),
        )
        return [self._row_to_page(row) for row in rows]

    def insert_page(
        self,
        subsystem_id: int,
        title: str,
        content: str,
        citations: list[Citation],
        table_of_contents: list[TableOfContentsItem],
    ) -> WikiPage:
        """Insert the page for a subsystem that has none yet."""
        now = _to_text(utcnow())
        self.db.write(
            """
            INSERT INTO wiki_pages
                (subsystem_id, title, content, citations, table_of_contents,
                 created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                subsystem_id,
                title,
                content,
                _dump_models(citations),
                _dump_models(table_of_contents),
                now,
                now,
            ),
        )
        page = self.get_page_for_subsystem(subsystem_id)
        assert page is not None
        return page

    def update_page(self, page_id: int, **kwargs: Any) -> None:
        """Update page fields in place. Only updates fields that are provided."""
        allowed_fields = {"title", "content", "citations", "table_of_contents"}
        self._update("wiki_pages", page_id, allowed_fields, kwargs, touch=True)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _update(
        self,
        table: str,
        row_id: int | str,
        allowed_fields: set[str],
        values: dict[str, Any],
        touch: bool,
    ) -> None:
        """Apply a whitelisted single-row UPDATE."""
        unknown = set(values) - allowed_fields
        if unknown:
            raise ValueError(f"Cannot update {table} fields: {', '.join(sorted(unknown))}")
        if not values:
            return

        columns = dict(values)
        if touch:
            columns["updated_at"] = utcnow()

        assignments = ", ".join(f"{name} = ?" for name in columns)
        params = tuple(_to_column_value(value) for value in columns.values())
        self.db.write(f"UPDATE {table} SET {assignments} WHERE id = ?", params + (row_id,))


def _dump_models(items: list) -> str:
    return json.dumps([item.model_dump(mode="json") for item in items])


def _to_column_value(value: Any) -> Any:
    """Convert Python values to their stored representation."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, JobStatus):
        return value.value
    if isinstance(value, list):
        if value and hasattr(value[0], "model_dump"):
            return _dump_models(value)
        return json.dumps(value)
    if isinstance(value, dict):
        return json.dumps(value)
    return value
