"""Database layer for repowiki."""

from repowiki.db.connection import Database
from repowiki.db.migrations import run_migrations
from repowiki.db.models import AnalysisJob, JobStatus, Repository, Subsystem, WikiPage
from repowiki.db.store import WikiStore

__all__ = [
    "AnalysisJob",
    "Database",
    "JobStatus",
    "Repository",
    "Subsystem",
    "WikiPage",
    "WikiStore",
    "run_migrations",
]
