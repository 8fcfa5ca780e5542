"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from repowiki.db.models import Repository, Subsystem, WikiPage
from repowiki.generation.schemas import Citation, TableOfContentsItem


class AnalyzeRequest(BaseModel):
    """Request to analyze a GitHub repository."""

    url: str = Field(..., description="GitHub repository URL, e.g. https://github.com/owner/repo")


class AnalysisStarted(BaseModel):
    """Analysis job creation response."""

    job_id: str
    repository_id: int
    status: str = "pending"
    message: str = "Analysis started"


class JobStatusResponse(BaseModel):
    """Analysis job status response."""

    job_id: str
    repository_id: int
    repository_name: str | None = None
    status: str
    progress: int
    result: dict[str, Any] | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None


class WikiGenerationStarted(BaseModel):
    """Wiki generation trigger response."""

    repository_id: int
    subsystem_count: int
    force: bool = False
    message: str = "Wiki generation started"


class RepositoryInfo(BaseModel):
    """Repository metadata."""

    id: int
    url: str
    owner: str
    name: str
    description: str | None = None
    language: str | None = None
    stars: int = 0
    analyzed_at: datetime | None = None

    @classmethod
    def from_record(cls, record: Repository) -> "RepositoryInfo":
        return cls(
            id=record.id,
            url=record.url,
            owner=record.owner,
            name=record.name,
            description=record.description,
            language=record.language,
            stars=record.stars,
            analyzed_at=record.analyzed_at,
        )


class SubsystemInfo(BaseModel):
    """A classified subsystem."""

    id: int
    name: str
    description: str
    type: str
    complexity: str
    files: list[str]
    entry_points: list[str]
    dependencies: list[str]
    has_page: bool = False

    @classmethod
    def from_record(cls, record: Subsystem, has_page: bool = False) -> "SubsystemInfo":
        return cls(
            id=record.id,
            name=record.name,
            description=record.description,
            type=record.type,
            complexity=record.complexity,
            files=record.files,
            entry_points=record.entry_points,
            dependencies=record.dependencies,
            has_page=has_page,
        )


class WikiPageInfo(BaseModel):
    """A generated wiki page."""

    id: int
    subsystem_id: int
    title: str
    content: str
    citations: list[Citation]
    table_of_contents: list[TableOfContentsItem]
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: WikiPage) -> "WikiPageInfo":
        return cls(
            id=record.id,
            subsystem_id=record.subsystem_id,
            title=record.title,
            content=record.content,
            citations=record.citations,
            table_of_contents=record.table_of_contents,
            updated_at=record.updated_at,
        )


class WikiResponse(BaseModel):
    """A repository's subsystems and pages."""

    repository: RepositoryInfo
    subsystems: list[SubsystemInfo]
    pages: list[WikiPageInfo]
    has_wiki: bool


class WikiPageResponse(BaseModel):
    """One page with its subsystem and repository."""

    repository: RepositoryInfo
    subsystem: SubsystemInfo
    page: WikiPageInfo
