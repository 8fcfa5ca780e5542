"""Analysis job orchestrator.

This module provides the AnalysisOrchestrator class that drives one analysis
job through its lifecycle and then documents the resulting subsystems:

1. Discovery - List the repository tree and keep relevant files
2. Classification - Ask the LLM for subsystems and drop unknown paths
3. Persistence - Insert new subsystems, update existing ones by name
4. Completion - Stamp the repository and attach the job result
5. Wiki - Generate one page per subsystem, isolating failures

Job status only moves forward (pending -> in_progress -> completed | failed)
and the persisted progress percentage never decreases.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from repowiki.constants.wiki import PARALLEL_LIMIT
from repowiki.db.models import AnalysisJob, JobStatus, Repository, Subsystem, WikiPage
from repowiki.db.store import WikiStore, utcnow
from repowiki.generation.analyzer import SubsystemAnalyzer
from repowiki.generation.schemas import ClassifiedSubsystem
from repowiki.generation.wiki_page import WikiPageGenerator
from repowiki.repo.file_filter import filter_relevant
from repowiki.repo.github import GitHubSource
from repowiki.repo.url_parser import parse_repo_url

logger = logging.getLogger(__name__)


class OrchestratorError(Exception):
    """Base exception for orchestration failures."""


class RepositoryNotFoundError(OrchestratorError):
    """Raised when a repository ID is unknown."""


class JobNotFoundError(OrchestratorError):
    """Raised when a job ID is unknown."""


class PageNotFoundError(OrchestratorError):
    """Raised when a subsystem or its page does not exist."""


class NoSubsystemsError(OrchestratorError):
    """Raised when wiki generation is requested for a repository without subsystems."""


class InvalidJobTransitionError(OrchestratorError):
    """Raised when a status change would move a job backwards."""


class AnalysisPhase(Enum):
    """Phases of an analysis job, in order."""

    STARTED = "started"
    DISCOVERY = "discovery"
    CLASSIFICATION = "classification"
    PERSISTENCE = "persistence"
    COMPLETED = "completed"


# Progress percentage recorded once each phase has finished.
PHASE_PROGRESS = {
    AnalysisPhase.STARTED: 5,
    AnalysisPhase.DISCOVERY: 10,
    AnalysisPhase.CLASSIFICATION: 30,
    AnalysisPhase.PERSISTENCE: 70,
    AnalysisPhase.COMPLETED: 100,
}


@dataclass
class StartedAnalysis:
    """Identifiers returned when an analysis is requested."""

    job_id: str
    repository_id: int


@dataclass
class SubsystemOutcome:
    """Result of generating the page for one subsystem."""

    subsystem_id: int
    name: str
    status: str  # succeeded, failed, skipped
    error: str | None = None


@dataclass
class WikiGenerationResult:
    """Aggregate result of generating pages for a repository."""

    repository_id: int
    subsystem_count: int
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: list[SubsystemOutcome] = field(default_factory=list)


@dataclass
class WikiView:
    """A repository with its subsystems and generated pages."""

    repository: Repository
    subsystems: list[Subsystem]
    pages: list[WikiPage]

    @property
    def has_wiki(self) -> bool:
        return bool(self.pages)


@dataclass
class WikiPageView:
    """A single page with the subsystem it documents."""

    repository: Repository
    subsystem: Subsystem
    page: WikiPage


class AnalysisOrchestrator:
    """Runs analysis jobs and wiki generation against the persistence gateway."""

    def __init__(
        self,
        store: WikiStore,
        source: GitHubSource,
        analyzer: SubsystemAnalyzer,
        page_generator: WikiPageGenerator,
        parallel_limit: int = PARALLEL_LIMIT,
    ):
        """Initialize the orchestrator.

        Args:
            store: Persistence gateway.
            source: Repository source for metadata and file listings.
            analyzer: Subsystem classifier.
            page_generator: Per-subsystem page generator.
            parallel_limit: Concurrent page generations (1 means strictly sequential).
        """
        self.store = store
        self.source = source
        self.analyzer = analyzer
        self.page_generator = page_generator
        self.parallel_limit = max(1, parallel_limit)

    # =========================================================================
    # Analysis jobs
    # =========================================================================

    async def start_analysis(self, repository_url: str) -> StartedAnalysis:
        """Register a repository (if new) and create a pending job for it.

        Re-submitting a URL reuses the existing repository row but always
        creates a new job.

        Raises:
            ValueError: If the URL is not a GitHub repository URL.
            GitHubError: If metadata for a new repository cannot be fetched.
        """
        parsed = parse_repo_url(repository_url)
        repository = self.store.get_repository_by_url(parsed.canonical_url)

        if repository is None:
            metadata = await self.source.get_repository_metadata(parsed.owner, parsed.repo)
            repository = self.store.insert_repository(
                url=parsed.canonical_url,
                owner=metadata.owner,
                name=metadata.name,
                description=metadata.description,
                language=metadata.language,
                stars=metadata.stars,
            )
            logger.info(f"Registered repository {repository.full_name} (id={repository.id})")

        job = self.store.insert_job(repository.id)
        logger.info(f"Created analysis job {job.id} for {repository.full_name}")
        return StartedAnalysis(job_id=job.id, repository_id=repository.id)

    async def run_job(self, job_id: str) -> AnalysisJob:
        """Drive a job to a terminal state, then trigger wiki generation.

        Re-running a job that already finished is a no-op.

        Returns:
            The job as persisted after the run.

        Raises:
            JobNotFoundError: If the job does not exist.
        """
        job = self.get_job_status(job_id)
        if job.status.is_terminal:
            logger.info(f"Job {job_id} already {job.status.value}; nothing to do")
            return job

        repository = self.store.get_repository(job.repository_id)
        if repository is None:
            self._fail_job(job_id, f"Repository {job.repository_id} not found")
            return self.get_job_status(job_id)

        self._transition(
            job_id,
            JobStatus.IN_PROGRESS,
            AnalysisPhase.STARTED,
            started_at=job.started_at or utcnow(),
        )
        is_reanalysis = repository.analyzed_at is not None

        try:
            result = await self._analyze(job_id, repository, is_reanalysis)
        except Exception as e:
            logger.error(f"Analysis job {job_id} for {repository.full_name} failed: {e}")
            self._fail_job(job_id, str(e))
            return self.get_job_status(job_id)

        self._transition(
            job_id,
            JobStatus.COMPLETED,
            AnalysisPhase.COMPLETED,
            result=result,
            completed_at=utcnow(),
        )
        logger.info(
            f"Analysis job {job_id} completed: {result['subsystem_count']} subsystems "
            f"for {repository.full_name}"
        )

        try:
            await self.generate_wiki(repository.id, force=is_reanalysis)
        except Exception as e:
            logger.error(f"Wiki generation after job {job_id} failed: {e}")

        return self.get_job_status(job_id)

    async def _analyze(
        self, job_id: str, repository: Repository, is_reanalysis: bool
    ) -> dict[str, Any]:
        """Run discovery, classification and persistence for a job."""
        listing = await self.source.list_files(repository.owner, repository.name)
        files = filter_relevant(entry.path for entry in listing)
        if not files:
            raise OrchestratorError(f"No relevant files found in {repository.full_name}")
        logger.info(f"{repository.full_name}: {len(files)} of {len(listing)} files are relevant")
        self._transition(job_id, JobStatus.IN_PROGRESS, AnalysisPhase.DISCOVERY)

        analysis = await self.analyzer.analyze(repository.owner, repository.name, files)
        self._transition(job_id, JobStatus.IN_PROGRESS, AnalysisPhase.CLASSIFICATION)

        self._store_subsystems(repository.id, analysis.subsystems, is_reanalysis)
        self.store.update_repository(repository.id, analyzed_at=utcnow())
        self._transition(job_id, JobStatus.IN_PROGRESS, AnalysisPhase.PERSISTENCE)

        return {
            "subsystem_count": len(analysis.subsystems),
            "summary": analysis.summary,
            "warnings": analysis.warnings,
        }

    def _store_subsystems(
        self,
        repository_id: int,
        subsystems: list[ClassifiedSubsystem],
        is_reanalysis: bool,
    ) -> None:
        """Insert classified subsystems, updating existing rows that share a name.

        Existing subsystems missing from the new classification are left as is.
        """
        existing = {s.name: s for s in self.store.list_subsystems(repository_id)}
        inserted = updated = 0

        for subsystem in subsystems:
            fields = {
                "description": subsystem.description,
                "type": subsystem.type,
                "files": subsystem.files,
                "entry_points": subsystem.entry_points,
                "dependencies": subsystem.dependencies,
                "complexity": subsystem.complexity,
            }
            match = existing.get(subsystem.name)
            if match is not None:
                self.store.update_subsystem(match.id, **fields)
                updated += 1
            else:
                self.store.insert_subsystem(repository_id, name=subsystem.name, **fields)
                inserted += 1

        kind = "Re-analysis" if is_reanalysis else "Analysis"
        logger.info(
            f"{kind} of repository {repository_id}: {inserted} subsystems inserted, "
            f"{updated} updated"
        )

    def _transition(
        self,
        job_id: str,
        target: JobStatus,
        phase: AnalysisPhase | None = None,
        **fields: Any,
    ) -> None:
        """Persist a status change, refusing to move the job backwards.

        Progress is held at its current value when a resumed job repeats an
        earlier phase.

        Raises:
            InvalidJobTransitionError: If the status would regress.
        """
        job = self.get_job_status(job_id)
        if not job.status.can_transition_to(target):
            raise InvalidJobTransitionError(
                f"Job {job_id} cannot move from {job.status.value} to {target.value}"
            )

        updates: dict[str, Any] = {"status": target, **fields}
        if phase is not None:
            updates["progress"] = max(job.progress, PHASE_PROGRESS[phase])

        self.store.update_job(job_id, **updates)

    def _fail_job(self, job_id: str, message: str) -> None:
        """Mark a job failed unless it already reached a terminal state."""
        job = self.get_job_status(job_id)
        if job.status.is_terminal:
            logger.warning(f"Job {job_id} already {job.status.value}; not marking failed")
            return
        self._transition(job_id, JobStatus.FAILED, error_message=message, completed_at=utcnow())

    def fail_interrupted_jobs(self) -> int:
        """Fail jobs left pending or in progress by a previous process."""
        return self.store.fail_unfinished_jobs("Interrupted by server restart")

    # =========================================================================
    # Wiki generation
    # =========================================================================

    def wiki_subsystems(self, repository_id: int) -> tuple[Repository, list[Subsystem]]:
        """Look up a repository and the subsystems to document.

        Raises:
            RepositoryNotFoundError: If the repository does not exist.
            NoSubsystemsError: If it has not been analyzed into subsystems.
        """
        repository = self.store.get_repository(repository_id)
        if repository is None:
            raise RepositoryNotFoundError(f"Repository not found: {repository_id}")

        subsystems = self.store.list_subsystems(repository_id)
        if not subsystems:
            raise NoSubsystemsError(f"No subsystems found for repository {repository_id}")

        return repository, subsystems

    async def generate_wiki(self, repository_id: int, force: bool = False) -> WikiGenerationResult:
        """Generate pages for a repository's subsystems.

        Without force, subsystems that already have a page are skipped. A failure
        for one subsystem is logged and recorded but never stops the others.

        Args:
            repository_id: Repository to document.
            force: Regenerate pages that already exist, updating them in place.

        Returns:
            WikiGenerationResult with per-subsystem outcomes and counts.
        """
        repository, subsystems = self.wiki_subsystems(repository_id)
        result = WikiGenerationResult(repository_id=repository_id, subsystem_count=len(subsystems))

        pending: list[Subsystem] = []
        for subsystem in subsystems:
            if not force and self.store.get_page_for_subsystem(subsystem.id) is not None:
                result.outcomes.append(
                    SubsystemOutcome(subsystem.id, subsystem.name, status="skipped")
                )
            else:
                pending.append(subsystem)

        if not pending:
            logger.info(f"Wiki for {repository.full_name} already exists; skipping generation")
            result.skipped = len(subsystems)
            return result

        logger.info(
            f"Generating {len(pending)} wiki page(s) for {repository.full_name} "
            f"(force={force}, parallel_limit={self.parallel_limit})"
        )

        if self.parallel_limit == 1:
            outcomes = [await self._generate_page(repository, s) for s in pending]
        else:
            semaphore = asyncio.Semaphore(self.parallel_limit)

            async def generate_limited(subsystem: Subsystem) -> SubsystemOutcome:
                async with semaphore:
                    return await self._generate_page(repository, subsystem)

            outcomes = list(await asyncio.gather(*(generate_limited(s) for s in pending)))

        result.outcomes.extend(outcomes)
        result.succeeded = sum(1 for o in result.outcomes if o.status == "succeeded")
        result.failed = sum(1 for o in result.outcomes if o.status == "failed")
        result.skipped = sum(1 for o in result.outcomes if o.status == "skipped")

        logger.info(
            f"Wiki generation for {repository.full_name}: {result.succeeded} succeeded, "
            f"{result.failed} failed, {result.skipped} skipped"
        )
        return result

    async def _generate_page(
        self, repository: Repository, subsystem: Subsystem
    ) -> SubsystemOutcome:
        """Generate and upsert the page for one subsystem, capturing any failure."""
        try:
            content = await self.page_generator.generate(
                subsystem, repository.owner, repository.name
            )
            existing = self.store.get_page_for_subsystem(subsystem.id)
            if existing is not None:
                self.store.update_page(
                    existing.id,
                    title=content.title,
                    content=content.content,
                    citations=content.citations,
                    table_of_contents=content.table_of_contents,
                )
            else:
                self.store.insert_page(
                    subsystem.id,
                    title=content.title,
                    content=content.content,
                    citations=content.citations,
                    table_of_contents=content.table_of_contents,
                )
        except Exception as e:
            logger.error(f"Wiki page for subsystem '{subsystem.name}' failed: {e}")
            return SubsystemOutcome(subsystem.id, subsystem.name, status="failed", error=str(e))

        return SubsystemOutcome(subsystem.id, subsystem.name, status="succeeded")

    # =========================================================================
    # Read side
    # =========================================================================

    def get_job_status(self, job_id: str) -> AnalysisJob:
        """Get a job by ID.

        Raises:
            JobNotFoundError: If the job does not exist.
        """
        job = self.store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job not found: {job_id}")
        return job

    def get_repository(self, repository_id: int) -> Repository:
        repository = self.store.get_repository(repository_id)
        if repository is None:
            raise RepositoryNotFoundError(f"Repository not found: {repository_id}")
        return repository

    def get_wiki(self, repository_id: int) -> WikiView:
        """Get a repository's subsystems and whatever pages exist for them."""
        repository = self.get_repository(repository_id)
        return WikiView(
            repository=repository,
            subsystems=self.store.list_subsystems(repository_id),
            pages=self.store.list_pages(repository_id),
        )

    def get_wiki_page(self, repository_id: int, subsystem_id: int) -> WikiPageView:
        """Get the page for one subsystem of a repository.

        Raises:
            RepositoryNotFoundError: If the repository does not exist.
            PageNotFoundError: If the subsystem is not part of the repository or has no page.
        """
        repository = self.get_repository(repository_id)
        subsystem = self.store.get_subsystem(subsystem_id)
        if subsystem is None or subsystem.repository_id != repository_id:
            raise PageNotFoundError(
                f"Subsystem {subsystem_id} not found in repository {repository_id}"
            )

        page = self.store.get_page_for_subsystem(subsystem_id)
        if page is None:
            raise PageNotFoundError(f"No wiki page for subsystem {subsystem_id}")

        return WikiPageView(repository=repository, subsystem=subsystem, page=page)

    def list_recent_repositories(self, limit: int = 10) -> list[Repository]:
        return self.store.list_recent_repositories(limit)
