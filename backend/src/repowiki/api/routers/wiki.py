"""Wiki generation and retrieval endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from repowiki.api.deps import get_orchestrator
from repowiki.api.schemas import (
    RepositoryInfo,
    SubsystemInfo,
    WikiGenerationStarted,
    WikiPageInfo,
    WikiPageResponse,
    WikiResponse,
)
from repowiki.generation.orchestrator import (
    AnalysisOrchestrator,
    NoSubsystemsError,
    PageNotFoundError,
    RepositoryNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wiki", tags=["wiki"])


@router.post("/generate/{repository_id}", response_model=WikiGenerationStarted, status_code=202)
async def generate_wiki(
    repository_id: int,
    background_tasks: BackgroundTasks,
    force: bool = False,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> WikiGenerationStarted:
    """Generate wiki pages for an analyzed repository in the background."""
    try:
        _, subsystems = orchestrator.wiki_subsystems(repository_id)
    except (RepositoryNotFoundError, NoSubsystemsError) as e:
        raise HTTPException(status_code=404, detail=str(e))

    background_tasks.add_task(_run_wiki_generation, orchestrator, repository_id, force)

    return WikiGenerationStarted(
        repository_id=repository_id,
        subsystem_count=len(subsystems),
        force=force,
    )


@router.get("/{repository_id}", response_model=WikiResponse)
async def get_wiki(
    repository_id: int,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> WikiResponse:
    """Get a repository's subsystems and generated pages."""
    try:
        wiki = orchestrator.get_wiki(repository_id)
    except RepositoryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    documented = {page.subsystem_id for page in wiki.pages}
    return WikiResponse(
        repository=RepositoryInfo.from_record(wiki.repository),
        subsystems=[SubsystemInfo.from_record(s, s.id in documented) for s in wiki.subsystems],
        pages=[WikiPageInfo.from_record(page) for page in wiki.pages],
        has_wiki=wiki.has_wiki,
    )


@router.get("/{repository_id}/pages/{subsystem_id}", response_model=WikiPageResponse)
async def get_wiki_page(
    repository_id: int,
    subsystem_id: int,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> WikiPageResponse:
    """Get the wiki page for one subsystem."""
    try:
        view = orchestrator.get_wiki_page(repository_id, subsystem_id)
    except (RepositoryNotFoundError, PageNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))

    return WikiPageResponse(
        repository=RepositoryInfo.from_record(view.repository),
        subsystem=SubsystemInfo.from_record(view.subsystem, has_page=True),
        page=WikiPageInfo.from_record(view.page),
    )


async def _run_wiki_generation(
    orchestrator: AnalysisOrchestrator, repository_id: int, force: bool
) -> None:
    """Run wiki generation in the background."""
    try:
        await orchestrator.generate_wiki(repository_id, force=force)
    except Exception as e:
        logger.error(f"Background wiki generation for repository {repository_id} failed: {e}")
