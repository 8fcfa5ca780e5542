"""Repository analysis endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from repowiki.api.deps import get_orchestrator
from repowiki.api.schemas import AnalysisStarted, AnalyzeRequest, JobStatusResponse
from repowiki.generation.orchestrator import AnalysisOrchestrator, JobNotFoundError
from repowiki.repo.github import GitHubError, GitHubNotFoundError, GitHubRateLimitError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analyze", tags=["analyze"])


@router.post("", response_model=AnalysisStarted, status_code=202)
async def start_analysis(
    request: AnalyzeRequest,
    background_tasks: BackgroundTasks,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> AnalysisStarted:
    """Start analyzing a GitHub repository.

    Returns immediately with a job ID; poll GET /api/analyze/{job_id} for progress.
    """
    try:
        started = await orchestrator.start_analysis(request.url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GitHubNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Repository not found on GitHub: {e}")
    except GitHubRateLimitError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except GitHubError as e:
        raise HTTPException(status_code=502, detail=str(e))

    background_tasks.add_task(_run_analysis, orchestrator, started.job_id)

    return AnalysisStarted(job_id=started.job_id, repository_id=started.repository_id)


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_analysis_status(
    job_id: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> JobStatusResponse:
    """Get status and progress of an analysis job."""
    try:
        job = orchestrator.get_job_status(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")

    repository = orchestrator.store.get_repository(job.repository_id)

    return JobStatusResponse(
        job_id=job.id,
        repository_id=job.repository_id,
        repository_name=repository.full_name if repository else None,
        status=job.status.value,
        progress=job.progress,
        result=job.result,
        error_message=job.error_message,
        started_at=job.started_at,
        completed_at=job.completed_at,
        created_at=job.created_at,
    )


async def _run_analysis(orchestrator: AnalysisOrchestrator, job_id: str) -> None:
    """Run an analysis job in the background."""
    try:
        job = await orchestrator.run_job(job_id)
        logger.info(f"Background analysis {job_id} finished with status {job.status.value}")
    except Exception as e:
        logger.error(f"Background analysis {job_id} crashed: {e}")
