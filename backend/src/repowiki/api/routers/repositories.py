"""Repository listing endpoints."""

from fastapi import APIRouter, Depends, Query

from repowiki.api.deps import get_orchestrator
from repowiki.api.schemas import RepositoryInfo
from repowiki.generation.orchestrator import AnalysisOrchestrator

router = APIRouter(prefix="/api/repositories", tags=["repositories"])


@router.get("/recent", response_model=list[RepositoryInfo])
async def list_recent_repositories(
    limit: int = Query(10, ge=1, le=100),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> list[RepositoryInfo]:
    """List the most recently analyzed repositories."""
    return [
        RepositoryInfo.from_record(record)
        for record in orchestrator.list_recent_repositories(limit)
    ]
