"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Logging constants defined here (not in constants/) because logging.basicConfig()
# must run before any module imports that might create loggers.
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(
    format=LOG_FORMAT,
    datefmt=DATE_FORMAT,
    level=logging.INFO,
)

# Unify uvicorn loggers with app format
for uvicorn_logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
    uvicorn_logger = logging.getLogger(uvicorn_logger_name)
    uvicorn_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    uvicorn_logger.addHandler(handler)

from repowiki.api.deps import get_orchestrator, get_settings  # noqa: E402
from repowiki.api.routers import analyze, repositories, wiki  # noqa: E402

logger = logging.getLogger(__name__)


def _cleanup_orphaned_jobs() -> int:
    """Mark any in-progress/pending jobs as failed on startup.

    Jobs can be left unfinished if the server was restarted during analysis.

    Returns:
        Number of jobs cleaned up.
    """
    try:
        return get_orchestrator().fail_interrupted_jobs()
    except Exception as e:
        logger.warning(f"Failed to cleanup orphaned jobs: {e}")
        return 0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan handler for startup and shutdown events.

    On startup:
    - Ensures the data directory exists
    - Fails jobs orphaned by a previous run
    """
    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Data directory: {settings.data_dir}")

    if not settings.github_token:
        logger.warning("GITHUB_TOKEN not set; GitHub API requests are limited to 60 per hour")

    cleaned = _cleanup_orphaned_jobs()
    if cleaned > 0:
        logger.info(f"Cleaned up {cleaned} orphaned job(s) from previous run")

    logger.info(f"repowiki started (LLM: {settings.llm_provider}/{settings.llm_model})")

    yield


app = FastAPI(
    title="repowiki",
    description="Subsystem analysis and cited wiki pages for GitHub repositories",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(analyze.router)
app.include_router(wiki.router)
app.include_router(repositories.router)
