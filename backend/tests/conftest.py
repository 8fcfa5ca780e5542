"""Shared pytest fixtures for all tests.

These fixtures properly clean up resources to prevent file descriptor leaks.
"""

import gc
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from repowiki.api.deps import get_orchestrator
from repowiki.db.connection import Database
from repowiki.db.migrations import run_migrations
from repowiki.db.store import WikiStore
from repowiki.generation.analyzer import SubsystemAnalyzer
from repowiki.generation.orchestrator import AnalysisOrchestrator
from repowiki.generation.schemas import ClassificationResponse, WikiContent
from repowiki.generation.wiki_page import WikiPageGenerator
from repowiki.main import app
from repowiki.repo.github import GitHubNotFoundError, RepoFile, RepoMetadata


class FakeSource:
    """In-memory stand-in for GitHubSource.

    Files are given as a path -> content mapping. Paths listed in
    ``failing`` raise the associated exception when read.
    """

    def __init__(
        self,
        files: dict[str, str] | None = None,
        failing: dict[str, Exception] | None = None,
        metadata: RepoMetadata | None = None,
    ):
        self.files = dict(files or {})
        self.failing = dict(failing or {})
        self.metadata = metadata
        self.reads: list[str] = []

    async def get_repository_metadata(self, owner: str, repo: str) -> RepoMetadata:
        if self.metadata is not None:
            return self.metadata
        return RepoMetadata(
            owner=owner,
            name=repo,
            html_url=f"https://github.com/{owner}/{repo}",
            description="A test repository",
            language="Python",
            stars=42,
        )

    async def list_files(self, owner: str, repo: str) -> list[RepoFile]:
        paths = list(self.files) + [p for p in self.failing if p not in self.files]
        return [RepoFile(path=p, size=len(self.files.get(p, ""))) for p in paths]

    async def get_file_content(self, owner: str, repo: str, path: str) -> str:
        self.reads.append(path)
        if path in self.failing:
            raise self.failing[path]
        if path not in self.files:
            raise GitHubNotFoundError(f"Not found on GitHub: {path}")
        return self.files[path]


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Clean up resources after each test to prevent file descriptor leaks."""
    yield
    gc.collect()


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary migrated database that cleans up properly."""
    db = Database(tmp_path / "test.db")
    run_migrations(db)
    yield db
    db.close()
    gc.collect()


@pytest.fixture
def store(temp_db):
    """Persistence gateway over the temporary database."""
    return WikiStore(temp_db)


@pytest.fixture
def make_source():
    """Factory for FakeSource instances."""
    return FakeSource


@pytest.fixture
def fake_source():
    """Fake repository source with a small Python project."""
    return FakeSource(
        files={
            "README.md": "# Demo\n\nA demo project.\n",
            "pyproject.toml": '[project]\nname = "demo"\n',
            "src/demo/cli.py": "import click\n\n\ndef main():\n    pass\n",
            "src/demo/api.py": "class Router:\n    pass\n\n\ndef route():\n    pass\n",
            "src/demo/db.py": "def connect():\n    return None\n",
            "node_modules/pkg/index.js": "module.exports = {}\n",
        }
    )


CLASSIFICATION = {
    "summary": "A demo command line tool with an HTTP API.",
    "subsystems": [
        {
            "name": "CLI",
            "description": "Command line entry point",
            "type": "cli",
            "files": ["src/demo/cli.py"],
            "entryPoints": ["src/demo/cli.py"],
            "dependencies": ["click"],
            "complexity": "low",
        },
        {
            "name": "API",
            "description": "HTTP routing",
            "type": "api",
            "files": ["src/demo/api.py", "src/demo/ghost.py"],
            "entryPoints": [],
            "dependencies": [],
            "complexity": "Medium",
        },
        {
            "name": "Storage",
            "description": "Database access",
            "type": "infrastructure",
            "files": ["src/demo/db.py"],
            "entryPoints": [],
            "dependencies": [],
            "complexity": "low",
        },
    ],
}


async def _stub_completion(prompt, system_prompt=None, response_model=None, **kwargs):
    if response_model is ClassificationResponse:
        return ClassificationResponse.model_validate(CLASSIFICATION)
    return WikiContent.model_validate(
        {
            "title": "Subsystem overview",
            "content": "## Overview\nSee the entry point [1].",
            "citations": [
                {"text": "entry", "file": "src/demo/api.py", "startLine": 1, "endLine": 2},
            ],
            "tableOfContents": [{"title": "Overview", "anchor": "overview", "level": 2}],
        }
    )


@pytest.fixture
def stub_llm():
    """LLM stand-in answering classification and page prompts with fixed content."""
    llm = MagicMock()
    llm.complete = AsyncMock(side_effect=_stub_completion)
    return llm


@pytest.fixture
def api_orchestrator(store, fake_source, stub_llm):
    """Orchestrator wired to the temporary store, fake source and stub LLM."""
    return AnalysisOrchestrator(
        store,
        fake_source,
        SubsystemAnalyzer(fake_source, stub_llm),
        WikiPageGenerator(fake_source, stub_llm),
    )


@pytest.fixture
async def api_client(api_orchestrator):
    """Async test client with the orchestrator dependency overridden."""
    app.dependency_overrides[get_orchestrator] = lambda: api_orchestrator
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
