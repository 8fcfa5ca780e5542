"""FastAPI dependency injection functions."""

from functools import lru_cache

from repowiki.config import Config, load_settings
from repowiki.db.connection import Database
from repowiki.db.migrations import run_migrations
from repowiki.db.store import WikiStore
from repowiki.generation.analyzer import SubsystemAnalyzer
from repowiki.generation.orchestrator import AnalysisOrchestrator
from repowiki.generation.wiki_page import WikiPageGenerator
from repowiki.llm.client import LLMClient
from repowiki.repo.github import GitHubSource


@lru_cache
def get_settings() -> Config:
    """Get cached application settings."""
    return load_settings()


_db_instance: Database | None = None


def get_db() -> Database:
    """Get database connection with migrations applied."""
    global _db_instance
    if _db_instance is None:
        settings = get_settings()
        _db_instance = Database(settings.db_path)
        run_migrations(_db_instance)
    return _db_instance


def _reset_db_instance() -> None:
    """Reset database instance (for testing only)."""
    global _db_instance
    if _db_instance is not None:
        _db_instance.close()
        _db_instance = None


def get_store() -> WikiStore:
    """Get the persistence gateway over the shared connection."""
    return WikiStore(get_db())


_llm_instance: LLMClient | None = None


def get_llm() -> LLMClient:
    """Get LLM client instance."""
    global _llm_instance
    if _llm_instance is None:
        settings = get_settings()
        _llm_instance = LLMClient(
            provider=settings.llm_provider,
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            endpoint=settings.llm_endpoint,
            log_path=settings.llm_log_path,
            timeout=settings.llm.timeout_seconds,
            max_tokens=settings.llm.max_tokens,
            default_temperature=settings.llm.default_temperature,
            json_temperature=settings.llm.json_temperature,
        )
    return _llm_instance


def _reset_llm_instance() -> None:
    """Reset LLM client instance (for testing only)."""
    global _llm_instance
    _llm_instance = None


def get_github_source() -> GitHubSource:
    """Get a GitHub source configured from settings."""
    settings = get_settings()
    return GitHubSource(
        token=settings.github_token,
        api_url=settings.github.api_url,
        timeout=settings.github.timeout_seconds,
    )


def get_orchestrator() -> AnalysisOrchestrator:
    """Assemble the orchestrator and its collaborators from settings."""
    settings = get_settings()
    source = get_github_source()
    llm = get_llm()

    analyzer = SubsystemAnalyzer(
        source,
        llm,
        max_outline_files=settings.analysis.max_outline_files,
        key_file_scan_limit=settings.analysis.key_file_scan_limit,
        key_file_max_chars=settings.analysis.key_file_max_chars,
        key_file_excerpt_chars=settings.analysis.key_file_excerpt_chars,
        max_key_files=settings.analysis.max_key_files,
        temperature=settings.analysis.temperature,
        max_tokens=settings.analysis.max_tokens,
        placeholder_fallback=settings.analysis.placeholder_fallback,
    )
    page_generator = WikiPageGenerator(
        source,
        llm,
        max_candidate_files=settings.wiki.max_candidate_files,
        max_files=settings.wiki.max_files,
        max_file_lines=settings.wiki.max_file_lines,
        max_file_chars=settings.wiki.max_file_chars,
        max_path_length=settings.wiki.max_path_length,
        excerpt_chars=settings.wiki.excerpt_chars,
        temperature=settings.wiki.temperature,
        max_tokens=settings.wiki.max_tokens,
    )
    return AnalysisOrchestrator(
        store=get_store(),
        source=source,
        analyzer=analyzer,
        page_generator=page_generator,
        parallel_limit=settings.wiki.parallel_limit,
    )
