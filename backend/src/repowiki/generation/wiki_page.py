"""Per-subsystem wiki page generation with locally resolved citations."""

import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from repowiki.constants import wiki as defaults
from repowiki.db.models import Subsystem
from repowiki.generation.analyzer import normalize_path
from repowiki.generation.prompts import WIKI_SYSTEM_PROMPT, get_wiki_prompt
from repowiki.generation.schemas import Citation, WikiContent
from repowiki.llm.client import LLMClient
from repowiki.repo.github import GitHubError, GitHubSource, build_blob_url

logger = logging.getLogger(__name__)

SUMMARY_SCAN_LINES = 50
SUMMARY_NAMES_PER_KIND = 5

CLASS_PATTERN = re.compile(r"\bclass\s+([A-Z][A-Za-z0-9_]*)")
FUNCTION_PATTERN = re.compile(r"\b(?:function|def|fn|func)\s+([A-Za-z_][A-Za-z0-9_]*)")
EXPORT_PATTERN = re.compile(
    r"\bexport\s+(?:default\s+)?(?:class|function|const|let|var|interface|type)\s+"
    r"([A-Za-z_][A-Za-z0-9_]*)"
)
WILDCARD_CHARS = set("*?[]{}")


class WikiGenerationError(Exception):
    """Raised when a page cannot be generated for a subsystem."""


@dataclass
class GatheredFile:
    """Source file content collected for a page prompt."""

    path: str
    content: str
    line_count: int
    summary: str


def is_usable_path(path: str, max_length: int = defaults.MAX_PATH_LENGTH) -> bool:
    """Reject empty, absolute, wildcard, parent-traversal and over-long paths."""
    if not path or len(path) > max_length:
        return False
    if path.startswith("/") or any(char in WILDCARD_CHARS for char in path):
        return False
    return ".." not in path.split("/")


def summarize_file(path: str, content: str) -> str:
    """Describe a file from its name and the definitions near its top."""
    name = PurePosixPath(path).name
    suffix = PurePosixPath(name).suffix.lower()

    if suffix in (".md", ".txt"):
        return f"Documentation file: {name}"
    if suffix == ".json":
        if "package" in name:
            return "Package configuration and dependencies"
        return f"Configuration file: {name}"

    head = "\n".join(content.splitlines()[:SUMMARY_SCAN_LINES])
    parts = []
    for label, pattern in (
        ("exports", EXPORT_PATTERN),
        ("classes", CLASS_PATTERN),
        ("functions", FUNCTION_PATTERN),
    ):
        names = list(dict.fromkeys(pattern.findall(head)))[:SUMMARY_NAMES_PER_KIND]
        if names:
            parts.append(f"{label}: {', '.join(names)}")

    return "; ".join(parts) if parts else f"Source file: {name}"


class WikiPageGenerator:
    """Generates the wiki page for one subsystem."""

    def __init__(
        self,
        source: GitHubSource,
        llm: LLMClient,
        max_candidate_files: int = defaults.MAX_CANDIDATE_FILES,
        max_files: int = defaults.MAX_FILES,
        max_file_lines: int = defaults.MAX_FILE_LINES,
        max_file_chars: int = defaults.MAX_FILE_CHARS,
        max_path_length: int = defaults.MAX_PATH_LENGTH,
        excerpt_chars: int = defaults.EXCERPT_CHARS,
        temperature: float = defaults.WIKI_TEMPERATURE,
        max_tokens: int = defaults.WIKI_MAX_TOKENS,
    ):
        self.source = source
        self.llm = llm
        self.max_candidate_files = max_candidate_files
        self.max_files = max_files
        self.max_file_lines = max_file_lines
        self.max_file_chars = max_file_chars
        self.max_path_length = max_path_length
        self.excerpt_chars = excerpt_chars
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(self, subsystem: Subsystem, owner: str, repo: str) -> WikiContent:
        """Generate a page for a subsystem.

        Args:
            subsystem: Subsystem to document.
            owner: Repository owner.
            repo: Repository name.

        Returns:
            WikiContent whose citations all point at gathered files, with URLs
            built from the repository coordinates.

        Raises:
            WikiGenerationError: If none of the subsystem's files could be read.
            LLMMalformedResponseError: If the response does not match the page schema.
            LLMError: For transport failures talking to the LLM.
        """
        candidates = self.select_candidates(subsystem)
        gathered = await self._gather_files(owner, repo, candidates)
        if not gathered:
            raise WikiGenerationError(
                f"No source files could be read for subsystem '{subsystem.name}'"
            )

        excerpts = {f.path: f.content[: self.excerpt_chars] for f in gathered}
        prompt = get_wiki_prompt(
            owner=owner,
            repo=repo,
            name=subsystem.name,
            description=subsystem.description,
            type=subsystem.type,
            complexity=subsystem.complexity,
            entry_points=subsystem.entry_points,
            dependencies=subsystem.dependencies,
            files=[
                (f.path, excerpts[f.path], f.line_count, f.summary)
                for f in gathered
            ],
        )

        page = await self.llm.complete(
            prompt,
            system_prompt=WIKI_SYSTEM_PROMPT,
            response_model=WikiContent,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        # Only lines the model was shown can be cited.
        visible_lines = {path: len(excerpt.splitlines()) for path, excerpt in excerpts.items()}
        citations = self._resolve_citations(page.citations, visible_lines, owner, repo)
        logger.info(
            f"Generated page '{page.title}' for {subsystem.name}: "
            f"{len(gathered)} files, {len(citations)} citations"
        )
        return page.model_copy(update={"citations": citations})

    def select_candidates(self, subsystem: Subsystem) -> list[str]:
        """Entry points first, then files, deduplicated and bounded."""
        candidates: list[str] = []
        for raw in [*subsystem.entry_points, *subsystem.files]:
            path = normalize_path(raw)
            if not is_usable_path(path, self.max_path_length):
                logger.debug(f"Skipping unusable path {raw!r} in {subsystem.name}")
                continue
            if path in candidates:
                continue
            candidates.append(path)
            if len(candidates) >= self.max_candidate_files:
                break
        return candidates

    async def _gather_files(self, owner: str, repo: str, paths: list[str]) -> list[GatheredFile]:
        gathered: list[GatheredFile] = []

        for path in paths:
            if len(gathered) >= self.max_files:
                break

            try:
                content = await self.source.get_file_content(owner, repo, path)
            except GitHubError as e:
                logger.warning(f"Could not fetch {path} for wiki page: {e}")
                continue

            line_count = len(content.splitlines())
            if line_count > self.max_file_lines or len(content) > self.max_file_chars:
                logger.info(f"Skipping {path}: {line_count} lines, {len(content)} chars")
                continue

            gathered.append(
                GatheredFile(
                    path=path,
                    content=content,
                    line_count=line_count,
                    summary=summarize_file(path, content),
                )
            )

        return gathered

    def _resolve_citations(
        self,
        citations: list[Citation],
        line_counts: dict[str, int],
        owner: str,
        repo: str,
    ) -> list[Citation]:
        """Keep citations to lines the model was shown and derive their URLs."""
        resolved: list[Citation] = []

        for citation in citations:
            path = normalize_path(citation.file)
            line_count = line_counts.get(path)
            if line_count is None:
                logger.warning(f"Dropping citation to file that was not provided: {citation.file}")
                continue
            if citation.start_line > line_count:
                logger.warning(
                    f"Dropping citation {path}:{citation.start_line} beyond the "
                    f"{line_count} lines shown"
                )
                continue

            end_line = min(citation.end_line, line_count)
            start_line = citation.start_line
            if start_line == 0 and end_line > 0:
                start_line = 1

            resolved.append(
                citation.model_copy(
                    update={
                        "file": path,
                        "start_line": start_line,
                        "end_line": end_line,
                        "url": build_blob_url(owner, repo, path, start_line, end_line),
                    }
                )
            )

        return resolved
