"""Subsystem classification of a repository via the LLM."""

import logging
from dataclasses import dataclass, field

from repowiki.constants import analysis as defaults
from repowiki.generation.prompts import ANALYSIS_SYSTEM_PROMPT, get_analysis_prompt
from repowiki.generation.schemas import ClassificationResponse, ClassifiedSubsystem
from repowiki.llm.client import LLMClient, LLMMalformedResponseError
from repowiki.repo.file_filter import group_files_by_directory
from repowiki.repo.github import GitHubError, GitHubSource

logger = logging.getLogger(__name__)

PLACEHOLDER_FILE_LIMIT = 20


class SubsystemAnalysisError(Exception):
    """Raised when the LLM's classification cannot be used."""


@dataclass
class AnalysisResult:
    """Outcome of classifying a repository."""

    summary: str
    subsystems: list[ClassifiedSubsystem]
    warnings: list[str] = field(default_factory=list)


def normalize_path(path: str) -> str:
    """Strip a leading "./" or "/" so paths compare against the tree listing."""
    path = path.strip()
    if path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def is_key_file(path: str, max_depth: int = defaults.KEY_FILE_MAX_DEPTH) -> bool:
    """Whether a path looks like a manifest, README, config or entry point.

    Shallow paths (at most max_depth segments) always count.
    """
    lowered = path.lower()
    if any(pattern in lowered for pattern in defaults.KEY_FILE_PATTERNS):
        return True
    return len(path.split("/")) <= max_depth


def build_outline(files: list[str], max_files: int) -> str:
    """Render a directory-grouped listing of the first max_files paths."""
    shown = files[:max_files]
    lines = ["## Repository File Structure"]
    if len(files) > len(shown):
        lines.append(f"(showing the first {len(shown)} of {len(files)} files)")
    lines.append("")

    for directory, names in group_files_by_directory(shown).items():
        lines.append(f"{directory}/" if directory else "(root)/")
        lines.extend(f"  {name}" for name in names)

    return "\n".join(lines)


class SubsystemAnalyzer:
    """Classifies a repository's files into 3-8 named subsystems."""

    def __init__(
        self,
        source: GitHubSource,
        llm: LLMClient,
        max_outline_files: int = defaults.MAX_OUTLINE_FILES,
        key_file_scan_limit: int = defaults.KEY_FILE_SCAN_LIMIT,
        key_file_max_chars: int = defaults.KEY_FILE_MAX_CHARS,
        key_file_excerpt_chars: int = defaults.KEY_FILE_EXCERPT_CHARS,
        max_key_files: int = defaults.MAX_KEY_FILES,
        temperature: float = defaults.ANALYSIS_TEMPERATURE,
        max_tokens: int = defaults.ANALYSIS_MAX_TOKENS,
        placeholder_fallback: bool = False,
    ):
        """Initialize the analyzer.

        Args:
            source: Repository source used to read key files.
            llm: LLM client for classification.
            max_outline_files: Paths listed in the outline.
            key_file_scan_limit: Leading paths examined for key files.
            key_file_max_chars: Key files at or above this size are skipped.
            key_file_excerpt_chars: Characters kept per key file.
            max_key_files: Maximum number of key files sent.
            temperature: Sampling temperature for the classification call.
            max_tokens: Response token limit for the classification call.
            placeholder_fallback: Return one generic subsystem instead of raising
                when the response is unusable.
        """
        self.source = source
        self.llm = llm
        self.max_outline_files = max_outline_files
        self.key_file_scan_limit = key_file_scan_limit
        self.key_file_max_chars = key_file_max_chars
        self.key_file_excerpt_chars = key_file_excerpt_chars
        self.max_key_files = max_key_files
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.placeholder_fallback = placeholder_fallback

    async def analyze(self, owner: str, repo: str, files: list[str]) -> AnalysisResult:
        """Classify the repository into subsystems.

        Args:
            owner: Repository owner.
            repo: Repository name.
            files: Relevant file paths in discovery order.

        Returns:
            AnalysisResult whose file and entry point lists only contain paths from files.

        Raises:
            SubsystemAnalysisError: If the response is malformed or names no subsystems
                and the placeholder fallback is disabled.
            LLMError: For transport failures talking to the LLM.
        """
        outline = build_outline(files, self.max_outline_files)
        key_files = await self._read_key_files(owner, repo, files)
        prompt = get_analysis_prompt(owner, repo, outline, key_files)

        logger.info(
            f"Classifying {owner}/{repo}: {len(files)} files, {len(key_files)} key files"
        )

        try:
            response = await self.llm.complete(
                prompt,
                system_prompt=ANALYSIS_SYSTEM_PROMPT,
                response_model=ClassificationResponse,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except LLMMalformedResponseError as e:
            return self._unusable_response(owner, repo, files, f"Malformed analysis response: {e}")

        if not response.subsystems:
            return self._unusable_response(
                owner, repo, files, "Analysis response contained no subsystems"
            )

        return self._validate_paths(response, files)

    async def _read_key_files(
        self, owner: str, repo: str, files: list[str]
    ) -> list[tuple[str, str]]:
        """Fetch excerpts of manifests, READMEs and entry points."""
        key_files: list[tuple[str, str]] = []

        for path in files[: self.key_file_scan_limit]:
            if len(key_files) >= self.max_key_files:
                break
            if not is_key_file(path):
                continue

            try:
                content = await self.source.get_file_content(owner, repo, path)
            except GitHubError as e:
                logger.warning(f"Could not read key file {path}: {e}")
                continue

            if len(content) >= self.key_file_max_chars:
                logger.debug(f"Skipping large key file {path} ({len(content)} chars)")
                continue

            key_files.append((path, content[: self.key_file_excerpt_chars]))

        return key_files

    def _validate_paths(self, response: ClassificationResponse, files: list[str]) -> AnalysisResult:
        """Drop file and entry point references that are not in the repository."""
        known = set(files)
        warnings: list[str] = []
        subsystems: list[ClassifiedSubsystem] = []
        seen_names: set[str] = set()

        for subsystem in response.subsystems:
            if subsystem.name in seen_names:
                message = f"Duplicate subsystem '{subsystem.name}' ignored"
                logger.warning(message)
                warnings.append(message)
                continue
            seen_names.add(subsystem.name)

            kept_files = self._known_paths(subsystem.name, "file", subsystem.files, known, warnings)
            kept_entry_points = self._known_paths(
                subsystem.name, "entry point", subsystem.entry_points, known, warnings
            )
            subsystems.append(
                subsystem.model_copy(
                    update={"files": kept_files, "entry_points": kept_entry_points}
                )
            )

        return AnalysisResult(summary=response.summary, subsystems=subsystems, warnings=warnings)

    def _known_paths(
        self,
        subsystem_name: str,
        kind: str,
        paths: list[str],
        known: set[str],
        warnings: list[str],
    ) -> list[str]:
        kept: list[str] = []
        for raw in paths:
            path = normalize_path(raw)
            if path not in known:
                message = f"Dropped unknown {kind} '{raw}' from subsystem '{subsystem_name}'"
                logger.warning(message)
                warnings.append(message)
                continue
            if path not in kept:
                kept.append(path)
        return kept

    def _unusable_response(
        self, owner: str, repo: str, files: list[str], reason: str
    ) -> AnalysisResult:
        if not self.placeholder_fallback:
            raise SubsystemAnalysisError(reason)

        logger.warning(f"{reason}; using placeholder subsystem for {owner}/{repo}")
        placeholder = ClassifiedSubsystem(
            name="Core",
            description=f"Main source code of {owner}/{repo}.",
            type="feature",
            files=files[:PLACEHOLDER_FILE_LIMIT],
            entry_points=[],
            dependencies=[],
            complexity="medium",
        )
        return AnalysisResult(
            summary=f"Automatic classification of {owner}/{repo} was not possible.",
            subsystems=[placeholder],
            warnings=[reason],
        )
