"""Configuration system for the repowiki backend.

This module handles loading settings from environment variables and an INI
file in the data directory, providing sensible defaults and computing
derived paths for the database and logs.
"""

from configparser import ConfigParser
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
import os

from repowiki.constants import analysis as analysis_defaults
from repowiki.constants import github as github_defaults
from repowiki.constants import llm as llm_defaults
from repowiki.constants import wiki as wiki_defaults


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# Schema: section -> key -> (type, default, min, max, description)
CONFIG_SCHEMA: dict[str, dict[str, tuple[type, Any, Any, Any, str]]] = {
    "analysis": {
        "max_outline_files": (
            int,
            analysis_defaults.MAX_OUTLINE_FILES,
            10,
            10_000,
            "Files listed in the project outline",
        ),
        "key_file_scan_limit": (
            int,
            analysis_defaults.KEY_FILE_SCAN_LIMIT,
            1,
            1000,
            "Paths scanned for key files",
        ),
        "key_file_max_chars": (
            int,
            analysis_defaults.KEY_FILE_MAX_CHARS,
            100,
            100_000,
            "Key files at or above this size are skipped",
        ),
        "key_file_excerpt_chars": (
            int,
            analysis_defaults.KEY_FILE_EXCERPT_CHARS,
            100,
            100_000,
            "Characters kept per key file",
        ),
        "max_key_files": (int, analysis_defaults.MAX_KEY_FILES, 0, 50, "Key files sent to LLM"),
        "temperature": (
            float,
            analysis_defaults.ANALYSIS_TEMPERATURE,
            0.0,
            1.0,
            "LLM temperature for classification",
        ),
        "max_tokens": (
            int,
            analysis_defaults.ANALYSIS_MAX_TOKENS,
            256,
            32768,
            "Max response tokens for classification",
        ),
        "placeholder_fallback": (
            bool,
            False,
            None,
            None,
            "Use one generic subsystem when classification output is unusable",
        ),
    },
    "wiki": {
        "max_candidate_files": (
            int,
            wiki_defaults.MAX_CANDIDATE_FILES,
            1,
            200,
            "Candidate files considered per subsystem",
        ),
        "max_files": (int, wiki_defaults.MAX_FILES, 1, 100, "Files gathered per subsystem"),
        "max_file_lines": (int, wiki_defaults.MAX_FILE_LINES, 10, 100_000, "Line limit per file"),
        "max_file_chars": (
            int,
            wiki_defaults.MAX_FILE_CHARS,
            1000,
            10_000_000,
            "Character limit per file",
        ),
        "max_path_length": (int, wiki_defaults.MAX_PATH_LENGTH, 10, 4096, "Longest usable path"),
        "excerpt_chars": (
            int,
            wiki_defaults.EXCERPT_CHARS,
            500,
            100_000,
            "Characters sent per gathered file",
        ),
        "temperature": (
            float,
            wiki_defaults.WIKI_TEMPERATURE,
            0.0,
            1.0,
            "LLM temperature for page generation",
        ),
        "max_tokens": (int, wiki_defaults.WIKI_MAX_TOKENS, 256, 32768, "Max response tokens"),
        "parallel_limit": (
            int,
            wiki_defaults.PARALLEL_LIMIT,
            1,
            20,
            "Concurrent page generations",
        ),
    },
    "llm": {
        "max_tokens": (int, llm_defaults.MAX_TOKENS, 256, 32768, "Max response tokens"),
        "default_temperature": (
            float,
            llm_defaults.DEFAULT_TEMPERATURE,
            0.0,
            2.0,
            "Default LLM temperature",
        ),
        "json_temperature": (
            float,
            llm_defaults.JSON_TEMPERATURE,
            0.0,
            1.0,
            "Temperature for structured output",
        ),
        "timeout_seconds": (
            float,
            llm_defaults.LLM_TIMEOUT_SECONDS,
            1.0,
            600.0,
            "Timeout per LLM request",
        ),
    },
    "github": {
        "api_url": (str, github_defaults.GITHUB_API_URL, None, None, "GitHub REST API base URL"),
        "timeout_seconds": (
            float,
            github_defaults.GITHUB_TIMEOUT_SECONDS,
            1.0,
            300.0,
            "Timeout per GitHub request",
        ),
    },
}


@dataclass(frozen=True)
class AnalysisConfig:
    """Subsystem classification configuration."""

    max_outline_files: int
    key_file_scan_limit: int
    key_file_max_chars: int
    key_file_excerpt_chars: int
    max_key_files: int
    temperature: float
    max_tokens: int
    placeholder_fallback: bool


@dataclass(frozen=True)
class WikiConfig:
    """Wiki page generation configuration."""

    max_candidate_files: int
    max_files: int
    max_file_lines: int
    max_file_chars: int
    max_path_length: int
    excerpt_chars: int
    temperature: float
    max_tokens: int
    parallel_limit: int


@dataclass(frozen=True)
class LLMConfig:
    """LLM client configuration."""

    max_tokens: int
    default_temperature: float
    json_temperature: float
    timeout_seconds: float


@dataclass(frozen=True)
class GitHubConfig:
    """GitHub API client configuration."""

    api_url: str
    timeout_seconds: float


SECTION_CLASSES: dict[str, type] = {
    "analysis": AnalysisConfig,
    "wiki": WikiConfig,
    "llm": LLMConfig,
    "github": GitHubConfig,
}


def _load_section(
    parser: ConfigParser, section: str, schema: dict[str, tuple[type, Any, Any, Any, str]]
) -> dict[str, Any]:
    """Load and validate a configuration section.

    Args:
        parser: ConfigParser instance with loaded config
        section: Section name to load
        schema: Schema definition for the section

    Returns:
        Dictionary of validated configuration values

    Raises:
        ConfigError: If validation fails
    """
    result = {}

    for key, (typ, default, min_val, max_val, _) in schema.items():
        if parser.has_option(section, key):
            raw_value = parser.get(section, key)
            value: bool | int | float | str
            try:
                if typ is bool:
                    value = raw_value.lower() in ("true", "1", "yes", "on")
                elif typ is int:
                    value = int(raw_value)
                elif typ is float:
                    value = float(raw_value)
                else:
                    value = raw_value
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for [{section}].{key}: {raw_value!r} (expected {typ.__name__})"
                ) from e
        else:
            value = default

        if typ in (int, float) and value is not None:
            if min_val is not None and value < min_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but minimum is {min_val}"
                )
            if max_val is not None and value > max_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but maximum is {max_val}"
                )

        result[key] = value

    return result


def _section_defaults(section: str) -> Any:
    """Build a section dataclass from schema defaults."""
    values = {key: default for key, (_, default, _, _, _) in CONFIG_SCHEMA[section].items()}
    return SECTION_CLASSES[section](**values)


def _load_config(config_path: Optional[Path] = None) -> "Config":
    """Load configuration sections from an INI file (internal use only).

    Environment-derived fields keep their defaults; load_settings() fills them in.

    Args:
        config_path: Path to config file. If None or missing, uses schema defaults.

    Returns:
        Config object with all sections populated.

    Raises:
        ConfigError: If validation fails
    """
    parser = ConfigParser()

    if config_path and config_path.exists():
        parser.read(config_path)

    sections = {
        section: SECTION_CLASSES[section](**_load_section(parser, section, schema))
        for section, schema in CONFIG_SCHEMA.items()
    }
    return Config(**sections)


@dataclass(frozen=True)
class Config:
    """Complete application configuration."""

    data_dir: Path = None  # type: ignore[assignment]  # Set in __post_init__ if None
    active_provider: str = "ollama"
    active_model: str = "llama2"
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    ollama_endpoint: str = "http://localhost:11434"
    github_token: Optional[str] = None

    analysis: AnalysisConfig = None  # type: ignore[assignment]
    wiki: WikiConfig = None  # type: ignore[assignment]
    llm: LLMConfig = None  # type: ignore[assignment]
    github: GitHubConfig = None  # type: ignore[assignment]

    def __post_init__(self):
        """Initialize section configs with defaults if not provided."""
        if self.data_dir is None:
            object.__setattr__(self, "data_dir", Path.home() / ".repowiki")
        for section in SECTION_CLASSES:
            if getattr(self, section) is None:
                object.__setattr__(self, section, _section_defaults(section))

    @property
    def db_path(self) -> Path:
        """Path to the SQLite database file."""
        return self.data_dir / "repowiki.db"

    @property
    def config_path(self) -> Path:
        """Path to the optional INI config file."""
        return self.data_dir / "config.ini"

    @property
    def llm_log_path(self) -> Path:
        """Path to LLM query log file."""
        return self.data_dir / "logs" / "llm-queries.jsonl"

    @property
    def llm_provider(self) -> str:
        """LLM provider name."""
        return self.active_provider

    @property
    def llm_model(self) -> str:
        """LLM model name."""
        return self.active_model

    @property
    def llm_api_key(self) -> Optional[str]:
        """API key for the active LLM provider."""
        provider_keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "google": self.google_api_key,
        }
        return provider_keys.get(self.active_provider)

    @property
    def llm_endpoint(self) -> Optional[str]:
        """Endpoint for LLM provider (mainly for Ollama)."""
        if self.active_provider == "ollama":
            return self.ollama_endpoint
        return None


PROVIDER_DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-sonnet-20241022",
    "google": "gemini-1.5-pro",
    "ollama": "llama2",
}


def _detect_provider_from_keys() -> tuple[str, str]:
    """Auto-detect provider from available API keys.

    Returns:
        Tuple of (provider, model) based on available keys.
        Falls back to ollama if no keys are found.
    """
    for provider, env_var in (
        ("openai", "OPENAI_API_KEY"),
        ("anthropic", "ANTHROPIC_API_KEY"),
        ("google", "GOOGLE_API_KEY"),
    ):
        if os.getenv(env_var):
            return (provider, PROVIDER_DEFAULT_MODELS[provider])
    return ("ollama", PROVIDER_DEFAULT_MODELS["ollama"])


def _github_token_from_env() -> Optional[str]:
    """Read GITHUB_TOKEN, ignoring empty and placeholder values."""
    token = os.getenv("GITHUB_TOKEN", "").strip()
    if not token or token == github_defaults.PLACEHOLDER_TOKEN:
        return None
    return token


@lru_cache(maxsize=1)
def load_settings() -> Config:
    """Load settings from environment variables and config file.

    Settings are cached for the lifetime of the application.
    Use load_settings.cache_clear() to reload settings.

    Returns:
        Config object populated from environment variables and config file.

    Raises:
        ConfigError: If the config file contains invalid values.
    """
    data_dir_str = os.getenv("REPOWIKI_DATA_DIR")
    data_dir = Path(data_dir_str) if data_dir_str else Path.home() / ".repowiki"

    config_file = data_dir / "config.ini"
    try:
        config_exists = config_file.exists()
    except PermissionError:
        config_exists = False
    base_config = _load_config(config_file if config_exists else None)

    active_provider = os.getenv("ACTIVE_PROVIDER")
    active_model = os.getenv("ACTIVE_MODEL")

    if not active_provider:
        detected_provider, detected_model = _detect_provider_from_keys()
        active_provider = detected_provider
        if not active_model:
            active_model = detected_model
    elif not active_model:
        active_model = PROVIDER_DEFAULT_MODELS.get(active_provider, "llama2")

    return Config(
        data_dir=data_dir,
        active_provider=active_provider,
        active_model=active_model,
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        google_api_key=os.getenv("GOOGLE_API_KEY"),
        ollama_endpoint=os.getenv("OLLAMA_ENDPOINT", "http://localhost:11434"),
        github_token=_github_token_from_env(),
        analysis=base_config.analysis,
        wiki=base_config.wiki,
        llm=base_config.llm,
        github=base_config.github,
    )
