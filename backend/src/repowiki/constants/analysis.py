"""Subsystem analysis configuration.

These settings bound the prompt sent to the LLM when classifying a
repository into subsystems.
"""

# =============================================================================
# Project Outline
# =============================================================================
# Only the first MAX_OUTLINE_FILES paths (in discovery order) are listed in the
# outline. Large monorepos would otherwise produce prompts that exceed the
# model's context window.

MAX_OUTLINE_FILES = 500

# =============================================================================
# Key Files
# =============================================================================
# Key files (manifests, READMEs, entry points) give the model concrete content
# to reason about. Only the first KEY_FILE_SCAN_LIMIT paths are considered,
# files at or above KEY_FILE_MAX_CHARS are skipped, and kept files are cut to
# KEY_FILE_EXCERPT_CHARS. At most MAX_KEY_FILES are sent. KEY_FILE_PATTERNS are
# lower-case substrings matched against the lower-cased path.

KEY_FILE_SCAN_LIMIT = 20
KEY_FILE_MAX_CHARS = 5000
KEY_FILE_EXCERPT_CHARS = 2000
MAX_KEY_FILES = 10
KEY_FILE_MAX_DEPTH = 2

KEY_FILE_PATTERNS = (
    "readme.md",
    "package.json",
    "requirements.txt",
    "cargo.toml",
    "pyproject.toml",
    "go.mod",
    "main.py",
    "index.js",
    "index.ts",
    "app.py",
    "server.js",
    "config",
    "setup",
    "dockerfile",
    "docker-compose",
)

# =============================================================================
# Classification
# =============================================================================
# The model is asked for between MIN_SUBSYSTEMS and MAX_SUBSYSTEMS subsystems.
# ANALYSIS_MAX_TOKENS leaves room for long file lists in the response.

MIN_SUBSYSTEMS = 3
MAX_SUBSYSTEMS = 8
ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_MAX_TOKENS = 3000
