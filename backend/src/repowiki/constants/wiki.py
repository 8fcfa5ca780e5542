"""Wiki page generation configuration.

These settings control how much source is gathered for a single subsystem
page and how citations are resolved.
"""

# =============================================================================
# File Gathering
# =============================================================================
# Entry points and files are merged into MAX_CANDIDATE_FILES candidates, of
# which at most MAX_FILES are actually fetched. Files larger than
# MAX_FILE_LINES lines or MAX_FILE_CHARS characters are skipped since they are
# usually generated or vendored.

MAX_CANDIDATE_FILES = 20
MAX_FILES = 15
MAX_FILE_LINES = 2000
MAX_FILE_CHARS = 100_000
MAX_PATH_LENGTH = 300

# =============================================================================
# Prompt Size
# =============================================================================
# Each gathered file is cut to EXCERPT_CHARS characters before being sent.

EXCERPT_CHARS = 8000
WIKI_TEMPERATURE = 0.3
WIKI_MAX_TOKENS = 8192

# =============================================================================
# Concurrency
# =============================================================================
# Pages are generated one subsystem at a time unless PARALLEL_LIMIT is raised.

PARALLEL_LIMIT = 1

# =============================================================================
# Citations
# =============================================================================
# Citation URLs always point at this branch on github.com.

CITATION_BRANCH = "main"
GITHUB_WEB_BASE = "https://github.com"
