"""GitHub API configuration."""

# =============================================================================
# REST API
# =============================================================================

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_TIMEOUT_SECONDS = 30.0

# Value shipped in example env files; treated as "no token".
PLACEHOLDER_TOKEN = "your_github_personal_access_token"
