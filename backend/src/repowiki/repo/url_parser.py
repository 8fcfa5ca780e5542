"""Parse GitHub repository URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class ParsedRepoUrl:
    """Result of parsing a GitHub repository URL."""

    owner: str
    repo: str
    original_url: str

    @property
    def canonical_url(self) -> str:
        """Canonical https URL used as the repository's unique key.

        Lower-cased, since GitHub owner and repository names are case-insensitive.
        """
        return f"https://github.com/{self.owner}/{self.repo}".lower()

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


# SSH URL pattern: git@github.com:owner/repo.git
SSH_PATTERN = re.compile(r"^git@github\.com:([^/\s]+)/([^/\s]+?)(?:\.git)?/?$")

# HTTPS URL pattern: https://github.com/owner/repo[.git][/]
HTTPS_PATTERN = re.compile(
    r"^(?:https?://)?(?:www\.)?github\.com/([^/\s]+)/([^/\s#?]+?)(?:\.git)?/?$",
    re.IGNORECASE,
)


def parse_repo_url(url: str) -> ParsedRepoUrl:
    """
    Parse a GitHub repository URL.

    Supports:
    - https://github.com/owner/repo (optionally with .git or a trailing slash)
    - github.com/owner/repo
    - git@github.com:owner/repo.git

    Returns ParsedRepoUrl with owner and repo names.
    Raises ValueError for anything that is not a GitHub repository URL.
    """
    url = url.strip()

    match = SSH_PATTERN.match(url) or HTTPS_PATTERN.match(url)
    if not match:
        raise ValueError(f"Invalid GitHub repository URL: {url}")

    owner, repo = match.group(1), match.group(2)
    if repo in (".", "..") or owner in (".", ".."):
        raise ValueError(f"Invalid GitHub repository URL: {url}")

    return ParsedRepoUrl(owner=owner, repo=repo, original_url=url)
