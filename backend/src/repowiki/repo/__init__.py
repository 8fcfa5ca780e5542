"""Repository access: GitHub source, URL parsing and file filtering."""

from repowiki.repo.file_filter import filter_relevant, is_relevant
from repowiki.repo.github import (
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubSource,
    GitHubUnavailableError,
    RepoFile,
    RepoMetadata,
    build_blob_url,
)
from repowiki.repo.url_parser import ParsedRepoUrl, parse_repo_url

__all__ = [
    "GitHubError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubSource",
    "GitHubUnavailableError",
    "ParsedRepoUrl",
    "RepoFile",
    "RepoMetadata",
    "build_blob_url",
    "filter_relevant",
    "is_relevant",
    "parse_repo_url",
]
